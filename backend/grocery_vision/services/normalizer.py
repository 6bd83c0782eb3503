"""
Grocery Vision Backend — Model Output Normalizer
==================================================

What:  Turns whatever text Gemini sends back into an ordered list of typed
       detection records (InventoryItem or ProduceItem).
How:   An ordered chain of parser strategies. Each strategy returns None
       ("not mine, try the next one") or a list (possibly empty), and the
       first list wins:

           ┌────────────────────┐  None  ┌───────────────────────┐  None
    text ─▶│ JsonArrayStrategy  │───────▶│ MarkdownTableStrategy │──────▶ []
           └────────┬───────────┘        └──────────┬────────────┘
                    │ list                           │ list
                    ▼                                ▼
                 records                          records

Who:   Called by DetectionService after every oracle call.

Guarantees:
    - normalize() never raises for any text input (None included); only an
      unknown record kind is rejected, before any parsing happens.
    - A JSON array that parses is final, even when empty: "[]" means
      "nothing detected" and is not re-read as a table.
    - Every record from one call shares one timestamp instant.
    - Malformed entries are dropped, never emitted half-filled.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from pydantic import ValidationError

from grocery_vision.schemas.detection import DetectedRecord, InventoryItem, ProduceItem

logger = logging.getLogger(__name__)

# ```json / ``` anywhere in the text, with any casing of "json"
_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

# |---|:---:|  markdown header separator rows
_SEPARATOR_ROW = re.compile(r"^\|[\s|:\-]+\|$")


def _parse_json_int(literal: str) -> Union[int, float]:
    """json int hook that survives literals past the int-string conversion limit."""
    try:
        return int(literal)
    except ValueError:
        return float(literal)


def _fold(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(v.strip().lower() for v in values if v and v.strip())


class RecordKind(str, Enum):
    """The two record shapes normalization can target."""

    INVENTORY = "inventory"
    PRODUCE = "produce"


@dataclass(frozen=True)
class SkipRules:
    """
    Filler-row filter for produce tables.

    The model sometimes pads a freshness table with rows for packaged goods
    it cannot assess. A row is skipped when its name equals one of
    `exact_names` or contains one of `substrings` (both case-insensitive).
    """

    exact_names: FrozenSet[str] = frozenset({"n/a", "-"})
    substrings: FrozenSet[str] = frozenset({"packaged"})

    def __post_init__(self):
        # Rules are compared against lowercased names
        object.__setattr__(self, "exact_names", _fold(self.exact_names))
        object.__setattr__(self, "substrings", _fold(self.substrings))

    @classmethod
    def from_lists(cls, exact_names: Iterable[str], substrings: Iterable[str]) -> "SkipRules":
        return cls(exact_names=frozenset(exact_names), substrings=frozenset(substrings))

    def should_skip(self, name: str) -> bool:
        lowered = name.strip().lower()
        if lowered in self.exact_names:
            return True
        return any(sub in lowered for sub in self.substrings)


DEFAULT_SKIP_RULES = SkipRules()


@dataclass(frozen=True)
class KindSpec:
    """Everything the strategies need to know about one record kind."""

    kind: RecordKind
    model: Type[DetectedRecord]
    header_markers: Tuple[str, ...]
    min_columns: int
    row_builder: Callable[[List[str]], Dict[str, Any]]
    filters_rows: bool = False


def _inventory_row(columns: List[str]) -> Dict[str, Any]:
    return {"itemName": columns[0], "count": columns[1]}


def _produce_row(columns: List[str]) -> Dict[str, Any]:
    return {
        "produce": columns[0],
        "freshness": columns[1],
        "expectedLifespan": columns[2],
    }


KIND_SPECS: Dict[RecordKind, KindSpec] = {
    RecordKind.INVENTORY: KindSpec(
        kind=RecordKind.INVENTORY,
        model=InventoryItem,
        header_markers=("Item Name", "Count", "Freshness"),
        min_columns=2,
        row_builder=_inventory_row,
    ),
    RecordKind.PRODUCE: KindSpec(
        kind=RecordKind.PRODUCE,
        model=ProduceItem,
        header_markers=("Produce", "Freshness", "Expected Life", "Lifespan"),
        min_columns=3,
        row_builder=_produce_row,
        filters_rows=True,
    ),
}


def _build_record(spec: KindSpec, data: Any, detected_at: datetime) -> Optional[DetectedRecord]:
    """Validate one raw entry; None if it does not have the record's shape."""
    if not isinstance(data, dict):
        return None
    try:
        return spec.model.model_validate(data, context={"detected_at": detected_at})
    except ValidationError as e:
        logger.debug("Dropping malformed %s entry: %s", spec.kind.value, e.errors()[:1])
        return None


# ══════════════════════════════════════════════════════════════════════════
# Parser Strategies
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class JsonArrayStrategy:
    """
    Slice from the first '[' to the last ']', drop markdown fences, json-parse.

    Returns None when there are no brackets, the slice is not valid JSON,
    or the JSON is not an array.
    """

    name: str = "json_array"

    def parse(
        self, text: str, spec: KindSpec, detected_at: datetime, skip_rules: SkipRules
    ) -> Optional[List[DetectedRecord]]:
        start = text.find("[")
        end = text.rfind("]")
        if start == -1 or end == -1 or end < start:
            return None

        candidate = _FENCE.sub("", text[start:end + 1]).strip()
        try:
            payload = json.loads(candidate, parse_int=_parse_json_int)
        except (ValueError, RecursionError):
            return None

        if not isinstance(payload, list):
            return None

        records = []
        for entry in payload:
            record = _build_record(spec, entry, detected_at)
            if record is not None:
                records.append(record)
        return records


@dataclass(frozen=True)
class MarkdownTableStrategy:
    """
    Read a pipe-delimited table that follows a recognizable header line.

    Returns None when no line contains one of the kind's header markers.
    Rows are positional: name, then count (inventory) or freshness and
    expected lifespan (produce).
    """

    name: str = "markdown_table"

    def parse(
        self, text: str, spec: KindSpec, detected_at: datetime, skip_rules: SkipRules
    ) -> Optional[List[DetectedRecord]]:
        lines = [line for line in text.splitlines() if line.strip()]

        header_index = next(
            (
                i for i, line in enumerate(lines)
                if any(marker in line for marker in spec.header_markers)
            ),
            None,
        )
        if header_index is None:
            return None

        records = []
        for raw_line in lines[header_index + 1:]:
            line = raw_line.strip()
            if not (line.startswith("|") and line.endswith("|")):
                continue
            if _SEPARATOR_ROW.match(line):
                continue

            columns = [col.strip() for col in line.split("|")]
            columns = [col for col in columns if col]
            if len(columns) < spec.min_columns:
                continue
            if spec.filters_rows and skip_rules.should_skip(columns[0]):
                continue

            record = _build_record(spec, spec.row_builder(columns), detected_at)
            if record is not None:
                records.append(record)
        return records


DEFAULT_STRATEGIES: Tuple[Any, ...] = (JsonArrayStrategy(), MarkdownTableStrategy())


# ══════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════


def resolve_kind(kind: Union[RecordKind, str]) -> RecordKind:
    """Accept a RecordKind or its string value; ValueError for anything else."""
    if isinstance(kind, RecordKind):
        return kind
    try:
        return RecordKind(str(kind).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown record kind {kind!r}. Expected one of: "
            f"{', '.join(k.value for k in RecordKind)}"
        ) from None


def normalize(
    text: Optional[str],
    kind: Union[RecordKind, str],
    *,
    skip_rules: Optional[SkipRules] = None,
    detected_at: Optional[datetime] = None,
    strategies: Sequence[Any] = DEFAULT_STRATEGIES,
) -> List[DetectedRecord]:
    """
    Convert raw model output into records of the requested kind.

    Args:
        text:        Raw model output. Any string; None is treated as "".
        kind:        "inventory" or "produce" (or the RecordKind member).
        skip_rules:  Produce filler-row filter. Defaults to DEFAULT_SKIP_RULES.
        detected_at: Timestamp for records without one. Defaults to now (UTC),
                     captured once for the whole call.
        strategies:  Ordered parser chain. First non-None result wins.

    Returns:
        Records in source order. Empty when nothing could be recovered.

    Raises:
        ValueError: only for an unknown `kind`.
    """
    spec = KIND_SPECS[resolve_kind(kind)]

    if text is None:
        return []
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    elif not isinstance(text, str):
        text = str(text)

    rules = skip_rules or DEFAULT_SKIP_RULES
    instant = detected_at or datetime.now(timezone.utc)

    for strategy in strategies:
        try:
            records = strategy.parse(text, spec, instant, rules)
        except Exception:
            # A misbehaving strategy must not take the request down with it
            logger.warning(
                "Strategy %s failed on %s output", getattr(strategy, "name", strategy),
                spec.kind.value, exc_info=True,
            )
            continue
        if records is not None:
            logger.debug(
                "Normalized %d %s record(s) via %s",
                len(records), spec.kind.value, strategy.name,
            )
            return records

    logger.debug("No structure found in %d chars of %s output", len(text), spec.kind.value)
    return []
