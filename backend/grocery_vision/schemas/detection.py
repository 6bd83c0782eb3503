"""
Grocery Vision Backend — Pydantic Record and Response Schemas
===============================================================

What:  The two detection record kinds plus the HTTP envelopes around them.
How:   Records are frozen Pydantic models. Field names are snake_case in
       Python and camelCase on the wire (`itemName`, `expectedLifespan`);
       FastAPI serializes response models by alias.
Who:   Built by the normalizer, returned by the detection routes.

Record invariants:
    - Every field is populated. Missing timestamps take the normalization
      instant passed through the validation context (`detected_at`).
    - Names must contain non-whitespace text; a record without one fails
      validation and the normalizer drops it. String values are kept
      exactly as the model sent them.
    - `count` is always a positive integer (unparsable → 1).
    - ProduceItem also serializes `severity`, the display bucket for its
      expected lifespan.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    computed_field,
    field_validator,
)

PLACEHOLDER = "Unknown"

_LEADING_INT = re.compile(r"^\s*\+?(\d+)")


def parse_count(value: Any) -> int:
    """
    Coerce a model-supplied count into a positive integer.

    Integers and integral floats pass through; strings contribute their
    leading run of digits ("3 pcs" → 3). Anything else, including zero,
    negatives and booleans, becomes 1.
    """
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value if value > 0 else 1
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 1
        return int(value) if value >= 1 else 1
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            try:
                number = int(match.group(1))
            except ValueError:
                # Past the interpreter's int-string conversion limit
                return 1
            return number if number > 0 else 1
    return 1


def _detection_instant(info: ValidationInfo) -> datetime:
    context = info.context or {}
    detected_at = context.get("detected_at")
    if isinstance(detected_at, datetime):
        return detected_at
    return datetime.now(timezone.utc)


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Lifespan Severity (display policy)
# ══════════════════════════════════════════════════════════════════════════

_FIRST_DIGITS = re.compile(r"\d+")


class Severity(str, Enum):
    """Freshness buckets the client colors produce rows by."""

    CRITICAL = "critical"  # ≤ 1 day
    WARNING = "warning"    # ≤ 3 days
    FRESH = "fresh"
    UNKNOWN = "unknown"    # no lifespan given at all


def lifespan_days(expected_lifespan: Optional[str]) -> int:
    """First run of digits in the lifespan text; 0 when there is none."""
    if not expected_lifespan:
        return 0
    match = _FIRST_DIGITS.search(expected_lifespan)
    if not match:
        return 0
    try:
        return int(match.group(0))
    except ValueError:
        return 0


def freshness_severity(expected_lifespan: Optional[str]) -> Severity:
    """
    Bucket a lifespan string.

    "3-4 days" reads as 3 (WARNING); text without digits reads as 0 days
    and lands in CRITICAL. Only a missing/empty value is UNKNOWN.
    """
    if not expected_lifespan or not expected_lifespan.strip():
        return Severity.UNKNOWN
    days = lifespan_days(expected_lifespan)
    if days <= 1:
        return Severity.CRITICAL
    if days <= 3:
        return Severity.WARNING
    return Severity.FRESH


# ══════════════════════════════════════════════════════════════════════════
# Detection Records
# ══════════════════════════════════════════════════════════════════════════


class DetectedRecord(BaseModel):
    """Shared configuration and timestamp handling for both record kinds."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    timestamp: datetime = Field(
        default=None,
        validate_default=True,
        description="When the item was detected (ISO 8601)",
    )

    @field_validator("timestamp", mode="wrap")
    @classmethod
    def fill_timestamp(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> datetime:
        """Absent or unparsable timestamps become the normalization instant."""
        if value is None or value == "":
            return _detection_instant(info)
        try:
            return handler(value)
        except ValidationError:
            return _detection_instant(info)


class InventoryItem(DetectedRecord):
    """A grocery or household item counted in the photo."""

    item_name: str = Field(
        alias="itemName",
        validation_alias=AliasChoices("itemName", "item_name", "name", "item"),
        min_length=1,
        description="Item description, e.g. 'Red Apple'",
    )
    count: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("count", "quantity"),
        description="How many were seen",
    )

    @field_validator("item_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("count", mode="before")
    @classmethod
    def coerce_count(cls, value: Any) -> int:
        return parse_count(value)


class ProduceItem(DetectedRecord):
    """A fruit or vegetable with a freshness assessment."""

    produce: str = Field(
        validation_alias=AliasChoices("produce", "item", "name"),
        min_length=1,
        description="Produce type, e.g. 'Gala Apple'",
    )
    freshness: str = Field(default=PLACEHOLDER, description="Freshness assessment")
    expected_lifespan: str = Field(
        default=PLACEHOLDER,
        alias="expectedLifespan",
        validation_alias=AliasChoices(
            "expectedLifespan", "expected_lifespan", "lifespan", "shelfLife"
        ),
        description="Remaining shelf life, e.g. '3-4 days'",
    )

    @field_validator("produce")
    @classmethod
    def produce_not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("freshness", "expected_lifespan", mode="before")
    @classmethod
    def default_blank_text(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return PLACEHOLDER
        return value

    @computed_field(description="Display bucket derived from expectedLifespan")
    @property
    def severity(self) -> Severity:
        return freshness_severity(self.expected_lifespan)


# ══════════════════════════════════════════════════════════════════════════
# Response Envelopes
# ══════════════════════════════════════════════════════════════════════════


class InventoryResponse(BaseModel):
    """Returned by POST /api/detect-items."""

    message: str = Field(default="Success")
    result: List[InventoryItem] = Field(description="Detected items, in detection order")


class FreshnessResponse(BaseModel):
    """Returned by POST /api/detect-freshness."""

    message: str = Field(default="Success")
    result: List[ProduceItem] = Field(description="Detected produce, in detection order")


class ErrorResponse(BaseModel):
    """
    Error envelope shared by every endpoint.

    Example:
        {
            "message": "Error",
            "error": "File too large. Maximum size is 10MB.",
            "request_id": "a1b2c3d4"
        }
    """

    message: str = Field(default="Error")
    error: str = Field(description="Human-readable error description")
    details: Optional[Union[str, Dict[str, Any]]] = Field(
        default=None, description="Underlying error text or validation context"
    )
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class RootResponse(BaseModel):
    """Returned by GET /."""

    message: str
    status: str
    timestamp: datetime


class HealthResponse(BaseModel):
    """Returned by GET /health."""

    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    gemini: str = Field(description="Gemini API status: available, unavailable, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
