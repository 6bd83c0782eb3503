"""
Grocery Vision Backend — Detection Service (Request Orchestrator)
==================================================================

What:  Runs one detection: validate image → build prompt → ask the oracle
       → normalize its answer.
How:   Composes an LLMService (injected) with the normalizer. The service
       holds no per-request state.
Who:   Called by the /api/detect-items and /api/detect-freshness routes.

Orchestration Flow:
    ┌──────────┐   ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │  Image   │──▶│ Size checks  │──▶│  Oracle      │──▶│  Normalizer  │
    │  bytes   │   │ (ImageServ.) │   │  generate()  │   │  normalize() │
    └──────────┘   └──────────────┘   └──────────────┘   └──────────────┘

Error Handling:
    - Validation failures raise ValidationError / PayloadTooLargeError
    - Oracle failures propagate as LLMServiceError / LLMAuthenticationError
    - Normalization never fails: an unreadable answer is an empty list
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from grocery_vision.config import settings
from grocery_vision.schemas.detection import InventoryItem, ProduceItem
from grocery_vision.services.image_service import ImageService
from grocery_vision.services.llm_base import LLMService
from grocery_vision.services.normalizer import RecordKind, SkipRules, normalize

logger = logging.getLogger(__name__)


INVENTORY_PROMPT = """
You are a grocery item detector. Analyze this image and identify all grocery items, food products, and household items visible.

For each distinct item:
1. Identify the item name
2. Count how many instances of this item are present

INSTRUCTIONS:
- Focus only on grocery items, food products, and household goods
- Be specific with item descriptions (e.g., "Red Apple" not just "Apple")
- Count items accurately, including multiples of the same item
- When multiple similar items are in a package, count the package as 1 item

FORMAT YOUR RESPONSE AS A VALID JSON ARRAY ONLY:
[
  {{
    "itemName": "Item Name",
    "count": number,
    "timestamp": "{timestamp}"
  }}
]

DO NOT include any explanatory text or markdown formatting - ONLY the JSON array.
"""

FRESHNESS_PROMPT = """
You are a produce freshness expert. Analyze this image and identify all fresh produce items like fruits and vegetables.

For each produce item:
1. Identify the specific type (e.g., "Gala Apple" rather than just "Apple")
2. Assess its current freshness state in detail
3. Provide an estimate of remaining shelf life in days

ASSESSMENT GUIDELINES:
- Be detailed in your freshness assessment (color, texture, visible signs)
- Provide specific shelf life estimates (e.g., "3-4 days" not "a few days")
- Consider normal storage conditions
- If produce appears overripe, note this clearly

FORMAT YOUR RESPONSE AS A VALID JSON ARRAY ONLY:
[
  {{
    "produce": "Produce Type",
    "freshness": "Detailed freshness assessment",
    "expectedLifespan": "X days",
    "timestamp": "{timestamp}"
  }}
]

DO NOT include any explanatory text or markdown formatting - ONLY the JSON array.
If no fresh produce is found, return an empty array [].
"""

PROMPTS = {
    RecordKind.INVENTORY: INVENTORY_PROMPT,
    RecordKind.PRODUCE: FRESHNESS_PROMPT,
}


def build_prompt(kind: RecordKind, now: Optional[datetime] = None) -> str:
    """Kind-specific instruction with the current instant as the example timestamp."""
    instant = now or datetime.now(timezone.utc)
    stamp = instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return PROMPTS[kind].format(timestamp=stamp)


class DetectionService:
    """
    Orchestrates inventory and freshness detection for one image.

    Args:
        llm:           Oracle used for generation (GeminiService in production).
        image_service: Size validator; defaults to a fresh ImageService.
        skip_rules:    Produce filler-row filter; defaults to the configured one.
    """

    def __init__(
        self,
        llm: LLMService,
        image_service: Optional[ImageService] = None,
        skip_rules: Optional[SkipRules] = None,
    ):
        self.llm = llm
        self.image_service = image_service or ImageService()
        self.skip_rules = skip_rules or SkipRules.from_lists(
            settings.produce_skip_names_list,
            settings.produce_skip_substrings_list,
        )

    async def detect_inventory(
        self, image: bytes, mime_type: str = "image/jpeg"
    ) -> List[InventoryItem]:
        """Count grocery and household items in the image."""
        return await self._detect(RecordKind.INVENTORY, image, mime_type)

    async def detect_freshness(
        self, image: bytes, mime_type: str = "image/jpeg"
    ) -> List[ProduceItem]:
        """Assess freshness and remaining shelf life of produce in the image."""
        return await self._detect(RecordKind.PRODUCE, image, mime_type)

    async def _detect(self, kind: RecordKind, image: bytes, mime_type: str) -> list:
        self.image_service.validate_size(image)

        detected_at = datetime.now(timezone.utc)
        prompt = build_prompt(kind, detected_at)

        logger.info("Starting %s detection (%d bytes)", kind.value, len(image))
        raw_text = await self.llm.generate(prompt, image, mime_type)
        logger.debug("Raw %s response length: %d chars", kind.value, len(raw_text or ""))

        records = normalize(
            raw_text,
            kind,
            skip_rules=self.skip_rules,
            detected_at=detected_at,
        )
        if not records and raw_text:
            logger.info(
                "%s detection produced no records from %d chars of model output",
                kind.value.capitalize(),
                len(raw_text),
            )
        else:
            logger.info("%s detection produced %d record(s)", kind.value.capitalize(), len(records))
        return records
