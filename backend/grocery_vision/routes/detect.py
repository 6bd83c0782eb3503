"""
Grocery Vision Backend — Detection Route Handlers
===================================================

What:  POST /api/detect-items and POST /api/detect-freshness.
How:   Read the multipart `image` field, validate it, hand the bytes to
       DetectionService, wrap the records in {"message": "Success", "result"}.
Who:   Called by the browser client, once per endpoint for every photo
       (items first, then freshness).

Request Flow:
    1. Client sends multipart/form-data with an `image` field
    2. ImageService validates presence, extension, size and MIME type
    3. DetectionService prompts Gemini and normalizes the answer
    4. 200 with the records, possibly an empty list

Errors are raised as application exceptions and rendered by the global
handlers in main.py as {"message": "Error", "error": ...}.
"""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, File, UploadFile

from grocery_vision.dependencies import get_detection_service, get_image_service
from grocery_vision.exceptions import ValidationError
from grocery_vision.schemas.detection import (
    ErrorResponse,
    FreshnessResponse,
    InventoryResponse,
)
from grocery_vision.services.detection_service import DetectionService
from grocery_vision.services.image_service import ImageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Detection"])

ERROR_RESPONSES = {
    400: {"description": "Missing, empty or non-image upload", "model": ErrorResponse},
    401: {"description": "Gemini API key missing or rejected", "model": ErrorResponse},
    413: {"description": "Image larger than 10MB", "model": ErrorResponse},
    503: {"description": "Gemini call failed", "model": ErrorResponse},
}


async def _read_upload(
    image: Optional[UploadFile], image_service: ImageService
) -> Tuple[bytes, str]:
    """Read and validate the upload; returns (content, mime_type)."""
    if image is None:
        raise ValidationError(message="No image uploaded", field="image")

    try:
        content = await image.read()
        logger.info(
            "Received image: filename=%s, size=%d bytes",
            image.filename or "unknown",
            len(content),
        )
        mime_type = image_service.validate(image.filename, content, image.size)
    finally:
        await image.close()
    return content, mime_type


@router.post(
    "/detect-items",
    response_model=InventoryResponse,
    responses=ERROR_RESPONSES,
    summary="Detect and count grocery items in a photo",
)
async def detect_items(
    image: Optional[UploadFile] = File(
        default=None,
        description="Photo of groceries (jpg, jpeg, png, gif or webp, max 10MB)",
    ),
    detection_service: DetectionService = Depends(get_detection_service),
    image_service: ImageService = Depends(get_image_service),
) -> InventoryResponse:
    """
    Returns:
        InventoryResponse: {"message": "Success", "result": [InventoryItem, ...]}.
        An empty result means the model found nothing it could report.
    """
    content, mime_type = await _read_upload(image, image_service)
    items = await detection_service.detect_inventory(content, mime_type)
    return InventoryResponse(result=items)


@router.post(
    "/detect-freshness",
    response_model=FreshnessResponse,
    responses=ERROR_RESPONSES,
    summary="Assess freshness of produce in a photo",
)
async def detect_freshness(
    image: Optional[UploadFile] = File(
        default=None,
        description="Photo of produce (jpg, jpeg, png, gif or webp, max 10MB)",
    ),
    detection_service: DetectionService = Depends(get_detection_service),
    image_service: ImageService = Depends(get_image_service),
) -> FreshnessResponse:
    """
    Returns:
        FreshnessResponse: {"message": "Success", "result": [ProduceItem, ...]}.
        An empty result is the normal answer for a photo without produce.
    """
    content, mime_type = await _read_upload(image, image_service)
    produce = await detection_service.detect_freshness(content, mime_type)
    return FreshnessResponse(result=produce)
