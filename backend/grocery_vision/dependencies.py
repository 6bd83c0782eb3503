"""
Grocery Vision Backend — FastAPI Dependency Providers
=======================================================

What:  Providers for the oracle and the detection orchestrator.
How:   Built on first use and cached for the life of the process.
       Tests replace them with `app.dependency_overrides`.
Who:   Injected into route handlers with Depends().
"""

from functools import lru_cache

from grocery_vision.services.detection_service import DetectionService
from grocery_vision.services.gemini_service import GeminiService
from grocery_vision.services.image_service import ImageService, image_service
from grocery_vision.services.llm_base import LLMService


@lru_cache(maxsize=None)
def get_llm_service() -> LLMService:
    """The production oracle: Google Gemini."""
    return GeminiService()


@lru_cache(maxsize=None)
def get_detection_service() -> DetectionService:
    return DetectionService(llm=get_llm_service(), image_service=image_service)


def get_image_service() -> ImageService:
    return image_service
