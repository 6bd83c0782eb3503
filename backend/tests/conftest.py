"""
Grocery Vision Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── sample_image_bytes: Minimal JPEG bytes for upload tests
    ├── fake_llm: Canned-text oracle (no network)
    ├── image_service: ImageService with MIME sniffing stubbed to image/jpeg
    ├── detection_service: DetectionService wired to fake_llm
    └── test_client: HTTPX AsyncClient with the services overridden
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from grocery_vision.services.detection_service import DetectionService  # noqa: E402
from grocery_vision.services.image_service import ImageService  # noqa: E402
from grocery_vision.services.llm_base import LLMService  # noqa: E402


class FakeLLMService(LLMService):
    """
    Canned-text oracle.

    Returns `responses` in order (the last one repeats) and records every
    call as (prompt, image, mime_type). If `error` is set it is raised instead.
    """

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or ["[]"])
        self.error = error
        self.calls: List[Tuple[str, bytes, str]] = []
        self.healthy = True
        self.configured = True

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, prompt: str, image: bytes, mime_type: str = "image/jpeg") -> str:
        self.calls.append((prompt, image, mime_type))
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    async def health_check(self) -> bool:
        return self.healthy


class StubbedImageService(ImageService):
    """ImageService whose MIME sniffer answers without libmagic."""

    def __init__(self, mime_type: str = "image/jpeg", **kwargs):
        super().__init__(**kwargs)
        self.mime_type = mime_type

    def sniff_mime_type(self, content: bytes) -> str:
        return self.mime_type


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).

    Not a real photograph, but enough for size and signature checks.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def fake_llm():
    return FakeLLMService()


@pytest.fixture
def image_service():
    return StubbedImageService()


@pytest.fixture
def detection_service(fake_llm, image_service):
    return DetectionService(llm=fake_llm, image_service=image_service)


@pytest_asyncio.fixture
async def test_client(fake_llm, image_service, detection_service):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    The oracle, the detection service and the image validator are replaced
    through dependency overrides, so no test touches the network.
    """
    from grocery_vision.dependencies import (
        get_detection_service,
        get_image_service,
        get_llm_service,
    )
    from grocery_vision.main import app

    app.dependency_overrides[get_llm_service] = lambda: fake_llm
    app.dependency_overrides[get_detection_service] = lambda: detection_service
    app.dependency_overrides[get_image_service] = lambda: image_service

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
