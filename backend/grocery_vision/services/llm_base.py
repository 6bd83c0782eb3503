"""
Grocery Vision Backend — Abstract LLM Service Interface
=========================================================

What:  Abstract base class for the multimodal "oracle": anything that takes
       an instruction plus an image and answers with free text.
How:   Concrete implementations inherit from LLMService and implement
       generate() and health_check().
Who:   Injected into DetectionService; tests inject a canned-text fake.
When:  Once per detection request, after image validation.
"""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """
    Abstract interface for image + prompt → text generation.

    Contract:
        - generate() returns the model's raw text, never None
        - Implementations translate provider errors into LLMServiceError
          (or LLMAuthenticationError for credential problems)
        - Callers never see provider-specific exception types

    Implementations:
        - GeminiService: Google Gemini via google-generativeai
    """

    @property
    def is_configured(self) -> bool:
        """
        Whether the service has the credentials it needs to be called.

        /health reports "unconfigured" instead of probing when this is False.
        Implementations without credentials keep the default.
        """
        return True

    @abstractmethod
    async def generate(self, prompt: str, image: bytes, mime_type: str = "image/jpeg") -> str:
        """
        Send an instruction and an image to the model and return its answer.

        Args:
            prompt:    Natural-language instruction.
            image:     Raw image bytes (already validated).
            mime_type: Sniffed content type of `image`.

        Returns:
            str: The model's raw text. Empty string if it produced none.

        Raises:
            LLMAuthenticationError: Missing or rejected API key.
            LLMServiceError: Network, quota, timeout or other provider failure.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight reachability check that does not consume generation quota.

        Returns: True if the service is reachable, False otherwise.
        """
        ...
