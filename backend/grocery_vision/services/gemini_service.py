"""
Grocery Vision Backend — Google Gemini Service Implementation
===============================================================

What:  Concrete oracle using the Google Gemini API for image analysis.
How:   Sends prompt + inline image bytes to Gemini and returns the raw text.
       The call is wrapped in a tenacity retry policy and every SDK failure
       is classified into LLMAuthenticationError or LLMServiceError.
Who:   Instantiated lazily by the detection routes; called by DetectionService.
When:  Once per detection request.

Resilience Strategy:
    1. Per-call response timeout (ORACLE_TIMEOUT, default 60s)
    2. Tenacity retry with exponential backoff + jitter. The attempt budget
       defaults to 1, so a request makes exactly one Gemini call unless an
       operator sets RETRY_MAX_ATTEMPTS higher.
    3. Credential errors are never retried.
"""

import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from grocery_vision.config import settings
from grocery_vision.exceptions import LLMAuthenticationError, LLMServiceError
from grocery_vision.services.llm_base import LLMService

logger = logging.getLogger(__name__)

# Substrings in SDK error text that mean "your credentials are the problem"
AUTH_ERROR_MARKERS = ("api key", "403", "authentication")


class GeminiService(LLMService):
    """
    Google Gemini implementation of the oracle interface.

    Error Handling Chain:
        SDK call fails → credential error? → LLMAuthenticationError (no retry)
        → otherwise tenacity retries up to retry_max_attempts
        → all attempts fail → LLMServiceError carrying the SDK message
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        """
        Args:
            api_key:      Override settings.gemini_api_key (used in tests).
            model_name:   Override settings.gemini_model.
            max_attempts: Override settings.retry_max_attempts.
            timeout:      Override settings.oracle_timeout (seconds).
        """
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.model_name = model_name or settings.gemini_model
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.timeout = timeout or settings.oracle_timeout

        if self.is_configured:
            genai.configure(api_key=self.api_key)

        self.model = genai.GenerativeModel(self.model_name)

        logger.info(
            "GeminiService initialized with model=%s, attempts=%d, timeout=%ds, key=%s",
            self.model_name,
            self.max_attempts,
            self.timeout,
            "configured" if self.is_configured else "missing",
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "your_gemini_api_key_here"

    @staticmethod
    def classify_error(exc: BaseException) -> LLMServiceError:
        """
        Map an SDK exception onto our error hierarchy by sniffing its text.

        "API key" / "403" / "authentication" → LLMAuthenticationError,
        anything else → LLMServiceError with the underlying message.
        """
        if isinstance(exc, LLMServiceError):
            return exc
        text = str(exc) or type(exc).__name__
        lowered = text.lower()
        if any(marker in lowered for marker in AUTH_ERROR_MARKERS):
            return LLMAuthenticationError(
                details=text,
                context={"error_type": type(exc).__name__},
            )
        return LLMServiceError(
            message=f"API Error: {text}",
            context={"error_type": type(exc).__name__},
        )

    async def generate(self, prompt: str, image: bytes, mime_type: str = "image/jpeg") -> str:
        """
        Send prompt + image to Gemini and return the raw response text.

        Flow:
            1. Reject immediately when no API key is configured
            2. Call Gemini under the retry policy
            3. Translate failures into LLMAuthenticationError / LLMServiceError

        Raises:
            LLMAuthenticationError: Missing or rejected API key
            LLMServiceError: Any other failure after the attempt budget
        """
        request_id = str(uuid.uuid4())[:8]

        if not self.is_configured:
            logger.error("[%s] Gemini call refused: no API key configured", request_id)
            raise LLMAuthenticationError(details="GEMINI_API_KEY is not set")

        logger.info(
            "[%s] Sending %d-byte %s image to %s",
            request_id,
            len(image),
            mime_type,
            self.model_name,
        )

        retrying = AsyncRetrying(
            retry=retry_if_not_exception_type(LLMAuthenticationError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.retry_min_wait,
                max=settings.retry_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._call_gemini(prompt, image, mime_type, request_id)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            error = self.classify_error(last or e)
            error.context.update({"request_id": request_id, "attempts": self.max_attempts})
            logger.error("[%s] Gemini call failed: %s", request_id, error.message)
            raise error from last
        except LLMAuthenticationError as e:
            e.context["request_id"] = request_id
            logger.error("[%s] Gemini rejected credentials: %s", request_id, e.details)
            raise

        # Unreachable: AsyncRetrying either returns from the loop or raises
        raise LLMServiceError(context={"request_id": request_id})

    async def _call_gemini(
        self, prompt: str, image: bytes, mime_type: str, request_id: str
    ) -> str:
        """
        Make one Gemini API call.

        Credential failures are converted here so the retry policy can see
        them and stop; everything else propagates raw for tenacity.
        """
        start_time = time.time()

        try:
            response = await self.model.generate_content_async(
                [prompt, {"mime_type": mime_type, "data": image}],
                request_options={"timeout": self.timeout},
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            classified = self.classify_error(e)
            if isinstance(classified, LLMAuthenticationError):
                raise classified from e
            raise

        duration_ms = (time.time() - start_time) * 1000
        text = response.text.strip() if response.text else ""

        logger.info(
            "[%s] Gemini responded in %.0fms with %d chars",
            request_id,
            duration_ms,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        """
        Check if the Gemini API is reachable.

        How:     Lists available models (no token cost).
        Returns: True if reachable and authenticated, False otherwise.
        """
        if not self.is_configured:
            return False
        try:
            models = genai.list_models()
            model_names = [m.name for m in models]
            target = f"models/{self.model_name}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
