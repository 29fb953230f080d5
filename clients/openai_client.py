"""
Chat-completion client for practice question generation.
OpenAI by default; Groq models go through the Groq SDK (same interface).
All failures come back as GenerationOutcome values, never as exceptions.
"""

import logging
from typing import Any, Optional

import groq
import openai
from groq import Groq
from openai import OpenAI

from models.practice_models import GenerationFailure, GenerationOutcome, GenerationRequest
from utils.model_config import GenerationSettings, ModelProvider, normalize_api_key

logger = logging.getLogger(__name__)

# Case-insensitive markers of quota / billing failures in error messages
QUOTA_ERROR_MARKERS = ("quota", "billing", "exceeded")

ERROR_MESSAGE_MAX_CHARS = 200

STATUS_ERRORS = (openai.APIStatusError, groq.APIStatusError)
TIMEOUT_ERRORS = (openai.APITimeoutError, groq.APITimeoutError)
CONNECTION_ERRORS = (openai.APIConnectionError, groq.APIConnectionError)


def classify_service_error(message: Optional[str]) -> GenerationFailure:
    """Quota/billing language -> QUOTA_EXCEEDED, anything else -> transport/service error"""
    lowered = (message or "").lower()
    if any(marker in lowered for marker in QUOTA_ERROR_MARKERS):
        return GenerationFailure.QUOTA_EXCEEDED
    return GenerationFailure.TRANSPORT_OR_SERVICE_ERROR


def extract_error_message(exc: Exception) -> str:
    """Pull the service's error message out of a JSON or plain-text error body"""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if isinstance(inner, str) and inner:
            return inner[:ERROR_MESSAGE_MAX_CHARS]
    elif isinstance(body, str) and body:
        return body[:ERROR_MESSAGE_MAX_CHARS]
    message = getattr(exc, "message", None) or str(exc)
    return message[:ERROR_MESSAGE_MAX_CHARS]


class GenerationClient:
    """Single-shot call to the generation service (no retry loop)"""

    def __init__(self, settings: GenerationSettings, client: Optional[Any] = None):
        self.settings = settings
        self._client = client

    @property
    def has_api_key(self) -> bool:
        return self._client is not None or self.settings.has_api_key

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = normalize_api_key(self.settings.api_key)
            if self.settings.provider == ModelProvider.GROQ:
                self._client = Groq(
                    api_key=api_key,
                    timeout=self.settings.timeout_seconds,
                    max_retries=0,
                )
            else:
                self._client = OpenAI(
                    api_key=api_key,
                    base_url=self.settings.base_url,
                    timeout=self.settings.timeout_seconds,
                    max_retries=0,
                )
        return self._client

    def generate(self, request: GenerationRequest) -> GenerationOutcome:
        """
        Send one chat-completion request.

        Args:
            request: Built generation request (model, messages, sampling)

        Returns:
            GenerationOutcome.success(raw_text) or a failure with one of
            NO_API_KEY, QUOTA_EXCEEDED, TRANSPORT_OR_SERVICE_ERROR.
        """
        if not self.has_api_key:
            logger.warning("No API key configured for practice generation")
            return GenerationOutcome.failed(GenerationFailure.NO_API_KEY, "API key not configured")

        try:
            response = self._get_client().chat.completions.create(
                model=request.model,
                messages=[m.model_dump() for m in request.messages],
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except TIMEOUT_ERRORS as e:
            logger.warning(f"Generation request timed out after {self.settings.timeout_seconds}s: {e}")
            return GenerationOutcome.failed(GenerationFailure.TRANSPORT_OR_SERVICE_ERROR, "Request timed out")
        except CONNECTION_ERRORS as e:
            logger.warning(f"Generation service unreachable: {e}")
            return GenerationOutcome.failed(GenerationFailure.TRANSPORT_OR_SERVICE_ERROR, str(e))
        except STATUS_ERRORS as e:
            message = extract_error_message(e)
            failure = classify_service_error(message)
            logger.error(f"Generation service error ({getattr(e, 'status_code', '?')}): {message}")
            if failure == GenerationFailure.QUOTA_EXCEEDED:
                logger.warning("Generation quota exceeded; practice questions will use the offline generator")
            return GenerationOutcome.failed(failure, message)
        except Exception as e:
            logger.error(f"Generation request failed: {e}")
            return GenerationOutcome.failed(
                GenerationFailure.TRANSPORT_OR_SERVICE_ERROR,
                str(e)[:ERROR_MESSAGE_MAX_CHARS],
            )

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            logger.error(f"Malformed generation response: {e}")
            return GenerationOutcome.failed(GenerationFailure.TRANSPORT_OR_SERVICE_ERROR, "Malformed response")

        if not content:
            logger.error("Empty response from generation service")
            return GenerationOutcome.failed(GenerationFailure.TRANSPORT_OR_SERVICE_ERROR, "No response from AI")

        logger.info(f"Received {len(content)} characters from {request.model}")
        return GenerationOutcome.success(content)
