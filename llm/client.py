"""
Gemini client using direct REST API calls.
Exposes the single call(prompt, schema, options) capability the extractor needs
and classifies failures as transient (rate limit) or permanent.
"""
import json
from typing import Any, Dict, Optional, Protocol

import requests
from pydantic import BaseModel, Field

from core.config import get_settings
from core.exceptions import (
    ConfigurationError,
    PermanentExtractionError,
    TransientExtractionError,
)
from core.logger import setup_logger

logger = setup_logger(__name__)


class ExtractionOptions(BaseModel):
    """Generation options passed to the extraction model."""
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=8192, ge=1)


class ExtractionCapability(Protocol):
    """Anything that turns a prompt and output schema into response text."""

    def call(self, prompt: str, schema: Dict[str, Any], options: ExtractionOptions) -> str:
        ...


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a JSON schema into Gemini's OpenAPI-style schema (uppercase types).

    Args:
        schema: JSON schema dictionary

    Returns:
        Schema dictionary accepted by generationConfig.responseSchema
    """
    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties" and isinstance(value, dict):
            converted[key] = {name: to_gemini_schema(sub) for name, sub in value.items()}
        elif key == "items" and isinstance(value, dict):
            converted[key] = to_gemini_schema(value)
        else:
            converted[key] = value
    return converted


class GeminiClientWrapper:
    """Wrapper for the Gemini generateContent REST API."""

    def __init__(self, session: Optional[requests.Session] = None):
        """Initialize REST API client."""
        settings = get_settings()
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "API_KEY environment variable not set",
                details={"required_key": "API_KEY"}
            )

        self.gateway_url = settings.gemini_gateway_url.rstrip("/")
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.timeout = settings.gemini_timeout
        self.thinking_budget = settings.gemini_thinking_budget
        self.session = session or requests.Session()

        logger.info(f"Initialized Gemini REST client with model: {self.model}, gateway: {self.gateway_url}")

    @property
    def endpoint(self) -> str:
        return f"{self.gateway_url}/models/{self.model}:generateContent"

    def build_payload(
        self,
        prompt: str,
        schema: Dict[str, Any],
        options: ExtractionOptions
    ) -> Dict[str, Any]:
        """Build the generateContent request body."""
        generation_config: Dict[str, Any] = {
            "responseMimeType": "application/json",
            "responseSchema": to_gemini_schema(schema),
            "temperature": options.temperature,
            "maxOutputTokens": options.max_output_tokens,
        }
        if self.thinking_budget > 0:
            generation_config["thinkingConfig"] = {"thinkingBudget": self.thinking_budget}

        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

    def call(
        self,
        prompt: str,
        schema: Dict[str, Any],
        options: Optional[ExtractionOptions] = None
    ) -> str:
        """
        Call Gemini with structured output and return the response text.

        Args:
            prompt: Full extraction instruction including the statement chunk
            schema: JSON schema for structured output
            options: Generation options

        Returns:
            Raw response text (expected to contain a JSON object)

        Raises:
            TransientExtractionError: On rate limiting (HTTP 429 / RESOURCE_EXHAUSTED)
            PermanentExtractionError: On any other failure
        """
        options = options or ExtractionOptions()
        payload = self.build_payload(prompt, schema, options)
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            response = self.session.post(
                self.endpoint,
                headers=headers,
                data=json.dumps(payload),
                timeout=self.timeout
            )
            response.raise_for_status()
            completion_data = response.json()

        except requests.exceptions.HTTPError as e:
            status_code = getattr(e.response, "status_code", None)
            response_text = getattr(e.response, "text", "") or ""
            if status_code == 429 or "RESOURCE_EXHAUSTED" in response_text:
                logger.warning(f"Gemini rate limit hit (HTTP {status_code})")
                raise TransientExtractionError(
                    f"Gemini rate limit exceeded (HTTP {status_code})",
                    details={"status_code": status_code}
                ) from e
            logger.error(f"Gemini HTTP error: {e}")
            raise PermanentExtractionError(
                f"Gemini returned HTTP error: {status_code}",
                details={"status_code": status_code, "response_text": response_text[:500]}
            ) from e

        except requests.exceptions.Timeout as e:
            logger.error(f"Gemini request timeout after {self.timeout}s: {e}")
            raise PermanentExtractionError(
                f"Gemini request timeout after {self.timeout}s",
                details={"timeout": self.timeout}
            ) from e

        except ValueError as e:
            logger.error(f"Failed to parse Gemini response envelope as JSON: {e}")
            raise PermanentExtractionError(
                "Gemini returned an invalid response envelope",
                details={"error": str(e)}
            ) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise PermanentExtractionError(
                f"Failed to connect to Gemini: {str(e)}",
                details={"error": str(e)}
            ) from e

        usage = completion_data.get("usageMetadata")
        if usage:
            logger.debug(
                f"Token usage - Input: {usage.get('promptTokenCount', 'N/A')}, "
                f"Output: {usage.get('candidatesTokenCount', 'N/A')}"
            )

        return extract_response_text(completion_data)


def extract_response_text(completion_data: Dict[str, Any]) -> str:
    """
    Pull the concatenated text parts out of a generateContent response.

    Blocked or empty responses yield an empty string.
    """
    candidates = completion_data.get("candidates") or []
    if not candidates:
        block_reason = (completion_data.get("promptFeedback") or {}).get("blockReason")
        logger.error(f"Gemini returned no candidates (block reason: {block_reason})")
        return ""

    parts = (candidates[0].get("content") or {}).get("parts") or []
    # Thought summaries are not part of the answer
    return "".join(
        part.get("text", "") for part in parts if not part.get("thought")
    )


# Singleton client instance
_client: Optional[GeminiClientWrapper] = None


def get_client() -> GeminiClientWrapper:
    """
    Get or create Gemini client singleton.

    Returns:
        Gemini client wrapper instance
    """
    global _client
    if _client is None:
        _client = GeminiClientWrapper()
    return _client
