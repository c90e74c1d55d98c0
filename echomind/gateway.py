"""
Client for the hosted text-generation service.

Every classification and content request in EchoMind is a single
`generateContent` call against the Gemini REST API. This module owns that
call and turns every way it can go wrong into an ExternalServiceError, so
callers only ever deal with text, parsed JSON, or that one error type.
"""

import json
import logging
from typing import Any

import httpx

from .config import DEFAULT_GEMINI_BASE_URL, DEFAULT_GEMINI_MODEL, Settings
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class GenerationClient:
    """
    Async wrapper around the Gemini `generateContent` endpoint.

    Requests are single-shot: no retries and no streaming. The underlying
    httpx.AsyncClient can be injected, which is how tests supply a
    MockTransport.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
        )

    @property
    def model(self) -> str:
        return self._model

    async def aclose(self) -> None:
        await self._http.aclose()

    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        response_schema: dict[str, Any] | None = None,
        temperature: float | None = None,
    ) -> str:
        """
        Send one prompt and return the generated text.

        Args:
            prompt: User content for the request
            system_instruction: Optional persona/behaviour instruction
            response_schema: When given, JSON output constrained to this schema
                is requested
            temperature: Optional sampling temperature

        Returns:
            The concatenated text of the first candidate

        Raises:
            ExternalServiceError: On transport, HTTP or response-shape failures
        """
        if not self._api_key:
            raise ExternalServiceError("Generation service API key is not configured")

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        generation_config: dict[str, Any] = {}
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        if temperature is not None:
            generation_config["temperature"] = temperature
        if generation_config:
            body["generationConfig"] = generation_config

        url = f"{self._base_url}/models/{self._model}:generateContent"
        try:
            response = await self._http.post(
                url, json=body, headers={"x-goog-api-key": self._api_key}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Generation service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Could not reach generation service: {type(e).__name__}"
            ) from e
        except ValueError as e:
            raise ExternalServiceError("Generation service returned non-JSON") from e

        return _extract_text(payload)

    async def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        response_schema: dict[str, Any],
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Like `generate`, but parse the output as a JSON object."""
        text = await self.generate(
            prompt,
            system_instruction=system_instruction,
            response_schema=response_schema,
            temperature=temperature,
        )
        try:
            parsed = json.loads(_strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise ExternalServiceError("Generated output is not valid JSON") from e
        if not isinstance(parsed, dict):
            raise ExternalServiceError("Generated output is not a JSON object")
        return parsed


def _extract_text(payload: Any) -> str:
    try:
        candidate = payload["candidates"][0]
        parts = candidate["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        block_reason = None
        if isinstance(payload, dict):
            block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
        detail = f" (blocked: {block_reason})" if block_reason else ""
        raise ExternalServiceError(f"Generation response had no content{detail}") from e

    if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
        raise ExternalServiceError("Generation response parts are malformed")
    texts = [part.get("text", "") for part in parts]
    if not all(isinstance(t, str) for t in texts):
        raise ExternalServiceError("Generation response parts are malformed")

    text = "".join(texts).strip()
    if not text:
        raise ExternalServiceError("Generation response was empty")
    return text


def _strip_code_fence(text: str) -> str:
    """Drop a ```json fence if the model wrapped its output in one."""
    stripped = text.strip()
    if stripped.startswith("```") and stripped.endswith("```"):
        stripped = stripped[3:-3]
        if stripped.startswith("json"):
            stripped = stripped[4:]
    return stripped.strip()
