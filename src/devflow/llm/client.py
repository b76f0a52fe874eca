"""Chat-completion HTTP client."""

from __future__ import annotations

import logging

import httpx

from devflow.config import LlmSettings
from devflow.errors import LlmRequestError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "devflow/0.1"


class ChatCompletionClient:
    """POST ``{"model", "messages"}`` to an OpenAI-compatible endpoint with bearer auth."""

    def __init__(
        self,
        settings: LlmSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0),
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "User-Agent": DEFAULT_USER_AGENT,
            },
            transport=transport,
        )

    def complete(self, *, system: str, user: str, temperature: float = 0.2) -> str:
        payload = {
            "model": self._settings.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            response = self._client.post(self._settings.endpoint, json=payload)
        except httpx.TimeoutException as error:
            raise LlmRequestError(
                f"LLM request timed out after {self._settings.timeout_seconds}s",
            ) from error
        except httpx.HTTPError as error:
            raise LlmRequestError(f"LLM request failed: {error}") from error

        if not response.is_success:
            logger.warning(
                "LLM endpoint returned HTTP %s: %s",
                response.status_code,
                response.text[:500],
            )
            raise LlmRequestError(f"LLM endpoint returned HTTP {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as error:
            raise LlmRequestError("LLM response has no choices[0].message.content") from error
        if not isinstance(content, str) or not content.strip():
            raise LlmRequestError("LLM response content is empty")
        return content.strip()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ChatCompletionClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
