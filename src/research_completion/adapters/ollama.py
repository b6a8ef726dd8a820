"""
Ollama generation capability

Calls a local Ollama server's ``/api/chat`` endpoint without streaming and
translates transport and protocol failures into the error messages the
completion controller recognizes.
"""

from __future__ import annotations

import json
import logging
from types import TracebackType
from typing import Any, Self

import httpx

from ..completion.types import GenerationResult
from ..config import OllamaSettings
from ..constants import ERROR_PREVIEW_CHARS
from ..exceptions import (
    GenerationError,
    GenerationTimeoutError,
    IncompleteResponseError,
    UpstreamRejectedError,
)

log = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"


class OllamaGenerator:
    """Awaitable generation capability backed by an Ollama server.

    Usage:
        async with OllamaGenerator() as generate:
            text = await complete_generation(generate, prompt)

    A client passed in by the caller is used as-is and never closed here.
    """

    def __init__(
        self,
        settings: OllamaSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings if settings is not None else OllamaSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.request_timeout_seconds,
        )

    async def __call__(self, prompt: str) -> GenerationResult:
        payload = build_chat_payload(self.settings.model, prompt)
        log.debug(
            "Requesting chat completion from %s (model=%s, prompt length=%d)",
            self.settings.base_url,
            self.settings.model,
            len(prompt),
        )

        try:
            response = await self._client.post(
                f"{self.settings.base_url}{CHAT_PATH}", json=payload
            )
        except httpx.TimeoutException as e:
            raise GenerationTimeoutError(
                f"Ollama request timeout after {self.settings.request_timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Ollama request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamRejectedError(
                f"Ollama API rejected response: HTTP {response.status_code} "
                f"{response.text[:ERROR_PREVIEW_CHARS]}"
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise UpstreamRejectedError(
                f"Invalid JSON response from Ollama: {response.text[:ERROR_PREVIEW_CHARS]}"
            ) from e
        if not isinstance(data, dict):
            raise UpstreamRejectedError(
                f"Invalid JSON response from Ollama: expected an object, got {type(data).__name__}"
            )

        message = data.get("message") or {}
        if data.get("done") is False:
            partial = json.dumps({"message": message}, separators=(",", ":"))
            raise IncompleteResponseError(
                f'Ollama response incomplete ("done": false): {partial}'
            )

        text = message.get("content", "") if isinstance(message, dict) else ""
        return GenerationResult(text=text, raw=data)

    async def aclose(self) -> None:
        """Close the HTTP client if this generator created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def build_chat_payload(model: str, prompt: str) -> dict[str, Any]:
    """Request body for a single-turn, non-streaming chat call."""
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "stream": False,
    }
