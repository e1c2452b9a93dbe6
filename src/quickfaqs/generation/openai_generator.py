from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from ..errors import TextGenerationError
from .base import TextGenerator


logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.openai.com/v1"


class OpenAITextGenerator(TextGenerator):
    """Single chat-completion call against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._api_base = api_base.rstrip("/")
        self._timeout = float(timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def generate(self, prompt: str, system: str | None = None) -> str:
        if not self._api_key:
            raise TextGenerationError("text generation is not configured")

        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}

        try:
            response = await self._get_client().post(
                f"{self._api_base}/chat/completions", headers=headers, json=payload
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Text generation failed: %s", exc, extra={"model": self._model})
            raise TextGenerationError("text generation failed") from exc

        content = ""
        if isinstance(data, dict):
            choices = data.get("choices") or [{}]
            content = ((choices[0].get("message") or {}).get("content") or "").strip()
        if not content:
            raise TextGenerationError("text generation returned no content")
        return content
