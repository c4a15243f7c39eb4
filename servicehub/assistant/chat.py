from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)


class ChatAssistantError(RuntimeError):
    """Raised when the hosted model cannot produce a reply."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, Mapping):
        return ""
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], Mapping):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, Mapping):
        return ""
    parts = content.get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, Mapping))


class ChatAssistant:
    """Forward a prompt to Gemini's ``generateContent`` endpoint and return the text reply."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gemini-pro",
        base_url: str = "https://generativelanguage.googleapis.com",
        api_version: str = "v1beta",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._api_version = api_version
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    async def reply(self, text: str) -> str:
        prompt = text.strip()
        if not prompt:
            raise ValueError("Message must not be empty")
        if not self._api_key:
            raise ChatAssistantError("Chat assistant is not configured")

        url = f"/{self._api_version}/models/{self._model}:generateContent"
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        try:
            response = await self._client.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as exc:
            raise ChatAssistantError(f"Chat request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Chat model returned %s: %s", response.status_code, response.text)
            raise ChatAssistantError("Chat model rejected the request", status_code=response.status_code)

        try:
            reply = _extract_text(response.json())
        except ValueError as exc:
            raise ChatAssistantError("Chat model returned malformed JSON") from exc
        if not reply:
            raise ChatAssistantError("Chat model returned an empty reply")
        return reply

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
