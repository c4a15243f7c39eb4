from __future__ import annotations

import json

import httpx
import pytest

from servicehub.assistant import ChatAssistant, ChatAssistantError


def _assistant(handler, api_key="gemini-key") -> ChatAssistant:
    client = httpx.AsyncClient(
        base_url="https://generativelanguage.googleapis.com",
        transport=httpx.MockTransport(handler),
    )
    return ChatAssistant(api_key=api_key, client=client)


@pytest.mark.asyncio
async def test_reply_joins_text_parts():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.url.params["key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Try a "}, {"text": "hard reset."}]}}]},
        )

    reply = await _assistant(handler).reply("  Laptop will not boot  ")

    assert reply == "Try a hard reset."
    assert seen["path"] == "/v1beta/models/gemini-pro:generateContent"
    assert seen["key"] == "gemini-key"
    assert seen["body"] == {"contents": [{"role": "user", "parts": [{"text": "Laptop will not boot"}]}]}


@pytest.mark.asyncio
async def test_empty_prompt_is_rejected_before_any_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValueError):
        await _assistant(handler).reply("   ")


@pytest.mark.asyncio
async def test_missing_key_is_reported():
    assistant = _assistant(lambda request: httpx.Response(200), api_key=None)
    with pytest.raises(ChatAssistantError, match="not configured"):
        await assistant.reply("hello")


@pytest.mark.asyncio
async def test_model_error_and_empty_reply():
    rejected = _assistant(lambda request: httpx.Response(429, json={"error": {"message": "quota"}}))
    with pytest.raises(ChatAssistantError) as exc:
        await rejected.reply("hello")
    assert exc.value.status_code == 429

    empty = _assistant(lambda request: httpx.Response(200, json={"candidates": []}))
    with pytest.raises(ChatAssistantError, match="empty reply"):
        await empty.reply("hello")
