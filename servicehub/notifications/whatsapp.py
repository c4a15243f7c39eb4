"""WhatsApp Cloud API client used for template notifications."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

import httpx

from .models import DeliveryReceipt

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class WhatsAppGatewayError(RuntimeError):
    """Raised when the Cloud API refuses or fails to accept a message."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


def normalize_phone(phone: str) -> str:
    """Strip whitespace and a leading ``+`` so the number is plain digits."""

    compact = _WHITESPACE.sub("", phone)
    return compact[1:] if compact.startswith("+") else compact


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown WhatsApp API error"
    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and "message" in error:
            return str(error["message"])
    return "WhatsApp API request failed"


class WhatsAppGateway:
    """Send template messages through ``POST /{version}/{phone_number_id}/messages``."""

    def __init__(
        self,
        *,
        phone_number_id: str,
        access_token: str,
        api_version: str = "v17.0",
        base_url: str = "https://graph.facebook.com",
        language_code: str = "en",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._phone_number_id = phone_number_id
        self._access_token = access_token
        self._api_version = api_version
        self._language_code = language_code
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    @property
    def messages_path(self) -> str:
        return f"/{self._api_version}/{self._phone_number_id}/messages"

    def build_payload(self, phone: str, template: str, variables: Sequence[str]) -> dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "to": normalize_phone(phone),
            "type": "template",
            "template": {
                "name": template,
                "language": {"code": self._language_code},
                "components": [
                    {
                        "type": "body",
                        "parameters": [{"type": "text", "text": str(value)} for value in variables],
                    }
                ],
            },
        }

    async def send(self, phone: str, template: str, variables: Sequence[str]) -> DeliveryReceipt:
        payload = self.build_payload(phone, template, variables)
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            response = await self._client.post(self.messages_path, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise WhatsAppGatewayError(f"WhatsApp request failed: {exc}") from exc

        if response.status_code >= 400:
            raise WhatsAppGatewayError(_extract_error_message(response), status_code=response.status_code)

        message_id: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, Mapping):
            messages = body.get("messages") or []
            if messages and isinstance(messages[0], Mapping):
                message_id = messages[0].get("id")
        logger.debug("Sent WhatsApp template %s to %s (%s)", template, payload["to"], message_id)
        return DeliveryReceipt(phone=payload["to"], template=template, message_id=message_id)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
