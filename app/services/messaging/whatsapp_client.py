"""
WhatsApp Cloud API client with dry-run mode for development.

Outbound sends are retried on 5xx responses with exponential backoff
(base_delay * 2 ** (retry - 1)); 4xx responses raise immediately.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from app.constants.event_types import EVENT_WHATSAPP_SEND_FAILURE, EVENT_WHATSAPP_SEND_RETRY
from app.core.config import Settings
from app.services.integrations.http_client import create_httpx_client

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"
MAX_BUTTONS = 3
MAX_BUTTON_TITLE = 20
MAX_LIST_ROWS = 10
MAX_ROW_TITLE = 24
PLACEHOLDER_TOKENS = ("", "test_token")


class WhatsAppSendError(Exception):
    """Raised when a send still fails with a 5xx after all retries."""

    def __init__(self, message: str, status_code: int | None = None, attempts: int = 0):
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


def _truncate(title: str, limit: int) -> str:
    if len(title) <= limit:
        return title
    logger.warning(f"Interactive title too long ({len(title)} > {limit}), truncating: {title}")
    return title[:limit]


class WhatsAppClient:
    """Thin async wrapper over the Graph API messages/media endpoints."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        *,
        graph_version: str = "v20.0",
        dry_run: bool = True,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.graph_version = graph_version
        self.dry_run = dry_run
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppClient":
        """Build from Settings; forces dry-run in tests or with placeholder credentials."""
        dry_run = settings.whatsapp_dry_run
        if os.environ.get("PYTEST_CURRENT_TEST") or settings.whatsapp_access_token in PLACEHOLDER_TOKENS:
            dry_run = True
        return cls(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            graph_version=settings.whatsapp_graph_version,
            dry_run=dry_run,
            max_attempts=settings.whatsapp_send_max_attempts,
            base_delay_seconds=settings.whatsapp_retry_base_delay_seconds,
        )

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_BASE}/{self.graph_version}/{self.phone_number_id}/messages"

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    # ---- Transport ----

    async def _post_with_retry(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST payload to the messages endpoint.

        Retries up to max_attempts times after the first 5xx failure.

        Raises:
            httpx.HTTPStatusError: on a 4xx response (no retry)
            WhatsAppSendError: when every attempt returned 5xx
        """
        last_status: int | None = None
        total_attempts = self.max_attempts + 1
        for attempt in range(1, total_attempts + 1):
            async with create_httpx_client(transport=self._transport) as client:
                response = await client.post(self.messages_url, headers=self._headers, json=payload)

            if response.status_code < 500:
                response.raise_for_status()
                return response.json()

            last_status = response.status_code
            if attempt == total_attempts:
                break

            delay = self.base_delay_seconds * 2 ** (attempt - 1)
            logger.warning(
                f"WhatsApp send returned {response.status_code}, retry {attempt}/{self.max_attempts} in {delay}s",
                extra={"event_type": EVENT_WHATSAPP_SEND_RETRY, "status_code": last_status},
            )
            await self._sleep(delay)

        logger.error(
            f"WhatsApp send failed after {total_attempts} attempts (last status {last_status})",
            extra={"event_type": EVENT_WHATSAPP_SEND_FAILURE, "status_code": last_status},
        )
        raise WhatsAppSendError(
            f"WhatsApp API returned {last_status} after {total_attempts} attempts",
            status_code=last_status,
            attempts=total_attempts,
        )

    async def _send(self, to: str, kind: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self.dry_run:
            logger.info(f"[DRY-RUN] Would send WhatsApp {kind} to {to}: {payload}")
            return {"status": "dry_run", "message_id": None, "to": to, "payload": payload}

        result = await self._post_with_retry(payload)
        return {
            "status": "sent",
            "message_id": result.get("messages", [{}])[0].get("id"),
            "to": to,
        }

    # ---- Public API ----

    async def send_text(self, to: str, text: str) -> dict[str, Any]:
        """Send a plain text message."""
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }
        return await self._send(to, "text", payload)

    async def send_interactive_buttons(
        self,
        to: str,
        body: str,
        buttons: list[tuple[str, str]],
    ) -> dict[str, Any]:
        """
        Send a reply-button message.

        Args:
            to: Recipient phone number
            body: Message body
            buttons: (id, title) pairs; at most 3, titles cut to 20 chars

        Raises:
            ValueError: if more than 3 buttons are given
        """
        if not buttons or len(buttons) > MAX_BUTTONS:
            raise ValueError(f"Interactive buttons require 1-{MAX_BUTTONS} buttons, got {len(buttons)}")
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "interactive",
            "interactive": {
                "type": "button",
                "body": {"text": body},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": button_id, "title": _truncate(title, MAX_BUTTON_TITLE)}}
                        for button_id, title in buttons
                    ]
                },
            },
        }
        return await self._send(to, "buttons", payload)

    async def send_list_message(
        self,
        to: str,
        body: str,
        button_text: str,
        sections: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Send a list message.

        Args:
            sections: [{"title": str, "rows": [{"id", "title", "description"?}]}];
                at most 10 rows in total

        Raises:
            ValueError: if the sections hold no rows or more than 10
        """
        row_count = sum(len(section.get("rows", [])) for section in sections)
        if row_count == 0 or row_count > MAX_LIST_ROWS:
            raise ValueError(f"List messages require 1-{MAX_LIST_ROWS} rows, got {row_count}")

        normalized_sections = []
        for section in sections:
            rows = []
            for row in section.get("rows", []):
                item = {"id": row["id"], "title": _truncate(row["title"], MAX_ROW_TITLE)}
                if row.get("description"):
                    item["description"] = row["description"]
                rows.append(item)
            normalized_sections.append({"title": section.get("title", ""), "rows": rows})

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "interactive",
            "interactive": {
                "type": "list",
                "body": {"text": body},
                "action": {"button": _truncate(button_text, MAX_BUTTON_TITLE), "sections": normalized_sections},
            },
        }
        return await self._send(to, "list", payload)

    async def mark_as_read(self, message_id: str) -> dict[str, Any]:
        """Send a read receipt for an inbound message."""
        payload = {
            "messaging_product": "whatsapp",
            "status": "read",
            "message_id": message_id,
        }
        return await self._send(message_id, "read receipt", payload)

    async def get_media_url(self, media_id: str) -> str:
        """
        Resolve a media id to its download URL.

        Dry-run returns a "media:<id>" reference instead of calling the API.
        """
        if self.dry_run:
            return f"media:{media_id}"

        url = f"{GRAPH_API_BASE}/{self.graph_version}/{media_id}"
        async with create_httpx_client(transport=self._transport) as client:
            response = await client.get(url, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        return data["url"]
