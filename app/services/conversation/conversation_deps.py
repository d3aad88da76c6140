"""
Dependency bundle for the conversation flow.

Built once in app.main (or by tests with fakes) and passed to every handler,
so the flow never reaches for module-level singletons.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from app.core.config import Settings
from app.services.messaging.message_composer import MessageComposer
from app.services.state_store import ConversationState, ConversationStateStore
from app.utils.datetime_utils import local_today


class Messenger(Protocol):
    """Outbound capability used by the flow (WhatsAppClient or a test fake)."""

    async def send_text(self, to: str, text: str) -> dict[str, Any]: ...

    async def send_interactive_buttons(
        self, to: str, body: str, buttons: list[tuple[str, str]]
    ) -> dict[str, Any]: ...

    async def send_list_message(
        self, to: str, body: str, button_text: str, sections: list[dict[str, Any]]
    ) -> dict[str, Any]: ...

    async def mark_as_read(self, message_id: str) -> dict[str, Any]: ...

    async def get_media_url(self, media_id: str) -> str: ...


class Exporter(Protocol):
    async def export_lead(self, state: ConversationState) -> bool: ...


@dataclass
class ConversationDeps:
    store: ConversationStateStore
    messenger: Messenger
    exporter: Exporter
    composer: MessageComposer
    settings: Settings

    def today(self) -> date:
        """Calendar date in the configured business timezone."""
        return local_today(self.settings.timezone)

    def render(self, key: str, phone: str, **kwargs: Any) -> str:
        """Render a copy key for phone, with business info always available."""
        context = {
            "business_name": self.settings.business_name,
            "business_phone": self.settings.business_phone,
            "business_website": self.settings.business_website,
            **kwargs,
        }
        return self.composer.render(key, seed=phone, **context)

    async def say(self, phone: str, key: str, **kwargs: Any) -> str:
        """Render key and send it as plain text; returns the text sent."""
        text = self.render(key, phone, **kwargs)
        await self.messenger.send_text(phone, text)
        return text
