"""
WhatsApp Cloud API webhook schemas.

The envelope is validated leniently (unknown keys ignored) and each message is
parsed on its own, so one malformed message never hides the others.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _WebhookModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---- Envelope ----


class ChangeValue(_WebhookModel):
    messaging_product: str | None = None
    metadata: dict[str, Any] | None = None
    contacts: list[dict[str, Any]] = Field(default_factory=list)
    messages: list[dict[str, Any]] = Field(default_factory=list)
    statuses: list[dict[str, Any]] = Field(default_factory=list)


class WebhookChange(_WebhookModel):
    field: str | None = None
    value: ChangeValue = Field(default_factory=ChangeValue)


class WebhookEntry(_WebhookModel):
    id: str | None = None
    changes: list[WebhookChange] = Field(default_factory=list)


class WebhookPayload(_WebhookModel):
    object: str | None = None
    entry: list[WebhookEntry] = Field(default_factory=list)

    def iter_messages(self) -> list[dict[str, Any]]:
        """Raw message dicts from every "messages" change, in delivery order."""
        messages: list[dict[str, Any]] = []
        for entry in self.entry:
            for change in entry.changes:
                if change.field in (None, "messages"):
                    messages.extend(change.value.messages)
        return messages


# ---- Messages (tagged on "type") ----


class TextBody(_WebhookModel):
    body: str = ""


class MediaBody(_WebhookModel):
    id: str
    caption: str | None = None
    mime_type: str | None = None


class ReplyBody(_WebhookModel):
    id: str
    title: str | None = None
    description: str | None = None


class InteractiveBody(_WebhookModel):
    type: Literal["button_reply", "list_reply"]
    button_reply: ReplyBody | None = None
    list_reply: ReplyBody | None = None

    @property
    def reply(self) -> ReplyBody | None:
        return self.button_reply if self.type == "button_reply" else self.list_reply


class _InboundBase(_WebhookModel):
    sender: str = Field(alias="from")
    id: str
    timestamp: str | None = None


class TextMessage(_InboundBase):
    type: Literal["text"] = "text"
    text: TextBody = Field(default_factory=TextBody)


class ImageMessage(_InboundBase):
    type: Literal["image"] = "image"
    image: MediaBody


class InteractiveMessage(_InboundBase):
    type: Literal["interactive"] = "interactive"
    interactive: InteractiveBody


class UnsupportedMessage(_InboundBase):
    """Any other type (audio, sticker, location...): answered with a fallback reply."""

    type: str


InboundMessage = TextMessage | ImageMessage | InteractiveMessage | UnsupportedMessage

MESSAGE_MODELS: dict[str, type[_InboundBase]] = {
    "text": TextMessage,
    "image": ImageMessage,
    "interactive": InteractiveMessage,
}


def parse_inbound_message(raw: dict[str, Any]) -> InboundMessage:
    """
    Parse one raw webhook message into its typed model.

    Raises:
        pydantic.ValidationError: if the message is malformed for its type
    """
    model = MESSAGE_MODELS.get(raw.get("type") or "", UnsupportedMessage)
    return model.model_validate(raw)
