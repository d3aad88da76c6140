"""FastAPI dependencies for API routes.

Everything is read from request.app.state, populated by app.main at import time;
tests swap the objects on app.state (or use dependency_overrides).
"""

from fastapi import Depends, HTTPException, Request

from app.core.config import Settings
from app.services.conversation.conversation_deps import ConversationDeps
from app.services.integrations.sheets import LeadExporter
from app.services.messaging.message_composer import MessageComposer
from app.services.messaging.whatsapp_client import WhatsAppClient
from app.services.state_store import ConversationState, ConversationStateStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_state_store(request: Request) -> ConversationStateStore:
    return request.app.state.store


def get_whatsapp_client(request: Request) -> WhatsAppClient:
    return request.app.state.whatsapp_client


def get_lead_exporter(request: Request) -> LeadExporter:
    return request.app.state.lead_exporter


def get_message_composer(request: Request) -> MessageComposer:
    return request.app.state.composer


def get_conversation_deps(
    settings: Settings = Depends(get_settings),
    store: ConversationStateStore = Depends(get_state_store),
    messenger: WhatsAppClient = Depends(get_whatsapp_client),
    exporter: LeadExporter = Depends(get_lead_exporter),
    composer: MessageComposer = Depends(get_message_composer),
) -> ConversationDeps:
    """Bundle the app-level services for the conversation handlers."""
    return ConversationDeps(
        store=store,
        messenger=messenger,
        exporter=exporter,
        composer=composer,
        settings=settings,
    )


def get_lead_or_404(phone: str, store: ConversationStateStore = Depends(get_state_store)) -> ConversationState:
    """
    Resolve lead by path parameter phone; raise 404 if not found.

    Use as a dependency on routes with path parameter {phone}.
    """
    state = store.get(phone)
    if state is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return state
