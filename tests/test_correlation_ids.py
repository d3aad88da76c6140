"""
Tests for correlation IDs in webhook handlers.
"""

import logging
import uuid

import pytest

from app.constants.event_types import EVENT_WHATSAPP_INBOUND_RECEIVED
from app.middleware.correlation_id import (
    HEADER_CORRELATION_ID,
    correlation_scope,
    get_correlation_id,
    resolve_correlation_id,
)
from tests.helpers.webhook_payloads import text_payload


def _inbound_records(caplog):
    return [r for r in caplog.records if getattr(r, "event_type", None) == EVENT_WHATSAPP_INBOUND_RECEIVED]


def test_whatsapp_webhook_generates_correlation_id(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.api.webhooks"):
        response = client.post("/webhooks/whatsapp", json=text_payload("hola"))

    assert response.status_code == 200
    cid = response.headers[HEADER_CORRELATION_ID]
    try:
        uuid.UUID(cid)
    except ValueError:
        pytest.fail("Correlation ID is not a valid UUID")

    records = _inbound_records(caplog)
    assert len(records) == 1
    assert records[0].correlation_id == cid


def test_incoming_correlation_id_is_echoed(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.api.webhooks"):
        response = client.post(
            "/webhooks/whatsapp",
            json=text_payload("hola"),
            headers={HEADER_CORRELATION_ID: "trace-abc-123"},
        )

    assert response.headers[HEADER_CORRELATION_ID] == "trace-abc-123"
    assert _inbound_records(caplog)[0].correlation_id == "trace-abc-123"


def test_oversized_correlation_id_is_replaced(client):
    response = client.get("/health", headers={HEADER_CORRELATION_ID: "x" * 200})
    cid = response.headers[HEADER_CORRELATION_ID]
    assert cid != "x" * 200
    uuid.UUID(cid)


def test_correlation_id_reaches_background_processing(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.api.webhooks"):
        client.post(
            "/webhooks/whatsapp",
            json=text_payload("hola"),
            headers={HEADER_CORRELATION_ID: "trace-bg-1"},
        )

    processing = [r for r in caplog.records if r.getMessage().startswith("Processing WhatsApp text message")]
    assert len(processing) == 1
    assert processing[0].correlation_id == "trace-bg-1"


@pytest.mark.parametrize("incoming", [None, "", "   ", "y" * 129])
def test_unusable_incoming_ids_get_a_fresh_uuid(incoming):
    uuid.UUID(resolve_correlation_id(incoming))


def test_incoming_id_is_stripped():
    assert resolve_correlation_id("  trace-1  ") == "trace-1"


def test_correlation_scope_restores_previous_id():
    assert get_correlation_id() is None
    with correlation_scope("outer"):
        with correlation_scope("inner"):
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == "outer"
    assert get_correlation_id() is None
