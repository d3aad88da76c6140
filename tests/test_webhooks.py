"""
Tests for the WhatsApp webhook endpoints (handshake, signatures, payload handling).
"""

import json

import pytest

from app.api.webhooks import process_messages
from app.constants.steps import STEP_COLLECTING_INFO, STEP_WELCOME
from app.services.messaging.whatsapp_verification import compute_signature, verify_whatsapp_signature
from tests.helpers.webhook_payloads import (
    DEFAULT_SENDER,
    image_message,
    list_reply_message,
    text_message,
    text_payload,
    webhook_payload,
)

APP_SECRET = "test_app_secret"


# --- GET handshake ---


def test_whatsapp_verify_success(client):
    response = client.get(
        "/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "test_token", "hub.challenge": "1158201444"},
    )
    assert response.status_code == 200
    assert response.text == "1158201444"
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.parametrize(
    "params",
    [
        {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "x"},
        {"hub.mode": "unsubscribe", "hub.verify_token": "test_token", "hub.challenge": "x"},
        {"hub.challenge": "x"},
    ],
)
def test_whatsapp_verify_rejected(client, params):
    response = client.get("/webhooks/whatsapp", params=params)
    assert response.status_code == 403


# --- signature ---


def test_verify_signature_disabled_without_secret():
    assert verify_whatsapp_signature(b"{}", None, None) is True


def test_verify_signature_checks():
    body = b'{"entry": []}'
    good = compute_signature(body, APP_SECRET)
    assert verify_whatsapp_signature(body, good, APP_SECRET) is True
    assert verify_whatsapp_signature(body, None, APP_SECRET) is False
    assert verify_whatsapp_signature(body, good.replace("sha256=", "md5="), APP_SECRET) is False
    assert verify_whatsapp_signature(b'{"entry": [1]}', good, APP_SECRET) is False


def test_post_with_valid_signature_is_processed(client, test_settings, messenger):
    test_settings.whatsapp_app_secret = APP_SECRET
    body = json.dumps(text_payload("hola")).encode("utf-8")

    response = client.post(
        "/webhooks/whatsapp",
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": compute_signature(body, APP_SECRET)},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "type": "messages", "count": 1}
    assert messenger.last["to"] == DEFAULT_SENDER


@pytest.mark.parametrize("signature", [None, "sha256=deadbeef"])
def test_post_with_bad_signature_is_rejected(client, test_settings, store, messenger, signature):
    test_settings.whatsapp_app_secret = APP_SECRET
    headers = {"Content-Type": "application/json"}
    if signature:
        headers["X-Hub-Signature-256"] = signature

    response = client.post("/webhooks/whatsapp", content=json.dumps(text_payload("hola")), headers=headers)

    assert response.status_code == 403
    assert response.json() == {"received": False, "error": "Invalid webhook signature"}
    assert len(store) == 0
    assert messenger.sent == []


# --- payload handling ---


def test_post_text_message_sends_welcome(client, store, messenger):
    response = client.post("/webhooks/whatsapp", json=text_payload("hola"))

    assert response.status_code == 200
    state = store.get(DEFAULT_SENDER)
    assert state.current_step == STEP_WELCOME
    assert messenger.last["kind"] == "list"


def test_post_list_reply_selects_category(client, store, messenger):
    client.post("/webhooks/whatsapp", json=text_payload("hola"))
    response = client.post("/webhooks/whatsapp", json=webhook_payload([list_reply_message("hotel")]))

    assert response.status_code == 200
    state = store.get(DEFAULT_SENDER)
    assert state.service_type == "Hotel"
    assert state.current_step == STEP_COLLECTING_INFO


def test_post_malformed_json_is_acknowledged(client, store):
    response = client.post(
        "/webhooks/whatsapp",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json() == {"received": True, "type": "malformed-payload"}
    assert len(store) == 0


def test_post_wrong_shape_is_acknowledged(client):
    response = client.post("/webhooks/whatsapp", json={"entry": "nope"})
    assert response.status_code == 200
    assert response.json()["type"] == "malformed-payload"


def test_post_status_update_is_non_message_event(client, store, messenger):
    payload = {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "changes": [
                    {
                        "field": "messages",
                        "value": {"statuses": [{"id": "wamid.out1", "status": "delivered"}]},
                    }
                ]
            }
        ],
    }
    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.json() == {"received": True, "type": "non-message-event"}
    assert len(store) == 0
    assert messenger.sent == []


def test_bad_message_does_not_block_the_rest(client, store):
    broken = {"from": "56900000000", "id": "wamid.broken", "type": "image"}  # no image body
    payload = webhook_payload(
        [
            broken,
            text_message("hola", sender="56911110000", message_id="wamid.a"),
            text_message("hola", sender="56922220000", message_id="wamid.b"),
        ]
    )

    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.json()["count"] == 3
    assert "56900000000" not in store
    assert "56911110000" in store
    assert "56922220000" in store


@pytest.mark.asyncio
async def test_process_messages_isolates_handler_errors(deps, store, messenger, monkeypatch):
    calls = []

    async def flaky_handler(deps, message):
        calls.append(message.sender)
        if message.sender == "56911110000":
            raise RuntimeError("boom")
        return {"status": "ok", "current_step": STEP_WELCOME}

    monkeypatch.setattr("app.api.webhooks.handle_inbound_message", flaky_handler)

    results = await process_messages(
        deps,
        [
            text_message("hola", sender="56911110000", message_id="wamid.a"),
            image_message("media-1", sender="56922220000", message_id="wamid.b"),
        ],
        correlation_id="cid-1",
    )

    assert calls == ["56911110000", "56922220000"]
    assert results == [{"status": "ok", "current_step": STEP_WELCOME}]


@pytest.mark.asyncio
async def test_process_messages_skips_malformed(deps, store):
    results = await process_messages(
        deps,
        [{"type": "text", "text": {"body": "sin remitente"}}, text_message("hola")],
    )
    assert [result["status"] for result in results] == ["welcome_sent"]
    assert len(store) == 1
    assert DEFAULT_SENDER in store
