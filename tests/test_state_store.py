"""
Tests for the in-memory conversation store and the expiry sweep.
"""

import logging
from datetime import UTC, datetime, timedelta

from freezegun import freeze_time

from app.constants.steps import STEP_COLLECTING_INFO, STEP_WELCOME
from app.jobs.expire_conversations import run_sweep
from app.services.parsing.pricing_service import PricingInput, calculate_pricing
from app.services.state_store import ConversationStateStore

PHONE = "56911112222"


def test_get_or_create_materializes_welcome_record(store):
    assert store.get(PHONE) is None
    state = store.get_or_create(PHONE)
    assert state.current_step == STEP_WELCOME
    assert state.answers == {}
    assert state.media_urls == []
    assert state.confirmed is False
    assert store.get_or_create(PHONE) is state
    assert len(store) == 1
    assert PHONE in store


def test_mutations_refresh_last_updated():
    with freeze_time("2026-10-15 10:00:00") as frozen:
        store = ConversationStateStore()
        state = store.get_or_create(PHONE)
        created = state.last_updated

        frozen.tick(timedelta(minutes=5))
        store.set_answer(PHONE, "comuna", "Providencia")
        assert state.last_updated == created + timedelta(minutes=5)
        assert state.created_at == created


def test_answers_keep_insertion_order(store):
    store.set_answer(PHONE, "comuna", "Providencia")
    store.set_answer(PHONE, "direccion", "No especificado")
    store.set_answer(PHONE, "fecha", "mañana")
    assert list(store.get(PHONE).answers) == ["comuna", "direccion", "fecha"]


def test_remove_answer(store):
    store.set_answer(PHONE, "comuna", "Providencia")
    store.remove_answer(PHONE, "comuna")
    store.remove_answer(PHONE, "missing")
    assert store.get(PHONE).answers == {}


def test_media_urls_are_append_only(store):
    store.add_media_url(PHONE, "https://media.example/1")
    store.add_media_url(PHONE, "https://media.example/2")
    assert store.get(PHONE).media_urls == ["https://media.example/1", "https://media.example/2"]


def test_reset_replaces_record(store):
    store.set_step(PHONE, STEP_COLLECTING_INFO)
    store.set_service_type(PHONE, "Hotel")
    store.set_answer(PHONE, "comuna", "Providencia")
    store.confirm(PHONE)

    fresh = store.reset(PHONE)
    assert fresh.current_step == STEP_WELCOME
    assert fresh.service_type is None
    assert fresh.answers == {}
    assert fresh.confirmed is False
    assert store.get(PHONE) is fresh


def test_delete(store):
    store.get_or_create(PHONE)
    assert store.delete(PHONE) is True
    assert store.delete(PHONE) is False
    assert store.get(PHONE) is None


def test_all_leads_sorted_by_creation():
    with freeze_time("2026-10-15 10:00:00") as frozen:
        store = ConversationStateStore()
        store.get_or_create("56900000002")
        frozen.tick(timedelta(minutes=1))
        store.get_or_create("56900000001")
        assert [s.user_phone for s in store.all_leads()] == ["56900000002", "56900000001"]


def test_to_dict_serializes_pricing(store):
    pricing = calculate_pricing(PricingInput(service_category="Hotel", space_count=2, locality="Santiago"))
    store.set_pricing(PHONE, pricing)
    data = store.get(PHONE).to_dict()
    assert data["pricing"]["min"] == 67000
    assert data["current_step"] == STEP_WELCOME
    assert isinstance(data["last_updated"], str)


# --- expiry sweep ---


def test_sweep_deletes_only_idle_records():
    with freeze_time("2026-10-15 10:00:00") as frozen:
        store = ConversationStateStore()
        store.get_or_create("56900000001")
        frozen.tick(timedelta(hours=20))
        store.get_or_create("56900000002")
        frozen.tick(timedelta(hours=5))

        deleted = store.sweep_expired(timedelta(hours=24))

        assert deleted == 1
        assert store.get("56900000001") is None
        assert store.get("56900000002") is not None


def test_sweep_keeps_record_exactly_at_ttl():
    store = ConversationStateStore()
    state = store.get_or_create(PHONE)
    now = state.last_updated + timedelta(hours=24)
    assert store.sweep_expired(timedelta(hours=24), now=now) == 0


def test_activity_postpones_expiry():
    with freeze_time("2026-10-15 10:00:00") as frozen:
        store = ConversationStateStore()
        store.get_or_create(PHONE)
        frozen.tick(timedelta(hours=23))
        store.set_answer(PHONE, "comuna", "Providencia")
        frozen.tick(timedelta(hours=23))
        assert store.sweep_expired(timedelta(hours=24)) == 0


def test_run_sweep_logs_expired_event(caplog):
    store = ConversationStateStore(clock=lambda: datetime(2026, 10, 15, 10, 0, tzinfo=UTC))
    store.get_or_create(PHONE)
    store._clock = lambda: datetime(2026, 10, 16, 11, 0, tzinfo=UTC)

    with caplog.at_level(logging.INFO, logger="app.jobs.expire_conversations"):
        deleted = run_sweep(store, ttl_hours=24)

    assert deleted == 1
    assert len(store) == 0
    records = [r for r in caplog.records if getattr(r, "event_type", None) == "conversations.expired"]
    assert len(records) == 1
