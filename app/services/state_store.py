"""
In-memory conversation state store - one record per phone number.

Constructed explicitly (app.state.store in main.py) and injected where needed;
there is no module-level instance. State is ephemeral: a restart loses it and
the expiry sweep deletes records idle for longer than the TTL.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from app.constants.steps import STEP_WELCOME
from app.services.parsing.pricing_service import PricingResult
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ConversationState:
    """Progress of one user through the intake flow."""

    user_phone: str
    current_step: str = STEP_WELCOME
    service_type: str | None = None
    answers: dict[str, Any] = field(default_factory=dict)
    media_urls: list[str] = field(default_factory=list)
    pricing: PricingResult | None = None
    confirmed: bool = False
    created_at: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation (admin/demo responses)."""
        return {
            "user_phone": self.user_phone,
            "current_step": self.current_step,
            "service_type": self.service_type,
            "answers": dict(self.answers),
            "media_urls": list(self.media_urls),
            "pricing": self.pricing.to_payload() if self.pricing else None,
            "confirmed": self.confirmed,
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
        }


class ConversationStateStore:
    """
    Mapping phone -> ConversationState with mutation helpers.

    Every mutation refreshes last_updated. Reads via get() do not.
    No locking: concurrent handlers for the same phone are last-write-wins.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._states: dict[str, ConversationState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, user_phone: str) -> bool:
        return user_phone in self._states

    def _touch(self, state: ConversationState) -> ConversationState:
        state.last_updated = self._clock()
        return state

    def get(self, user_phone: str) -> ConversationState | None:
        return self._states.get(user_phone)

    def get_or_create(self, user_phone: str) -> ConversationState:
        """Return the record for user_phone, materializing a welcome record if unseen."""
        state = self._states.get(user_phone)
        if state is None:
            now = self._clock()
            state = ConversationState(user_phone=user_phone, created_at=now, last_updated=now)
            self._states[user_phone] = state
            logger.info(f"Created conversation state for {user_phone}")
        return state

    def set_step(self, user_phone: str, step: str) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.current_step = step
        return self._touch(state)

    def set_service_type(self, user_phone: str, service_type: str) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.service_type = service_type
        return self._touch(state)

    def set_answer(self, user_phone: str, key: str, value: Any) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.answers[key] = value
        return self._touch(state)

    def remove_answer(self, user_phone: str, key: str) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.answers.pop(key, None)
        return self._touch(state)

    def add_media_url(self, user_phone: str, url: str) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.media_urls.append(url)
        return self._touch(state)

    def set_pricing(self, user_phone: str, pricing: PricingResult | None) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.pricing = pricing
        return self._touch(state)

    def confirm(self, user_phone: str) -> ConversationState:
        state = self.get_or_create(user_phone)
        state.confirmed = True
        return self._touch(state)

    def reset(self, user_phone: str) -> ConversationState:
        """Drop everything for user_phone and start again at welcome."""
        self._states.pop(user_phone, None)
        return self.get_or_create(user_phone)

    def delete(self, user_phone: str) -> bool:
        """Remove the record; True if one existed."""
        return self._states.pop(user_phone, None) is not None

    def all_leads(self) -> list[ConversationState]:
        """All records, oldest first."""
        return sorted(self._states.values(), key=lambda s: s.created_at)

    def sweep_expired(self, ttl: timedelta, now: datetime | None = None) -> int:
        """
        Delete records whose last_updated is older than ttl.

        Args:
            ttl: Idle time after which a record is deleted
            now: Reference time (defaults to the store clock)

        Returns:
            Number of records deleted
        """
        if now is None:
            now = self._clock()
        cutoff = now - ttl
        expired = [phone for phone, state in self._states.items() if state.last_updated < cutoff]
        for phone in expired:
            del self._states[phone]
        if expired:
            logger.info(f"Expired {len(expired)} conversation state(s) idle since before {cutoff.isoformat()}")
        return len(expired)
