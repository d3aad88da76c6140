"""
Expiry sweep for idle conversations.

Deletes conversation state whose last update is older than the TTL (default 24h).
Runs inside the app as a periodic asyncio task (started on startup, cancelled on
shutdown). The CLI entrypoint runs one sweep against a fresh store, which only
makes sense for smoke-testing the job wiring since state lives in process memory.

Run via: python -m app.jobs.expire_conversations [--ttl-hours 24]
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from app.constants.event_types import EVENT_CONVERSATIONS_EXPIRED
from app.services.state_store import ConversationStateStore

logger = logging.getLogger(__name__)


def run_sweep(store: ConversationStateStore, ttl_hours: int = 24) -> int:
    """
    Delete records idle for longer than ttl_hours.

    Returns:
        Number of records deleted
    """
    deleted = store.sweep_expired(timedelta(hours=ttl_hours))
    logger.info(
        f"Expiry sweep completed: deleted {deleted} conversation(s), {len(store)} remaining",
        extra={"event_type": EVENT_CONVERSATIONS_EXPIRED},
    )
    return deleted


async def run_periodic_sweep(
    store: ConversationStateStore,
    ttl_hours: int = 24,
    interval_seconds: float = 3600,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> None:
    """Sweep every interval_seconds until cancelled. A failing sweep is logged and retried next tick."""
    while True:
        await sleep(interval_seconds)
        try:
            run_sweep(store, ttl_hours=ttl_hours)
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)


def main() -> None:
    """CLI entrypoint for a single expiry sweep."""
    import argparse

    parser = argparse.ArgumentParser(description="Delete idle conversation state")
    parser.add_argument(
        "--ttl-hours",
        type=int,
        default=24,
        help="Delete conversations idle for longer than this many hours (default: 24)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        run_sweep(ConversationStateStore(), ttl_hours=args.ttl_hours)
    except Exception as e:
        logger.error(f"Expiry sweep failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
