"""
Request correlation for webhook traffic.

Every HTTP request gets an id (the caller's X-Correlation-ID when usable,
otherwise a fresh UUID). Background processing of WhatsApp messages runs
inside ``correlation_scope`` so its log lines carry the same id.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

HEADER_CORRELATION_ID = "X-Correlation-ID"
MAX_CORRELATION_ID_LENGTH = 128

_current_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def resolve_correlation_id(incoming: str | None) -> str:
    """Use the caller's id when it is non-blank and short enough, else mint one."""
    candidate = (incoming or "").strip()
    if candidate and len(candidate) <= MAX_CORRELATION_ID_LENGTH:
        return candidate
    return str(uuid.uuid4())


def get_correlation_id(request: Request | None = None) -> str | None:
    if request is not None:
        cid = getattr(request.state, "correlation_id", None)
        if cid:
            return cid
    return _current_correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None) -> Iterator[str | None]:
    """Bind ``correlation_id`` for the duration of the block, then restore the previous one."""
    token = _current_correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _current_correlation_id.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        cid = resolve_correlation_id(request.headers.get(HEADER_CORRELATION_ID))
        request.state.correlation_id = cid
        with correlation_scope(cid):
            response = await call_next(request)
        response.headers[HEADER_CORRELATION_ID] = cid
        return response
