"""Request identifier bookkeeping.

Middleware stores one identifier per request in a ``ContextVar``; error
handlers read it back so the JSON error body and the ``X-Request-ID`` header
always agree. A sidebar client may send its own ``X-Request-ID`` to correlate
its logs with ours; anything that does not look like an opaque token is
replaced by a fresh UUID.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "clear_request_id",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("sidebar_request_id", default="")

_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(client_value: str | None) -> str:
    """Reuse a well-formed client identifier, otherwise mint a UUID."""

    if client_value and _CLIENT_REQUEST_ID.fullmatch(client_value):
        return client_value
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    """Return the identifier of the current request, or an empty string."""

    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
