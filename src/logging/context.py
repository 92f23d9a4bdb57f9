# src/logging/context.py — v2
"""Contextual logging support: attach user, resource and fingerprint to records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Set per request; copied into tasks and worker threads automatically.
_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_resource_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "resource_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    user_id: str | None = None
    resource_id: str | None = None
    fingerprint: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        user_id=_user_id.get(),
        resource_id=_resource_id.get(),
        fingerprint=_fingerprint.get(),
        operation=_operation.get(),
    )


@contextmanager
def request_context(
    operation: str,
    user_id: str,
    resource_id: str | None = None,
    fingerprint: str | None = None,
) -> Iterator[None]:
    """Bind request fields for the duration of the block."""
    tokens = [
        (_operation, _operation.set(operation)),
        (_user_id, _user_id.set(user_id)),
        (_resource_id, _resource_id.set(resource_id)),
        (_fingerprint, _fingerprint.set(fingerprint)),
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _user_id.set(None)
    _resource_id.set(None)
    _fingerprint.set(None)
    _operation.set(None)
