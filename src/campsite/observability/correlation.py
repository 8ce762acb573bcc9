"""Correlation ID management for tracing one reservation operation."""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Visible to every log record emitted inside the same context.
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block.

    Reuses the ID already bound by an outer caller when ``cid`` is None, and
    generates one when there is none.
    """
    cid = cid or get_correlation_id() or generate_correlation_id()
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)
