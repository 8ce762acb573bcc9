"""Shared pytest fixtures for campsite tests."""
import sys
sys.dont_write_bytecode = True

from datetime import date  # noqa: E402

import pytest  # noqa: E402

from campsite.domain.manager import ReservationManager  # noqa: E402
from campsite.infra.repositories.memory_repository import InMemoryReservationStore  # noqa: E402

TODAY = date(2024, 1, 1)


@pytest.fixture
def store():
    """Fresh in-memory store with a short lock wait."""
    return InMemoryReservationStore(lock_timeout=2.0)


@pytest.fixture
def manager(store):
    """Manager whose clock is pinned to 2024-01-01."""
    return ReservationManager(store, today=lambda: TODAY)
