"""Wiring: settings → logging, store and clock → ReservationManager."""

from __future__ import annotations

from campsite.domain.manager import ReservationManager
from campsite.domain.store import ReservationStore
from campsite.infra.repositories.memory_repository import InMemoryReservationStore
from campsite.infra.repositories.reservations_repository import PostgresReservationStore
from campsite.infra.settings import Settings, load_settings
from campsite.infra.time import today_provider
from campsite.observability.logging import get_logger


def create_store(settings: Settings) -> ReservationStore:
    """Build the store selected by ``settings.storage``.

    Raises:
        RuntimeError: If the postgres backend is selected without DATABASE_URL.
    """
    if settings.storage == "memory":
        return InMemoryReservationStore(lock_timeout=settings.lock_timeout_ms / 1000)

    if not settings.database_url:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return PostgresReservationStore(
        settings.database_url,
        lock_timeout_ms=settings.lock_timeout_ms,
    )


def create_manager(settings: Settings | None = None) -> ReservationManager:
    """Create a ReservationManager from settings (default: environment)."""
    if settings is None:
        settings = load_settings()

    get_logger("campsite", settings.log_level)

    return ReservationManager(
        create_store(settings),
        today=today_provider(settings.timezone),
        max_attempts=settings.max_attempts,
    )
