"""Booking store backends."""

from __future__ import annotations

from .base import BookingStore
from .memory import MemoryBookingStore
from .sql import SqlBookingStore

__all__ = ["BookingStore", "MemoryBookingStore", "SqlBookingStore", "create_store"]


def create_store(settings) -> BookingStore:
    """Build the store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        return MemoryBookingStore()
    if settings.storage_backend == "sql":
        return SqlBookingStore(settings.database_url, echo=settings.database_echo)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
