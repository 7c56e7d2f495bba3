"""Durable client-side storage."""

from pm_sync.storage.local_store import (
    AUTH_TOKEN_KEY,
    CALENDAR_EVENTS_KEY,
    KeyValueStore,
    LocalStore,
    MemoryStore,
)

__all__ = [
    "AUTH_TOKEN_KEY",
    "CALENDAR_EVENTS_KEY",
    "KeyValueStore",
    "LocalStore",
    "MemoryStore",
]
