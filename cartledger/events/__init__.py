"""Event sourcing: append-only event stores and cart state projection."""

from cartledger.events.memory import InMemoryEventStore
from cartledger.events.projector import apply, evolve, reconstruct
from cartledger.events.store import (
    Direction,
    EventStoreClient,
    ExpectedRevision,
    SqliteEventStore,
    StreamPosition,
    StreamState,
)

__all__ = [
    "Direction",
    "EventStoreClient",
    "ExpectedRevision",
    "InMemoryEventStore",
    "SqliteEventStore",
    "StreamPosition",
    "StreamState",
    "apply",
    "evolve",
    "reconstruct",
]
