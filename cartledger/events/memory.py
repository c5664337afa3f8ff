"""In-memory event store implementing the same contract as SqliteEventStore.

Good for: unit tests, local development, exercising the repository without
a database. No persistence across restarts.
"""

import asyncio
import copy
import logging
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime

from cartledger.errors import DuplicateEventError, StreamNotFoundError
from cartledger.events.store import (
    Direction,
    ExpectedRevision,
    StreamPosition,
    check_expected_revision,
    plan_read,
)
from cartledger.models import EventData, StreamRecord

logger = logging.getLogger(__name__)


class InMemoryEventStore:
    """Dict-of-lists event store. Appends are linearized by one lock."""

    def __init__(self) -> None:
        self._streams: dict[str, list[StreamRecord]] = {}
        self._event_ids: set[str] = set()
        self._lock = asyncio.Lock()

    async def append(
        self,
        stream_name: str,
        expected_revision: ExpectedRevision,
        events: Sequence[EventData],
    ) -> int:
        if not events:
            raise ValueError("append requires at least one event")

        async with self._lock:
            stream = self._streams.get(stream_name)
            actual = len(stream) - 1 if stream else None
            check_expected_revision(stream_name, expected_revision, actual)

            batch_ids: set[str] = set()
            for event in events:
                if event.event_id in self._event_ids or event.event_id in batch_ids:
                    raise DuplicateEventError(event.event_id)
                batch_ids.add(event.event_id)

            next_revision = 0 if actual is None else actual + 1
            recorded_at = datetime.now(UTC)
            records = [
                StreamRecord(
                    stream_name=stream_name,
                    revision=next_revision + offset,
                    event_id=event.event_id,
                    event_type=event.event_type,
                    payload=copy.deepcopy(event.payload),
                    metadata=copy.deepcopy(event.metadata),
                    recorded_at=recorded_at,
                )
                for offset, event in enumerate(events)
            ]
            self._streams.setdefault(stream_name, []).extend(records)
            self._event_ids |= batch_ids

        logger.debug(
            "Appended %d event(s) to %s, now at revision %d",
            len(records), stream_name, records[-1].revision,
        )
        return records[-1].revision

    async def read_stream(
        self,
        stream_name: str,
        from_revision: StreamPosition | int | None = None,
        direction: Direction = Direction.FORWARDS,
        max_count: int | None = None,
    ) -> AsyncIterator[StreamRecord]:
        stream = self._streams.get(stream_name)
        if not stream:
            raise StreamNotFoundError(stream_name)
        for revision in plan_read(from_revision, direction, len(stream) - 1, max_count):
            yield stream[revision].model_copy(deep=True)

    async def current_revision(self, stream_name: str) -> int | None:
        stream = self._streams.get(stream_name)
        return len(stream) - 1 if stream else None

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        """Remove all streams. Testing only."""
        self._streams.clear()
        self._event_ids.clear()

    def __len__(self) -> int:
        return sum(len(stream) for stream in self._streams.values())
