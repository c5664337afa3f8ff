"""Append-only event store: the per-stream contract and its SQLite backing.

Each stream is an ordered log addressed by name. Records carry a 0-based
``revision`` that doubles as the optimistic-concurrency token: an append
names the revision it expects the stream to be at, and the store refuses
it if another writer got there first.
"""

import json
import logging
import sqlite3
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from cartledger.db.connection import Database
from cartledger.errors import (
    ConcurrencyConflictError,
    DuplicateEventError,
    StreamNotFoundError,
    TransientStoreError,
)
from cartledger.models import EventData, StreamRecord

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """Expected-revision values that are not an exact revision."""

    NO_STREAM = "no_stream"
    ANY = "any"
    STREAM_EXISTS = "stream_exists"


class StreamPosition(str, Enum):
    START = "start"
    END = "end"


class Direction(str, Enum):
    FORWARDS = "forwards"
    BACKWARDS = "backwards"


ExpectedRevision = StreamState | int


class EventStoreClient(Protocol):
    """What the repository needs from a store, whatever the transport."""

    async def append(
        self,
        stream_name: str,
        expected_revision: ExpectedRevision,
        events: Sequence[EventData],
    ) -> int:
        """Append events as one contiguous block; return the last revision.

        Raises ConcurrencyConflictError if the stream is not at
        ``expected_revision``.
        """
        ...

    def read_stream(
        self,
        stream_name: str,
        from_revision: StreamPosition | int | None = None,
        direction: Direction = Direction.FORWARDS,
        max_count: int | None = None,
    ) -> AsyncIterator[StreamRecord]:
        """Yield records lazily in revision order.

        Raises StreamNotFoundError (on first iteration) if nothing was ever
        appended to the stream.
        """
        ...

    async def current_revision(self, stream_name: str) -> int | None:
        """Revision of the last record, or None if the stream does not exist."""
        ...


def check_expected_revision(
    stream_name: str, expected: ExpectedRevision, actual: int | None
) -> None:
    """Raise ConcurrencyConflictError unless ``actual`` satisfies ``expected``."""
    if expected is StreamState.ANY:
        return
    if expected is StreamState.NO_STREAM:
        matches = actual is None
    elif expected is StreamState.STREAM_EXISTS:
        matches = actual is not None
    else:
        matches = actual == expected
    if not matches:
        logger.warning(
            "Concurrency conflict on %s: expected %s, actual %s",
            stream_name, expected, actual,
        )
        raise ConcurrencyConflictError(stream_name, expected, actual)


def plan_read(
    from_revision: StreamPosition | int | None,
    direction: Direction,
    last_revision: int,
    max_count: int | None,
) -> range:
    """Revisions a read will visit, in the order it visits them.

    Bounded by ``last_revision`` as observed when the read starts, so a read
    always sees a prefix of the stream and always terminates.
    """
    if max_count is not None and max_count < 0:
        raise ValueError(f"max_count must be >= 0, got {max_count}")
    if isinstance(from_revision, int) and from_revision < 0:
        raise ValueError(f"from_revision must be >= 0, got {from_revision}")

    if direction is Direction.FORWARDS:
        if from_revision is None or from_revision is StreamPosition.START:
            start = 0
        elif from_revision is StreamPosition.END:
            start = last_revision + 1
        else:
            start = from_revision
        revisions = range(start, last_revision + 1)
    else:
        if from_revision is None or from_revision is StreamPosition.END:
            start = last_revision
        elif from_revision is StreamPosition.START:
            start = -1
        else:
            start = min(from_revision, last_revision)
        revisions = range(start, -1, -1)

    if max_count is not None:
        revisions = revisions[:max_count]
    return revisions


class SqliteEventStore:
    """Durable event store backed by SQLite. The write side of the cart model."""

    def __init__(self, db: Database, page_size: int = 500) -> None:
        self._db = db
        self._page_size = page_size

    async def append(
        self,
        stream_name: str,
        expected_revision: ExpectedRevision,
        events: Sequence[EventData],
    ) -> int:
        """Append events atomically and return the revision of the last one."""
        if not events:
            raise ValueError("append requires at least one event")
        event_ids = [e.event_id for e in events]
        if len(set(event_ids)) != len(event_ids):
            raise DuplicateEventError(_first_repeated(event_ids))

        recorded_at = datetime.now(UTC).isoformat()
        try:
            async with self._db.transaction() as conn:
                actual = await self._last_revision(conn, stream_name)
                check_expected_revision(stream_name, expected_revision, actual)
                await self._ensure_new_event_ids(conn, event_ids)

                next_revision = 0 if actual is None else actual + 1
                await conn.executemany(
                    """
                    INSERT INTO events
                        (event_id, stream_name, revision, event_type, payload,
                         metadata, recorded_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            event.event_id,
                            stream_name,
                            next_revision + offset,
                            event.event_type,
                            json.dumps(event.payload),
                            json.dumps(event.metadata) if event.metadata is not None else None,
                            recorded_at,
                        )
                        for offset, event in enumerate(events)
                    ],
                )
        except sqlite3.IntegrityError as e:
            # Another process took the revision between our check and insert.
            logger.warning("Revision collision on %s: %s", stream_name, e)
            raise ConcurrencyConflictError(
                stream_name, expected_revision, await self.current_revision(stream_name)
            ) from e
        except sqlite3.OperationalError as e:
            logger.warning("Append to %s failed: %s", stream_name, e)
            raise TransientStoreError(f"Append to {stream_name} failed: {e}") from e

        last_revision = next_revision + len(events) - 1
        logger.debug(
            "Appended %d event(s) to %s, now at revision %d",
            len(events), stream_name, last_revision,
        )
        return last_revision

    async def read_stream(
        self,
        stream_name: str,
        from_revision: StreamPosition | int | None = None,
        direction: Direction = Direction.FORWARDS,
        max_count: int | None = None,
    ) -> AsyncIterator[StreamRecord]:
        """Yield a stream's records page by page, in revision order."""
        last_revision = await self.current_revision(stream_name)
        if last_revision is None:
            raise StreamNotFoundError(stream_name)

        revisions = plan_read(from_revision, direction, last_revision, max_count)
        order = "ASC" if direction is Direction.FORWARDS else "DESC"
        for offset in range(0, len(revisions), self._page_size):
            page = revisions[offset:offset + self._page_size]
            low, high = min(page[0], page[-1]), max(page[0], page[-1])
            try:
                rows = await self._db.fetchall(
                    "SELECT * FROM events WHERE stream_name = ? "
                    f"AND revision BETWEEN ? AND ? ORDER BY revision {order}",
                    (stream_name, low, high),
                )
            except sqlite3.OperationalError as e:
                raise TransientStoreError(f"Read of {stream_name} failed: {e}") from e
            for row in rows:
                yield self._row_to_record(row)

    async def current_revision(self, stream_name: str) -> int | None:
        try:
            row = await self._db.fetchone(
                "SELECT MAX(revision) AS revision FROM events WHERE stream_name = ?",
                (stream_name,),
            )
        except sqlite3.OperationalError as e:
            raise TransientStoreError(f"Read of {stream_name} failed: {e}") from e
        return row["revision"] if row is not None else None

    @staticmethod
    async def _last_revision(conn, stream_name: str) -> int | None:
        cursor = await conn.execute(
            "SELECT MAX(revision) AS revision FROM events WHERE stream_name = ?",
            (stream_name,),
        )
        row = await cursor.fetchone()
        return row["revision"] if row is not None else None

    @staticmethod
    async def _ensure_new_event_ids(conn, event_ids: list[str]) -> None:
        placeholders = ", ".join("?" for _ in event_ids)
        cursor = await conn.execute(
            f"SELECT event_id FROM events WHERE event_id IN ({placeholders}) LIMIT 1",
            tuple(event_ids),
        )
        row = await cursor.fetchone()
        if row is not None:
            raise DuplicateEventError(row["event_id"])

    @staticmethod
    def _row_to_record(row) -> StreamRecord:
        """Convert a database row to a StreamRecord."""
        return StreamRecord(
            stream_name=row["stream_name"],
            revision=row["revision"],
            event_id=row["event_id"],
            event_type=row["event_type"],
            payload=json.loads(row["payload"]),
            metadata=json.loads(row["metadata"]) if row["metadata"] is not None else None,
            recorded_at=row["recorded_at"],
        )


def _first_repeated(values: list[str]) -> str:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            return value
        seen.add(value)
    raise ValueError("no repeated value")
