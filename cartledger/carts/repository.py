"""Cart repository: loads carts from their streams and appends new events.

The seam between storage and domain. A missing stream becomes
CartNotFoundError here, and a history that fails to fold becomes
CorruptStreamError. Concurrency conflicts pass through untouched. The
repository never retries: a retry has to re-run the decision against a
freshly loaded cart, which only the caller can do.
"""

import logging
from collections.abc import Sequence

from cartledger.errors import (
    CartMismatchError,
    CartNotFoundError,
    CorruptStreamError,
    DomainError,
    StreamNotFoundError,
)
from cartledger.events.projector import reconstruct
from cartledger.events.store import EventStoreClient, ExpectedRevision, StreamState
from cartledger.models import (
    CartEvent,
    ShoppingCart,
    StreamRecord,
    from_record,
    to_event_data,
)

logger = logging.getLogger(__name__)

STREAM_PREFIX = "shopping_cart"


def stream_name_for(cart_id: str) -> str:
    """One stream per cart, named from the aggregate kind and its id."""
    return f"{STREAM_PREFIX}-{cart_id}"


class CartRepository:
    def __init__(self, store: EventStoreClient) -> None:
        self._store = store

    async def load(self, cart_id: str) -> tuple[ShoppingCart, int]:
        """Rebuild a cart and return it with the revision it was read at.

        A stored history the state machine rejects is reported as
        CorruptStreamError, never as the DomainError a new command would get.
        """
        records = await self.load_records(cart_id)
        try:
            cart = reconstruct(from_record(record) for record in records)
        except DomainError as e:
            stream_name = stream_name_for(cart_id)
            logger.error("Cannot fold %s: %s", stream_name, e)
            raise CorruptStreamError(stream_name, str(e)) from e
        return cart, records[-1].revision

    async def load_records(self, cart_id: str) -> list[StreamRecord]:
        """Read a cart's full stream, oldest first."""
        stream_name = stream_name_for(cart_id)
        try:
            records = [record async for record in self._store.read_stream(stream_name)]
        except StreamNotFoundError as e:
            raise CartNotFoundError(cart_id) from e
        logger.debug("Read %d event(s) from %s", len(records), stream_name)
        return records

    async def save(
        self,
        cart_id: str,
        observed_revision: ExpectedRevision,
        new_events: Sequence[CartEvent],
    ) -> ExpectedRevision:
        """Append events on condition the stream is still at ``observed_revision``.

        Returns the stream's new revision, or ``observed_revision`` unchanged
        when there is nothing to append.
        """
        if not new_events:
            return observed_revision
        for event in new_events:
            if event.shopping_cart_id != cart_id:
                raise CartMismatchError(cart_id, event.shopping_cart_id)
        return await self._store.append(
            stream_name_for(cart_id),
            observed_revision,
            [to_event_data(event) for event in new_events],
        )

    async def create(self, cart_id: str, new_events: Sequence[CartEvent]) -> ExpectedRevision:
        """Start a new cart stream. Conflicts if the stream already exists."""
        return await self.save(cart_id, StreamState.NO_STREAM, new_events)
