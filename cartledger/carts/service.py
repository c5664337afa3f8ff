"""Cart service: runs each command as one load, decide, save cycle."""

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from uuid import uuid4

from cartledger.carts import decider
from cartledger.carts.repository import CartRepository
from cartledger.carts.schemas import (
    CartResponse,
    OpenCartRequest,
    ProductItemRequest,
    StreamRecordResponse,
)
from cartledger.events.projector import evolve, reconstruct
from cartledger.models import CartEvent, ShoppingCart

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_cart_id() -> str:
    return str(uuid4())


class CartService:
    """Coordinates the repository and the decision functions for cart commands.

    Conflicts from a concurrent writer propagate to the caller; nothing here
    retries.
    """

    def __init__(
        self,
        repository: CartRepository,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_cart_id,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._id_factory = id_factory

    async def open_cart(self, request: OpenCartRequest) -> CartResponse:
        """Open a new cart. Emits ShoppingCartOpened on a fresh stream."""
        cart_id = request.cart_id or self._id_factory()
        events = decider.open_cart(cart_id, request.client_id)
        revision = await self._repository.create(cart_id, events)
        logger.info("Opened cart %s for client %s", cart_id, request.client_id)
        return CartResponse.from_cart(reconstruct(events), revision)

    async def get_cart(self, cart_id: str) -> CartResponse:
        cart, revision = await self._repository.load(cart_id)
        return CartResponse.from_cart(cart, revision)

    async def get_events(self, cart_id: str) -> list[StreamRecordResponse]:
        records = await self._repository.load_records(cart_id)
        return [StreamRecordResponse.from_record(record) for record in records]

    async def add_product_item(
        self, cart_id: str, request: ProductItemRequest
    ) -> CartResponse:
        item = request.to_item()
        return await self._handle(cart_id, lambda cart: decider.add_product_item(cart, item))

    async def remove_product_item(
        self, cart_id: str, request: ProductItemRequest
    ) -> CartResponse:
        item = request.to_item()
        return await self._handle(cart_id, lambda cart: decider.remove_product_item(cart, item))

    async def confirm(self, cart_id: str) -> CartResponse:
        return await self._handle(cart_id, lambda cart: decider.confirm(cart, self._clock()))

    async def cancel(self, cart_id: str) -> CartResponse:
        return await self._handle(cart_id, lambda cart: decider.cancel(cart, self._clock()))

    async def _handle(
        self,
        cart_id: str,
        decide: Callable[[ShoppingCart], Sequence[CartEvent]],
    ) -> CartResponse:
        cart, observed_revision = await self._repository.load(cart_id)
        events = decide(cart)
        revision = await self._repository.save(cart_id, observed_revision, events)
        logger.info(
            "Cart %s: appended %s at revision %s",
            cart_id, [event.type for event in events], revision,
        )
        return CartResponse.from_cart(evolve(cart, events), revision)
