"""Canonical value objects, event types, and stream records for cartledger.

Defined once here, referenced everywhere else. Events are the type-specific
facts about one shopping cart; ``EventData`` is what gets proposed to a
store, and ``StreamRecord`` is what a store hands back.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from cartledger.errors import EventDecodingError, UnknownEventTypeError

# Wire payloads use camelCase keys; Python code uses field names.
_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class PricedProductItem(BaseModel):
    model_config = _WIRE_CONFIG

    product_id: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


class CartStatus(str, Enum):
    """Mutually exclusive cart states. Confirmed and Canceled are terminal."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELED = "Canceled"


class ShoppingCart(BaseModel):
    """Cart state rebuilt from its stream. Never persisted directly."""

    model_config = ConfigDict(frozen=True)

    id: str
    client_id: str
    status: CartStatus = CartStatus.PENDING
    product_items: tuple[PricedProductItem, ...] = ()
    confirmed_at: datetime | None = None
    canceled_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not CartStatus.PENDING

    @property
    def total_price(self) -> Decimal:
        return sum((item.total_price for item in self.product_items), Decimal(0))

    def find_item(self, product_id: str) -> PricedProductItem | None:
        for item in self.product_items:
            if item.product_id == product_id:
                return item
        return None


# ---------------------------------------------------------------------------
# Events, one per fact
# ---------------------------------------------------------------------------


class ShoppingCartOpened(BaseModel):
    model_config = _WIRE_CONFIG

    type: Literal["shopping-cart-opened"] = "shopping-cart-opened"
    shopping_cart_id: str
    client_id: str


class ProductItemAddedToShoppingCart(BaseModel):
    model_config = _WIRE_CONFIG

    type: Literal["product-item-added-to-shopping-cart"] = "product-item-added-to-shopping-cart"
    shopping_cart_id: str
    product_item: PricedProductItem


class ProductItemRemovedFromShoppingCart(BaseModel):
    model_config = _WIRE_CONFIG

    type: Literal["product-item-removed-from-shopping-cart"] = (
        "product-item-removed-from-shopping-cart"
    )
    shopping_cart_id: str
    product_item: PricedProductItem


class ShoppingCartConfirmed(BaseModel):
    model_config = _WIRE_CONFIG

    type: Literal["shopping-cart-confirmed"] = "shopping-cart-confirmed"
    shopping_cart_id: str
    confirmed_at: datetime


class ShoppingCartCanceled(BaseModel):
    model_config = _WIRE_CONFIG

    type: Literal["shopping-cart-canceled"] = "shopping-cart-canceled"
    shopping_cart_id: str
    canceled_at: datetime


CartEvent = Annotated[
    ShoppingCartOpened
    | ProductItemAddedToShoppingCart
    | ProductItemRemovedFromShoppingCart
    | ShoppingCartConfirmed
    | ShoppingCartCanceled,
    Field(discriminator="type"),
]

# ---------------------------------------------------------------------------
# Event type registry
# ---------------------------------------------------------------------------

EVENT_TYPES: dict[str, type[BaseModel]] = {
    "shopping-cart-opened": ShoppingCartOpened,
    "product-item-added-to-shopping-cart": ProductItemAddedToShoppingCart,
    "product-item-removed-from-shopping-cart": ProductItemRemovedFromShoppingCart,
    "shopping-cart-confirmed": ShoppingCartConfirmed,
    "shopping-cart-canceled": ShoppingCartCanceled,
}


# ---------------------------------------------------------------------------
# Store-level records
# ---------------------------------------------------------------------------


class EventData(BaseModel):
    """An event proposed for append. The store assigns its revision."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    payload: dict[str, Any]
    metadata: dict[str, Any] | None = None


class StreamRecord(BaseModel):
    """An event as stored: positioned in its stream by a 0-based revision."""

    model_config = ConfigDict(frozen=True)

    stream_name: str
    revision: int
    event_id: str
    event_type: str
    payload: dict[str, Any]
    metadata: dict[str, Any] | None = None
    recorded_at: datetime


def to_event_data(
    event: CartEvent, metadata: dict[str, Any] | None = None
) -> EventData:
    """Serialize an event into a self-describing, JSON-safe record."""
    return EventData(
        event_type=event.type,
        payload=event.model_dump(mode="json", by_alias=True, exclude={"type"}),
        metadata=metadata,
    )


def from_record(record: StreamRecord | EventData) -> CartEvent:
    """Deserialize a stored record back into the event it was built from."""
    event_cls = EVENT_TYPES.get(record.event_type)
    if event_cls is None:
        raise UnknownEventTypeError(record.event_type)
    try:
        return event_cls.model_validate(record.payload)
    except ValidationError as e:
        raise EventDecodingError(record.event_type, str(e)) from e
