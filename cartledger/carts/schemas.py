"""Request and response schemas for cart endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from cartledger.models import CartStatus, PricedProductItem, ShoppingCart, StreamRecord

# -- Requests --


class OpenCartRequest(BaseModel):
    client_id: str
    cart_id: str | None = None


class ProductItemRequest(BaseModel):
    """Body for adding or removing units of one product."""

    product_id: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)

    def to_item(self) -> PricedProductItem:
        return PricedProductItem(
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


# -- Responses --


class ProductItemResponse(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class CartResponse(BaseModel):
    cart_id: str
    client_id: str
    status: CartStatus
    product_items: list[ProductItemResponse]
    total_price: Decimal
    confirmed_at: datetime | None = None
    canceled_at: datetime | None = None
    revision: int

    @classmethod
    def from_cart(cls, cart: ShoppingCart, revision: int) -> "CartResponse":
        return cls(
            cart_id=cart.id,
            client_id=cart.client_id,
            status=cart.status,
            product_items=[
                ProductItemResponse(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in cart.product_items
            ],
            total_price=cart.total_price,
            confirmed_at=cart.confirmed_at,
            canceled_at=cart.canceled_at,
            revision=revision,
        )


class StreamRecordResponse(BaseModel):
    revision: int
    event_id: str
    event_type: str
    payload: dict[str, Any]
    recorded_at: datetime

    @classmethod
    def from_record(cls, record: StreamRecord) -> "StreamRecordResponse":
        return cls(
            revision=record.revision,
            event_id=record.event_id,
            event_type=record.event_type,
            payload=record.payload,
            recorded_at=record.recorded_at,
        )
