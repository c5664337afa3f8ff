"""Shared test helpers."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

from cartledger.models import (
    CartEvent,
    EventData,
    PricedProductItem,
    ProductItemAddedToShoppingCart,
    ProductItemRemovedFromShoppingCart,
    ShoppingCartCanceled,
    ShoppingCartConfirmed,
    ShoppingCartOpened,
)

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53, tzinfo=UTC)


def make_item(
    product_id: str | None = None,
    quantity: int = 1,
    unit_price: str | int = 100,
) -> PricedProductItem:
    """Create a PricedProductItem for testing."""
    return PricedProductItem(
        product_id=product_id or str(uuid4()),
        quantity=quantity,
        unit_price=Decimal(unit_price),
    )


def make_opened(cart_id: str | None = None, client_id: str | None = None) -> ShoppingCartOpened:
    return ShoppingCartOpened(
        shopping_cart_id=cart_id or str(uuid4()),
        client_id=client_id or str(uuid4()),
    )


def make_all_events(cart_id: str | None = None) -> list[CartEvent]:
    """One event of every kind for a single cart (not a valid stream)."""
    cart_id = cart_id or str(uuid4())
    item = make_item("shoes", quantity=2, unit_price="99.95")
    return [
        make_opened(cart_id),
        ProductItemAddedToShoppingCart(shopping_cart_id=cart_id, product_item=item),
        ProductItemRemovedFromShoppingCart(shopping_cart_id=cart_id, product_item=item),
        ShoppingCartConfirmed(shopping_cart_id=cart_id, confirmed_at=FIXED_NOW),
        ShoppingCartCanceled(shopping_cart_id=cart_id, canceled_at=FIXED_NOW),
    ]


def make_shopping_history(cart_id: str, client_id: str) -> list[CartEvent]:
    """Open, add two pairs of shoes and a t-shirt, then remove one pair."""
    two_pairs_of_shoes = make_item("shoes", quantity=2, unit_price=100)
    pair_of_shoes = make_item("shoes", quantity=1, unit_price=100)
    t_shirt = make_item("t-shirt", quantity=1, unit_price=50)
    return [
        ShoppingCartOpened(shopping_cart_id=cart_id, client_id=client_id),
        ProductItemAddedToShoppingCart(shopping_cart_id=cart_id, product_item=two_pairs_of_shoes),
        ProductItemAddedToShoppingCart(shopping_cart_id=cart_id, product_item=t_shirt),
        ProductItemRemovedFromShoppingCart(shopping_cart_id=cart_id, product_item=pair_of_shoes),
    ]


def make_event_data(
    event_type: str = "shopping-cart-opened",
    **payload: Any,
) -> EventData:
    """Create raw EventData with an arbitrary payload."""
    return EventData(
        event_type=event_type,
        payload=payload or {"shoppingCartId": str(uuid4()), "clientId": str(uuid4())},
    )


# -- API-level helpers --


async def open_test_cart(client: AsyncClient, client_id: str = "client-1") -> dict:
    """Open a cart via the API and return the response JSON."""
    resp = await client.post("/api/carts", json={"client_id": client_id})
    assert resp.status_code == 201
    return resp.json()


async def add_test_item(
    client: AsyncClient,
    cart_id: str,
    product_id: str,
    quantity: int = 1,
    unit_price: str = "100",
) -> dict:
    resp = await client.post(f"/api/carts/{cart_id}/items", json={
        "product_id": product_id,
        "quantity": quantity,
        "unit_price": unit_price,
    })
    assert resp.status_code == 200
    return resp.json()
