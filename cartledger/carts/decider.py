"""Cart decisions: turn a command plus the current cart into new events.

Pure functions. They check the business rules the projector trusts the
caller to enforce (no removing what is not there) and reject any command
on a confirmed or canceled cart.
"""

from datetime import datetime

from cartledger.errors import (
    InsufficientQuantityError,
    InvalidStateTransitionError,
    ProductItemNotFoundError,
)
from cartledger.models import (
    CartStatus,
    PricedProductItem,
    ProductItemAddedToShoppingCart,
    ProductItemRemovedFromShoppingCart,
    ShoppingCart,
    ShoppingCartCanceled,
    ShoppingCartConfirmed,
    ShoppingCartOpened,
)


def open_cart(cart_id: str, client_id: str) -> list[ShoppingCartOpened]:
    return [ShoppingCartOpened(shopping_cart_id=cart_id, client_id=client_id)]


def add_product_item(
    cart: ShoppingCart, item: PricedProductItem
) -> list[ProductItemAddedToShoppingCart]:
    _ensure_pending(cart, "product-item-added-to-shopping-cart")
    return [ProductItemAddedToShoppingCart(shopping_cart_id=cart.id, product_item=item)]


def remove_product_item(
    cart: ShoppingCart, item: PricedProductItem
) -> list[ProductItemRemovedFromShoppingCart]:
    _ensure_pending(cart, "product-item-removed-from-shopping-cart")
    current = cart.find_item(item.product_id)
    if current is None:
        raise ProductItemNotFoundError(item.product_id)
    if item.quantity > current.quantity:
        raise InsufficientQuantityError(item.product_id, item.quantity, current.quantity)
    return [ProductItemRemovedFromShoppingCart(shopping_cart_id=cart.id, product_item=item)]


def confirm(cart: ShoppingCart, now: datetime) -> list[ShoppingCartConfirmed]:
    _ensure_pending(cart, "shopping-cart-confirmed")
    return [ShoppingCartConfirmed(shopping_cart_id=cart.id, confirmed_at=now)]


def cancel(cart: ShoppingCart, now: datetime) -> list[ShoppingCartCanceled]:
    _ensure_pending(cart, "shopping-cart-canceled")
    return [ShoppingCartCanceled(shopping_cart_id=cart.id, canceled_at=now)]


def _ensure_pending(cart: ShoppingCart, event_type: str) -> None:
    if cart.status is not CartStatus.PENDING:
        raise InvalidStateTransitionError(event_type, cart.status.value)
