"""Cart projector: folds a cart's events into its current state.

``apply`` is the state machine for a single event; ``reconstruct`` drives it
over a whole stream. Both are pure and synchronous. Neither catches: the
first error aborts the fold, and no partially folded state escapes.
"""

from collections.abc import Iterable
from typing import assert_never

from cartledger.errors import (
    CartMismatchError,
    EmptyStreamError,
    InvalidStateTransitionError,
    MissingOpeningEventError,
)
from cartledger.models import (
    CartEvent,
    CartStatus,
    PricedProductItem,
    ProductItemAddedToShoppingCart,
    ProductItemRemovedFromShoppingCart,
    ShoppingCart,
    ShoppingCartCanceled,
    ShoppingCartConfirmed,
    ShoppingCartOpened,
)


def apply(state: ShoppingCart | None, event: CartEvent) -> ShoppingCart:
    """Apply one event to a prior state and return the new state."""
    match event:
        case ShoppingCartOpened():
            if state is not None:
                raise InvalidStateTransitionError(event.type, state.status.value)
            return ShoppingCart(id=event.shopping_cart_id, client_id=event.client_id)
        case ProductItemAddedToShoppingCart():
            cart = _require_pending(state, event)
            return cart.model_copy(
                update={"product_items": _add_item(cart.product_items, event.product_item)}
            )
        case ProductItemRemovedFromShoppingCart():
            cart = _require_pending(state, event)
            return cart.model_copy(
                update={"product_items": _remove_item(cart.product_items, event.product_item)}
            )
        case ShoppingCartConfirmed():
            cart = _require_pending(state, event)
            return cart.model_copy(
                update={"status": CartStatus.CONFIRMED, "confirmed_at": event.confirmed_at}
            )
        case ShoppingCartCanceled():
            cart = _require_pending(state, event)
            return cart.model_copy(
                update={"status": CartStatus.CANCELED, "canceled_at": event.canceled_at}
            )
        case _:
            assert_never(event)


def reconstruct(events: Iterable[CartEvent]) -> ShoppingCart:
    """Rebuild a cart from its full stream, oldest event first."""
    state: ShoppingCart | None = None
    for position, event in enumerate(events):
        if position == 0 and not isinstance(event, ShoppingCartOpened):
            raise MissingOpeningEventError(event.type)
        state = apply(state, event)
    if state is None:
        raise EmptyStreamError()
    return state


def evolve(state: ShoppingCart, events: Iterable[CartEvent]) -> ShoppingCart:
    """Fold further events onto an already reconstructed cart."""
    for event in events:
        state = apply(state, event)
    return state


def _require_pending(state: ShoppingCart | None, event: CartEvent) -> ShoppingCart:
    if state is None:
        raise InvalidStateTransitionError(event.type, None)
    if event.shopping_cart_id != state.id:
        raise CartMismatchError(state.id, event.shopping_cart_id)
    if state.status is not CartStatus.PENDING:
        raise InvalidStateTransitionError(event.type, state.status.value)
    return state


def _add_item(
    items: tuple[PricedProductItem, ...], added: PricedProductItem
) -> tuple[PricedProductItem, ...]:
    """Merge by product: quantities sum, the incoming unit price wins."""
    for index, current in enumerate(items):
        if current.product_id == added.product_id:
            merged = PricedProductItem(
                product_id=added.product_id,
                unit_price=added.unit_price,
                quantity=current.quantity + added.quantity,
            )
            return items[:index] + (merged,) + items[index + 1:]
    return items + (added,)


def _remove_item(
    items: tuple[PricedProductItem, ...], removed: PricedProductItem
) -> tuple[PricedProductItem, ...]:
    """Reduce a product's quantity, clamped at zero; zero drops the line."""
    for index, current in enumerate(items):
        if current.product_id == removed.product_id:
            remaining = current.quantity - removed.quantity
            if remaining <= 0:
                return items[:index] + items[index + 1:]
            reduced = current.model_copy(update={"quantity": remaining})
            return items[:index] + (reduced,) + items[index + 1:]
    return items
