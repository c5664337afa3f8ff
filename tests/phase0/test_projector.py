"""Contract tests for the cart projector.

test_shopping_history_folds_to_expected_cart is THE CANARY: events in,
cart state out. Must never break.
"""

from decimal import Decimal

import pytest

from cartledger.errors import (
    CartMismatchError,
    EmptyStreamError,
    InvalidStateTransitionError,
    MissingOpeningEventError,
)
from cartledger.events.projector import apply, evolve, reconstruct
from cartledger.models import (
    CartStatus,
    ProductItemAddedToShoppingCart,
    ProductItemRemovedFromShoppingCart,
    ShoppingCartCanceled,
    ShoppingCartConfirmed,
    ShoppingCartOpened,
)
from tests.fixtures import FIXED_NOW, make_item, make_opened, make_shopping_history


def added(cart_id, item):
    return ProductItemAddedToShoppingCart(shopping_cart_id=cart_id, product_item=item)


def removed(cart_id, item):
    return ProductItemRemovedFromShoppingCart(shopping_cart_id=cart_id, product_item=item)


class TestProjectorCanary:
    """THE CANARY TESTS. Must never break."""

    def test_shopping_history_folds_to_expected_cart(self):
        cart = reconstruct(make_shopping_history("cart-1", "client-1"))

        assert cart.id == "cart-1"
        assert cart.client_id == "client-1"
        assert cart.status is CartStatus.PENDING
        assert cart.product_items == (
            make_item("shoes", quantity=1, unit_price=100),
            make_item("t-shirt", quantity=1, unit_price=50),
        )

    def test_reconstruct_is_deterministic(self):
        events = make_shopping_history("cart-1", "client-1")
        assert reconstruct(events) == reconstruct(events)


class TestOpened:
    def test_opened_seeds_pending_empty_cart(self):
        cart = apply(None, make_opened("cart-1", "client-1"))
        assert cart.id == "cart-1"
        assert cart.client_id == "client-1"
        assert cart.status is CartStatus.PENDING
        assert cart.product_items == ()

    def test_opened_twice_rejected(self):
        cart = apply(None, make_opened("cart-1"))
        with pytest.raises(InvalidStateTransitionError):
            apply(cart, make_opened("cart-1"))


class TestItemAdded:
    def test_same_product_merges_quantity_and_takes_latest_price(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("shoes", 2, 100)),
            added("c", make_item("hat", 1, 20)),
            added("c", make_item("shoes", 3, 90)),
        ])
        assert cart.product_items == (
            make_item("shoes", 5, 90),
            make_item("hat", 1, 20),
        )

    def test_new_products_keep_first_seen_order(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("b")),
            added("c", make_item("a")),
            added("c", make_item("b")),
        ])
        assert [i.product_id for i in cart.product_items] == ["b", "a"]

    def test_requires_prior_state(self):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            apply(None, added("c", make_item("shoes")))
        assert exc_info.value.status is None

    def test_event_for_other_cart_rejected(self):
        cart = apply(None, make_opened("c"))
        with pytest.raises(CartMismatchError):
            apply(cart, added("other", make_item("shoes")))


class TestItemRemoved:
    def test_partial_removal_keeps_line(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("shoes", 3, 100)),
            removed("c", make_item("shoes", 1, 100)),
        ])
        assert cart.product_items == (make_item("shoes", 2, 100),)

    def test_removing_everything_drops_line(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("shoes", 2, 100)),
            added("c", make_item("hat", 1, 20)),
            removed("c", make_item("shoes", 2, 100)),
        ])
        assert cart.product_items == (make_item("hat", 1, 20),)

    def test_over_removal_clamps_to_zero_and_drops_line(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("shoes", 2, 100)),
            removed("c", make_item("shoes", 5, 100)),
        ])
        assert cart.product_items == ()
        assert all(i.quantity > 0 for i in cart.product_items)

    def test_removing_unknown_product_is_noop(self):
        cart = reconstruct([
            make_opened("c"),
            added("c", make_item("shoes", 2, 100)),
        ])
        assert apply(cart, removed("c", make_item("hat"))) == cart


class TestTerminalStates:
    def test_confirm_sets_status_and_timestamp(self):
        cart = apply(apply(None, make_opened("c")), ShoppingCartConfirmed(
            shopping_cart_id="c", confirmed_at=FIXED_NOW,
        ))
        assert cart.status is CartStatus.CONFIRMED
        assert cart.confirmed_at == FIXED_NOW
        assert cart.canceled_at is None

    def test_cancel_sets_status_and_timestamp(self):
        cart = apply(apply(None, make_opened("c")), ShoppingCartCanceled(
            shopping_cart_id="c", canceled_at=FIXED_NOW,
        ))
        assert cart.status is CartStatus.CANCELED
        assert cart.canceled_at == FIXED_NOW

    def test_confirm_after_cancel_rejected_and_state_unchanged(self):
        canceled = reconstruct([
            make_opened("c"),
            ShoppingCartCanceled(shopping_cart_id="c", canceled_at=FIXED_NOW),
        ])
        snapshot = canceled.model_copy()
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            apply(canceled, ShoppingCartConfirmed(shopping_cart_id="c", confirmed_at=FIXED_NOW))
        assert exc_info.value.status == "Canceled"
        assert canceled == snapshot

    def test_cancel_after_confirm_rejected(self):
        confirmed = reconstruct([
            make_opened("c"),
            ShoppingCartConfirmed(shopping_cart_id="c", confirmed_at=FIXED_NOW),
        ])
        with pytest.raises(InvalidStateTransitionError):
            apply(confirmed, ShoppingCartCanceled(shopping_cart_id="c", canceled_at=FIXED_NOW))

    def test_items_frozen_after_confirm(self):
        confirmed = reconstruct([
            make_opened("c"),
            ShoppingCartConfirmed(shopping_cart_id="c", confirmed_at=FIXED_NOW),
        ])
        with pytest.raises(InvalidStateTransitionError):
            apply(confirmed, added("c", make_item("shoes")))
        with pytest.raises(InvalidStateTransitionError):
            apply(confirmed, removed("c", make_item("shoes")))

    def test_history_with_confirm_then_cancel_fails(self):
        events = make_shopping_history("c", "client") + [
            ShoppingCartConfirmed(shopping_cart_id="c", confirmed_at=FIXED_NOW),
            ShoppingCartCanceled(shopping_cart_id="c", canceled_at=FIXED_NOW),
        ]
        with pytest.raises(InvalidStateTransitionError):
            reconstruct(events)


class TestReconstruct:
    def test_empty_stream(self):
        with pytest.raises(EmptyStreamError):
            reconstruct([])

    def test_missing_opening_event(self):
        with pytest.raises(MissingOpeningEventError) as exc_info:
            reconstruct([added("c", make_item("shoes"))])
        assert exc_info.value.event_type == "product-item-added-to-shopping-cart"

    def test_accepts_any_iterable(self):
        events = make_shopping_history("c", "client")
        assert reconstruct(iter(events)) == reconstruct(events)

    def test_prior_state_not_mutated(self):
        """Two branches folded from one prior state stay independent."""
        base = reconstruct([make_opened("c"), added("c", make_item("shoes", 1, 100))])
        left = apply(base, added("c", make_item("shoes", 1, 100)))
        right = apply(base, removed("c", make_item("shoes", 1, 100)))

        assert base.product_items == (make_item("shoes", 1, 100),)
        assert left.product_items == (make_item("shoes", 2, 100),)
        assert right.product_items == ()

    def test_evolve_folds_onto_existing_state(self):
        base = reconstruct([make_opened("c")])
        cart = evolve(base, [
            added("c", make_item("shoes", 2, 100)),
            ShoppingCartConfirmed(shopping_cart_id="c", confirmed_at=FIXED_NOW),
        ])
        assert cart.status is CartStatus.CONFIRMED
        assert cart.total_price == Decimal(200)
        assert evolve(base, []) is base

    def test_opened_in_middle_of_stream_rejected(self):
        with pytest.raises(InvalidStateTransitionError):
            reconstruct([make_opened("c"), ShoppingCartOpened(shopping_cart_id="c", client_id="x")])
