"""Error taxonomy shared by the state machine, the event stores, and the repository.

Four families, kept distinct so callers can react to each differently:

* ``DomainError``: a business rule was broken. Reported, never retried.
* ``ConcurrencyConflictError``: a stale expected revision. The caller
  reloads, re-decides, and retries if it wants to.
* ``NotFoundError``: expected data is structurally absent (missing stream,
  empty stream, stream without an opening event).
* ``TransientStoreError``: storage is unavailable. Safe to retry with
  backoff once the stream's current revision has been re-read.
"""


class CartLedgerError(Exception):
    """Base class for every error raised by cartledger."""


# -- Domain violations --


class DomainError(CartLedgerError):
    pass


class InvalidStateTransitionError(DomainError):
    def __init__(self, event_type: str, status: str | None) -> None:
        self.event_type = event_type
        self.status = status
        current = status if status is not None else "no cart"
        super().__init__(f"Cannot apply {event_type} to cart in state: {current}")


class CartMismatchError(DomainError):
    def __init__(self, expected_cart_id: str, actual_cart_id: str) -> None:
        self.expected_cart_id = expected_cart_id
        self.actual_cart_id = actual_cart_id
        super().__init__(
            f"Event for cart {actual_cart_id} applied to cart {expected_cart_id}"
        )


class ProductItemNotFoundError(DomainError):
    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not in cart: {product_id}")


class InsufficientQuantityError(DomainError):
    def __init__(self, product_id: str, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot remove {requested} of {product_id}: only {available} in cart"
        )


# -- Optimistic concurrency --


class ConcurrencyConflictError(CartLedgerError):
    def __init__(
        self,
        stream_name: str,
        expected_revision: object,
        actual_revision: int | None,
    ) -> None:
        self.stream_name = stream_name
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Stream {stream_name}: expected revision {expected_revision}, "
            f"actual {actual_revision if actual_revision is not None else 'no stream'}"
        )


# -- Structural absence --


class NotFoundError(CartLedgerError):
    pass


class StreamNotFoundError(NotFoundError):
    def __init__(self, stream_name: str) -> None:
        self.stream_name = stream_name
        super().__init__(f"Stream not found: {stream_name}")


class EmptyStreamError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("Cannot reconstruct a cart from an empty event sequence")


class MissingOpeningEventError(NotFoundError):
    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Stream starts with {event_type}, not shopping-cart-opened")


class CartNotFoundError(NotFoundError):
    def __init__(self, cart_id: str) -> None:
        self.cart_id = cart_id
        super().__init__(f"Cart not found: {cart_id}")


# -- Storage --


class TransientStoreError(CartLedgerError):
    pass


class DuplicateEventError(CartLedgerError):
    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"Event already stored: {event_id}")


class EventDecodingError(CartLedgerError):
    def __init__(self, event_type: str, reason: str) -> None:
        self.event_type = event_type
        super().__init__(f"Cannot decode {event_type}: {reason}")


class UnknownEventTypeError(EventDecodingError):
    def __init__(self, event_type: str) -> None:
        super().__init__(event_type, "unknown event type")


class CorruptStreamError(CartLedgerError):
    """A stored history that no longer folds into a valid cart."""

    def __init__(self, stream_name: str, reason: str) -> None:
        self.stream_name = stream_name
        super().__init__(f"Stream {stream_name} is corrupt: {reason}")
