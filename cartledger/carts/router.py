"""FastAPI routes for cart commands and queries."""

from fastapi import APIRouter, Depends, HTTPException, status

from cartledger.carts.schemas import (
    CartResponse,
    OpenCartRequest,
    ProductItemRequest,
    StreamRecordResponse,
)
from cartledger.carts.service import CartService
from cartledger.errors import (
    CartLedgerError,
    CartNotFoundError,
    ConcurrencyConflictError,
    DomainError,
    TransientStoreError,
)

router = APIRouter(prefix="/api/carts", tags=["carts"])


def get_cart_service() -> CartService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("CartService not initialized")


def _to_http_error(error: CartLedgerError) -> HTTPException:
    """Map a cartledger error to the HTTP status the invoker should see.

    Corrupt streams and other internal failures are not mapped; they
    surface as 500s.
    """
    if isinstance(error, CartNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DomainError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, ConcurrencyConflictError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(error),
                "actual_revision": error.actual_revision,
            },
        )
    if isinstance(error, TransientStoreError):
        return HTTPException(status_code=503, detail=str(error))
    raise error


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_cart(
    request: OpenCartRequest,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.open_cart(request)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.get("/{cart_id}")
async def get_cart(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.get_cart(cart_id)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.get("/{cart_id}/events")
async def get_cart_events(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
) -> list[StreamRecordResponse]:
    try:
        return await service.get_events(cart_id)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.post("/{cart_id}/items")
async def add_product_item(
    cart_id: str,
    request: ProductItemRequest,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.add_product_item(cart_id, request)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.post("/{cart_id}/items/remove")
async def remove_product_item(
    cart_id: str,
    request: ProductItemRequest,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.remove_product_item(cart_id, request)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.post("/{cart_id}/confirm")
async def confirm_cart(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.confirm(cart_id)
    except CartLedgerError as e:
        raise _to_http_error(e)


@router.post("/{cart_id}/cancel")
async def cancel_cart(
    cart_id: str,
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        return await service.cancel(cart_id)
    except CartLedgerError as e:
        raise _to_http_error(e)
