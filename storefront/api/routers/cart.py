from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_principal
from storefront.db.session_async import commit, get_async_db, rollback
from storefront.schemas.cart import CartEnvelope, CartItemRequest, CartRead, CartSyncRequest
from storefront.services import cart_service
from storefront.services.auth_service import Principal

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_envelope(user_id: uuid.UUID, items: List[uuid.UUID], message: str) -> CartEnvelope:
    return CartEnvelope(
        success=True,
        message=message,
        cart=CartRead(user_id=user_id, items=items, count=len(items)),
    )


@router.get("", response_model=CartEnvelope)
async def get_cart(
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    items = await cart_service.get_cart(db, principal.user_id)
    return _cart_envelope(principal.user_id, items, "Cart fetched successfully")


@router.post("/add-item", response_model=CartEnvelope)
async def add_item(
    payload: CartItemRequest,
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        items = await cart_service.add_item(db, principal.user_id, payload.product_id)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    return _cart_envelope(principal.user_id, items, "Item added into cart successfully")


@router.post("/remove-item", response_model=CartEnvelope)
async def remove_item(
    payload: CartItemRequest,
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        items = await cart_service.remove_item(db, principal.user_id, payload.product_id)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    return _cart_envelope(principal.user_id, items, "Item removed from cart successfully")


@router.post("/clear-cart", response_model=CartEnvelope)
async def clear_cart(
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        items = await cart_service.clear_cart(db, principal.user_id)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    return _cart_envelope(principal.user_id, items, "Cart cleared successfully")


@router.post("/sync", response_model=CartEnvelope)
async def sync_cart(
    payload: CartSyncRequest,
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    """Merge the client's local cart into the server cart and return the server copy.

    Clients call this after login and on page load, then replace their
    local cache with the returned items.
    """
    try:
        items = await cart_service.sync_cart(db, principal.user_id, payload.items)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    return _cart_envelope(principal.user_id, items, "Cart synchronized")
