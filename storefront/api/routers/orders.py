from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_principal, require_admin
from storefront.db.session_async import commit, get_async_db, rollback
from storefront.schemas.order import OrderEnvelope, OrderListEnvelope, OrderRead, OrderStatusUpdate
from storefront.services import order_service, order_status_service
from storefront.services.auth_service import Principal

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=OrderListEnvelope)
async def list_my_orders(
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    orders = await order_service.list_orders_for_buyer(db, principal.user_id)
    return OrderListEnvelope(
        success=True,
        message="Orders fetched successfully",
        orders=[OrderRead.model_validate(order) for order in orders],
    )


@router.get("/all", response_model=OrderListEnvelope)
async def list_all_orders(
    db: AsyncSession = Depends(get_async_db),
    admin: Principal = Depends(require_admin),
):
    orders = await order_service.list_all_orders(db)
    return OrderListEnvelope(
        success=True,
        message="All orders fetched successfully",
        orders=[OrderRead.model_validate(order) for order in orders],
    )


@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        order = await order_status_service.set_status(db, principal, order_id, payload.status)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    return OrderEnvelope(success=True, message="Order status updated", order=OrderRead.model_validate(order))
