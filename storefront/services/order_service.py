from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.domain.enums import OrderStatus
from storefront.models.order import Order, OrderLine
from storefront.services.catalog_service import ProductSnapshot
from storefront.services.exceptions import NotFoundError, OperationError, ValidationError
from storefront.services.payment_providers import ChargeOutcome
from storefront.utils.uuids import parse_uuid, require_uuid

logger = get_logger("storefront.orders")

_ORDER_LOAD_OPTIONS = (selectinload(Order.lines), selectinload(Order.buyer))


async def create_order(
    db: AsyncSession,
    *,
    buyer_id,
    products: Sequence[ProductSnapshot],
    payment: ChargeOutcome,
    idempotency_key: str,
) -> Order:
    """Record a paid order with status ``Not Processed``.

    Only called after a successful charge. Product fields are copied into
    the order lines so later catalog changes do not alter history.
    """
    if not payment.success:
        raise ValidationError("An order can only be created for a successful payment")
    if not products:
        raise ValidationError("An order needs at least one product")

    total = sum((p.price for p in products), Decimal("0"))
    order = Order(
        buyer_id=require_uuid(buyer_id, "buyer_id"),
        status=OrderStatus.not_processed,
        currency=settings.CURRENCY,
        total_amount=total,
        payment=payment.as_record(),
        transaction_id=payment.transaction_id,
        idempotency_key=idempotency_key,
    )
    for position, product in enumerate(products):
        order.lines.append(
            OrderLine(
                position=position,
                product_id=product.id,
                name=product.name,
                slug=product.slug,
                description=product.description,
                price=product.price,
            )
        )
    db.add(order)
    await db.flush()
    return await get_order(db, order.id)


async def get_order(db: AsyncSession, order_id) -> Order:
    order_uuid = parse_uuid(order_id)
    if order_uuid is None:
        raise NotFoundError("Order not found")

    try:
        order = await db.get(Order, order_uuid, options=list(_ORDER_LOAD_OPTIONS), populate_existing=True)
    except SQLAlchemyError as exc:
        logger.error("Failed to load order", exc_info=exc, extra={"order_id": str(order_uuid)})
        raise OperationError() from exc
    if not order:
        raise NotFoundError("Order not found")
    return order


async def list_orders_for_buyer(db: AsyncSession, buyer_id) -> List[Order]:
    """Orders of one buyer, oldest first."""
    buyer_uuid = require_uuid(buyer_id, "buyer_id")
    stmt = (
        select(Order)
        .options(*_ORDER_LOAD_OPTIONS)
        .where(Order.buyer_id == buyer_uuid)
        .order_by(Order.created_at.asc(), Order.id)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("Failed to list buyer orders", exc_info=exc, extra={"buyer_id": str(buyer_uuid)})
        raise OperationError() from exc
    return list(result.scalars().all())


async def list_all_orders(db: AsyncSession) -> List[Order]:
    """Every order, newest first. Administrator view."""
    stmt = select(Order).options(*_ORDER_LOAD_OPTIONS).order_by(Order.created_at.desc())
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("Failed to list orders", exc_info=exc)
        raise OperationError() from exc
    return list(result.scalars().all())
