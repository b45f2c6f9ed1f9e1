"""Administrator-driven order status changes.

Two transition policies are available through ``ORDER_STATUS_POLICY``:

* ``permissive`` (default): any status may be set from any status, so an
  administrator can correct mistakes freely.
* ``strict``: forward progression ``Not Processed -> Processing ->
  Shipped -> Delivered``, with ``Cancelled`` reachable from every state
  except ``Delivered``. Re-setting the current status is always allowed.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.domain.enums import OrderStatus
from storefront.models.order import ImmutableOrderError, Order
from storefront.services import order_service
from storefront.services.auth_service import Principal
from storefront.services.exceptions import (
    AuthorizationError,
    ConflictError,
    OperationError,
    ValidationError,
)

logger = get_logger("storefront.orders.status")

STRICT_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.not_processed: frozenset({OrderStatus.processing, OrderStatus.cancelled}),
    OrderStatus.processing: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.delivered, OrderStatus.cancelled}),
    OrderStatus.delivered: frozenset(),
    OrderStatus.cancelled: frozenset(),
}


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError as exc:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid order status '{value}'. Allowed: {allowed}") from exc


def is_transition_allowed(current: OrderStatus, new: OrderStatus, policy: str | None = None) -> bool:
    policy = policy or settings.ORDER_STATUS_POLICY
    if policy == "permissive" or current == new:
        return True
    return new in STRICT_TRANSITIONS[current]


async def set_status(db: AsyncSession, actor: Principal, order_id, new_status) -> Order:
    if actor is None or not actor.is_admin:
        raise AuthorizationError("Admin access required")
    target = parse_status(new_status)

    order = await order_service.get_order(db, order_id)
    previous = order.status
    if not is_transition_allowed(previous, target):
        raise ConflictError(f"Cannot move order from '{previous.value}' to '{target.value}'")

    order.status = target
    try:
        await db.flush()
    except ImmutableOrderError as exc:
        raise ConflictError(str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.error("Failed to update order status", exc_info=exc, extra={"order_id": str(order.id)})
        raise OperationError() from exc

    logger.info(
        "Order status changed",
        extra={
            "order_id": str(order.id),
            "from": previous.value,
            "to": target.value,
            "actor": str(actor.user_id),
        },
    )
    return await order_service.get_order(db, order.id)
