from __future__ import annotations

import uuid
from collections import Counter
from typing import Iterable, List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.models.cart import CartItem
from storefront.models.user import User
from storefront.services import catalog_service
from storefront.services.exceptions import NotFoundError, OperationError
from storefront.utils.uuids import require_uuid

logger = get_logger("storefront.cart")


async def _ensure_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    found = await db.scalar(select(User.id).where(User.id == user_id))
    if found is None:
        logger.warning("Cart operation for unknown user", extra={"user_id": str(user_id)})
        raise OperationError()


async def _load_items(db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
    result = await db.execute(
        select(CartItem.product_id).where(CartItem.user_id == user_id).order_by(CartItem.id)
    )
    return list(result.scalars().all())


async def get_cart(db: AsyncSession, user_id) -> List[uuid.UUID]:
    user_uuid = require_uuid(user_id, "user_id")
    try:
        await _ensure_user(db, user_uuid)
        return await _load_items(db, user_uuid)
    except SQLAlchemyError as exc:
        logger.error("Failed to read cart", exc_info=exc, extra={"user_id": str(user_uuid)})
        raise OperationError() from exc


async def add_item(db: AsyncSession, user_id, product_id) -> List[uuid.UUID]:
    """Append one occurrence of ``product_id``; duplicates are kept."""
    user_uuid = require_uuid(user_id, "user_id")
    product_uuid = require_uuid(product_id, "product_id")

    product = await catalog_service.get_product(db, product_uuid)
    if product is None:
        raise NotFoundError("Product not found")

    try:
        await _ensure_user(db, user_uuid)
        db.add(CartItem(user_id=user_uuid, product_id=product_uuid))
        await db.flush()
        return await _load_items(db, user_uuid)
    except SQLAlchemyError as exc:
        logger.error(
            "Failed to add cart item",
            exc_info=exc,
            extra={"user_id": str(user_uuid), "product_id": str(product_uuid)},
        )
        raise OperationError() from exc


async def remove_item(db: AsyncSession, user_id, product_id) -> List[uuid.UUID]:
    """Drop the oldest occurrence of ``product_id``. Absent products are a no-op."""
    user_uuid = require_uuid(user_id, "user_id")
    product_uuid = require_uuid(product_id, "product_id")

    try:
        await _ensure_user(db, user_uuid)
        first_id = await db.scalar(
            select(CartItem.id)
            .where(CartItem.user_id == user_uuid, CartItem.product_id == product_uuid)
            .order_by(CartItem.id)
            .limit(1)
        )
        if first_id is not None:
            await db.execute(delete(CartItem).where(CartItem.id == first_id))
            await db.flush()
        return await _load_items(db, user_uuid)
    except SQLAlchemyError as exc:
        logger.error(
            "Failed to remove cart item",
            exc_info=exc,
            extra={"user_id": str(user_uuid), "product_id": str(product_uuid)},
        )
        raise OperationError() from exc


async def clear_cart(db: AsyncSession, user_id) -> List[uuid.UUID]:
    user_uuid = require_uuid(user_id, "user_id")
    try:
        await _ensure_user(db, user_uuid)
        await db.execute(delete(CartItem).where(CartItem.user_id == user_uuid))
        await db.flush()
        return []
    except SQLAlchemyError as exc:
        logger.error("Failed to clear cart", exc_info=exc, extra={"user_id": str(user_uuid)})
        raise OperationError() from exc


async def sync_cart(db: AsyncSession, user_id, local_items: Iterable) -> List[uuid.UUID]:
    """Fold a client's locally cached cart into the persisted one.

    The merge is a multiset union: per product the server keeps
    ``max(server_count, local_count)`` occurrences, so sending back the
    cache returned by a previous sync changes nothing. Entries pointing at
    products that no longer exist are dropped. The returned list is
    authoritative: the client overwrites its cache with it.
    """
    user_uuid = require_uuid(user_id, "user_id")
    incoming = [require_uuid(item, "product_id") for item in local_items]

    known = await catalog_service.get_products(db, incoming) if incoming else {}
    dropped = [str(pid) for pid in incoming if pid not in known]
    if dropped:
        logger.info(
            "Dropping unknown products from local cart",
            extra={"user_id": str(user_uuid), "product_ids": dropped},
        )

    try:
        await _ensure_user(db, user_uuid)
        held = Counter(await _load_items(db, user_uuid))
        wanted = Counter(pid for pid in incoming if pid in known)
        for pid in incoming:
            if wanted[pid] > held[pid]:
                db.add(CartItem(user_id=user_uuid, product_id=pid))
                held[pid] += 1
        await db.flush()
        return await _load_items(db, user_uuid)
    except SQLAlchemyError as exc:
        logger.error("Failed to sync cart", exc_info=exc, extra={"user_id": str(user_uuid)})
        raise OperationError() from exc
