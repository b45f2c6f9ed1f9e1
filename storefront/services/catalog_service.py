"""Read-only catalog lookups used by the cart and checkout.

Prices handed to the payment gateway always come from here, never from
the client.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.models.product import Product
from storefront.services.exceptions import OperationError
from storefront.utils.uuids import parse_uuid

logger = get_logger("storefront.catalog")


@dataclass(frozen=True)
class ProductSnapshot:
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    price: Decimal
    has_photo: bool = False


def _snapshot(product: Product, has_photo: bool) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        slug=product.slug,
        description=product.description,
        price=Decimal(str(product.price)),
        has_photo=bool(has_photo),
    )


async def get_product(db: AsyncSession, product_id) -> ProductSnapshot | None:
    product_uuid = parse_uuid(product_id)
    if product_uuid is None:
        return None

    stmt = select(Product, Product.photo.is_not(None).label("has_photo")).where(Product.id == product_uuid)
    try:
        row = (await db.execute(stmt)).first()
    except SQLAlchemyError as exc:
        logger.error("Catalog lookup failed", exc_info=exc, extra={"product_id": str(product_uuid)})
        raise OperationError() from exc
    if row is None:
        return None
    product, has_photo = row
    return _snapshot(product, has_photo)


async def get_products(db: AsyncSession, product_ids: Iterable) -> dict[uuid.UUID, ProductSnapshot]:
    """Batch lookup; ids that do not resolve are simply absent from the result."""
    wanted = {pid for pid in (parse_uuid(value) for value in product_ids) if pid is not None}
    if not wanted:
        return {}

    stmt = select(Product, Product.photo.is_not(None).label("has_photo")).where(Product.id.in_(wanted))
    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError as exc:
        logger.error("Catalog batch lookup failed", exc_info=exc)
        raise OperationError() from exc
    return {product.id: _snapshot(product, has_photo) for product, has_photo in rows}
