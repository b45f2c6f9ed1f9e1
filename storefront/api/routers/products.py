from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.session_async import get_async_db
from storefront.schemas.product import ProductEnvelope, ProductRead
from storefront.services import catalog_service
from storefront.services.exceptions import NotFoundError

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{product_id}", response_model=ProductEnvelope)
async def get_product(product_id: UUID, db: AsyncSession = Depends(get_async_db)):
    product = await catalog_service.get_product(db, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return ProductEnvelope(success=True, message="Product fetched", product=ProductRead.model_validate(product))
