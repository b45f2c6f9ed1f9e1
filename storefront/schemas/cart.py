# storefront/schemas/cart.py
from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from storefront.schemas.common import Envelope


class CartItemRequest(BaseModel):
    product_id: UUID


class CartSyncRequest(BaseModel):
    # Product ids held in the client's local cache (guest cart). Empty means refresh only.
    items: List[UUID] = Field(default_factory=list, max_length=500)


class CartRead(BaseModel):
    user_id: UUID
    items: List[UUID] = Field(default_factory=list)
    count: int = 0


class CartEnvelope(Envelope):
    cart: CartRead
