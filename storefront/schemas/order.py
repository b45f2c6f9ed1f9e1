from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.enums import OrderStatus
from storefront.schemas.common import Envelope


class OrderLineRead(BaseModel):
    product_id: Optional[UUID]
    name: str
    slug: Optional[str]
    description: Optional[str]
    price: float

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    message: Optional[str] = None


class OrderRead(BaseModel):
    id: UUID
    buyer_id: Optional[UUID]
    buyer_name: Optional[str]
    status: OrderStatus
    currency: str
    total_amount: float
    payment: PaymentRead
    products: List[OrderLineRead] = Field(default_factory=list, validation_alias="lines")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderEnvelope(Envelope):
    order: OrderRead


class OrderListEnvelope(Envelope):
    orders: List[OrderRead] = Field(default_factory=list)
