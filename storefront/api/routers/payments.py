from __future__ import annotations

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import get_current_principal, get_payment_gateway
from storefront.db.session_async import get_async_db
from storefront.schemas.order import OrderEnvelope, OrderRead
from storefront.schemas.payment import ClientTokenEnvelope, PaymentRequest
from storefront.services import checkout_service, payment_service
from storefront.services.auth_service import Principal
from storefront.services.payment_providers import PaymentGateway

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/braintree/token", response_model=ClientTokenEnvelope)
async def get_client_token(
    principal: Principal = Depends(get_current_principal),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    token = await payment_service.get_client_token(gateway)
    return ClientTokenEnvelope(success=True, message="Client token issued", client_token=token)


@router.post("/braintree/payment", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payload: PaymentRequest,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key", max_length=255),
    db: AsyncSession = Depends(get_async_db),
    principal: Principal = Depends(get_current_principal),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    # Commits and rollbacks are owned by the checkout service: it persists
    # its idempotency claim before the charge and the order after it.
    order = await checkout_service.checkout(
        db,
        gateway,
        principal,
        payload.nonce,
        idempotency_key=idempotency_key,
    )
    return OrderEnvelope(success=True, message="Payment completed", order=OrderRead.model_validate(order))
