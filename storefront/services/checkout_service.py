"""Checkout: charge the buyer's cart once and turn it into an order.

Ordering within one checkout is causal: the charge must succeed before the
order is written, and the order must be written before the cart is
cleared. Every attempt is claimed in ``checkout_attempts`` under an
idempotency key before the gateway is contacted, so a retried or duplicate
submission never produces a second charge for the same key.
"""

from __future__ import annotations

import asyncio
import hashlib
import uuid
import weakref
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger, reconciliation_alert
from storefront.core.metrics import record_checkout_outcome
from storefront.db.session_async import commit, rollback
from storefront.domain.enums import CheckoutAttemptStatus
from storefront.models.order import CheckoutAttempt, Order
from storefront.services import cart_service, catalog_service, order_service, payment_service
from storefront.services.auth_service import Principal
from storefront.services.catalog_service import ProductSnapshot
from storefront.services.exceptions import (
    AuthenticationError,
    ChargeDeclined,
    ChargeOutcomeUnknown,
    ConflictError,
    GatewayAuthError,
    GatewayUnavailableError,
    OperationError,
    PostPaymentInconsistency,
    ValidationError,
)
from storefront.services.payment_providers import ChargeOutcome, PaymentGateway

logger = get_logger("storefront.checkout")

_user_locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(user_id: uuid.UUID) -> asyncio.Lock:
    lock = _user_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _user_locks[user_id] = lock
    return lock


def derive_idempotency_key(user_id: uuid.UUID, product_ids: List[uuid.UUID], nonce: str) -> str:
    """Stable key for one buyer paying one cart snapshot with one nonce."""
    snapshot = ",".join(sorted(str(pid) for pid in product_ids))
    digest = hashlib.sha256(f"{user_id}|{snapshot}|{nonce}".encode()).hexdigest()
    return f"cart:{digest}"


def client_idempotency_key(user_id: uuid.UUID, client_key: str) -> str:
    # Scoped to the buyer so two users cannot collide on the same client key.
    digest = hashlib.sha256(f"{user_id}|{client_key}".encode()).hexdigest()
    return f"client:{digest}"


async def _find_attempt(db: AsyncSession, key: str) -> CheckoutAttempt | None:
    try:
        result = await db.execute(select(CheckoutAttempt).where(CheckoutAttempt.idempotency_key == key))
    except SQLAlchemyError as exc:
        logger.error("Failed to read checkout attempt", exc_info=exc)
        raise OperationError() from exc
    return result.scalar_one_or_none()


async def _replay(db: AsyncSession, attempt: CheckoutAttempt) -> Order:
    """Answer a repeated submission from the recorded attempt, without charging."""
    logger.info(
        "Replaying checkout attempt",
        extra={"attempt_id": str(attempt.id), "status": attempt.status.value},
    )
    if attempt.status == CheckoutAttemptStatus.succeeded and attempt.order_id:
        return await order_service.get_order(db, attempt.order_id)
    if attempt.status == CheckoutAttemptStatus.pending:
        raise ConflictError("A checkout for this cart is already in progress")
    if attempt.status == CheckoutAttemptStatus.declined:
        raise ChargeDeclined(attempt.detail or "Payment was declined")
    if attempt.status == CheckoutAttemptStatus.inconsistent:
        raise PostPaymentInconsistency(attempt.transaction_id)
    raise ChargeOutcomeUnknown()


async def _price_cart(db: AsyncSession, product_ids: List[uuid.UUID]) -> List[ProductSnapshot]:
    catalog = await catalog_service.get_products(db, product_ids)
    missing = [str(pid) for pid in product_ids if pid not in catalog]
    if missing:
        raise ValidationError("Some products in your cart are no longer available")
    return [catalog[pid] for pid in product_ids]


async def _claim(db: AsyncSession, key: str, user_id: uuid.UUID, amount: Decimal) -> CheckoutAttempt:
    attempt = CheckoutAttempt(
        idempotency_key=key,
        user_id=user_id,
        status=CheckoutAttemptStatus.pending,
        amount=amount,
    )
    db.add(attempt)
    try:
        await commit(db)
    except IntegrityError as exc:
        raise ConflictError("A checkout for this cart is already in progress") from exc
    except SQLAlchemyError as exc:
        logger.error("Failed to record checkout attempt", exc_info=exc)
        raise OperationError() from exc
    return attempt


async def _settle(db: AsyncSession, attempt: CheckoutAttempt, status: CheckoutAttemptStatus, **fields) -> None:
    attempt.status = status
    for name, value in fields.items():
        setattr(attempt, name, value)
    try:
        await commit(db)
    except SQLAlchemyError as exc:
        logger.error(
            "Failed to update checkout attempt",
            exc_info=exc,
            extra={"attempt_id": str(attempt.id), "status": status.value},
        )
        raise OperationError() from exc


async def _release(db: AsyncSession, attempt: CheckoutAttempt) -> None:
    """Drop the claim when the gateway was never able to charge."""
    try:
        await db.delete(attempt)
        await commit(db)
    except SQLAlchemyError as exc:
        logger.error("Failed to release checkout attempt", exc_info=exc, extra={"attempt_id": str(attempt.id)})
        raise OperationError() from exc


async def _record_inconsistency(db: AsyncSession, key: str, outcome: ChargeOutcome, reason: str) -> None:
    try:
        attempt = await _find_attempt(db, key)
        if attempt is not None:
            await _settle(
                db,
                attempt,
                CheckoutAttemptStatus.inconsistent,
                transaction_id=outcome.transaction_id,
                detail=reason[:500],
            )
    except OperationError:
        # The alert already carries everything needed for manual reconciliation.
        logger.exception("Could not flag checkout attempt as inconsistent", extra={"idempotency_key": key})


_OUTCOME_LABELS = {
    ChargeDeclined: "declined",
    ChargeOutcomeUnknown: "unknown",
    PostPaymentInconsistency: "inconsistent",
    GatewayAuthError: "gateway_auth_error",
    GatewayUnavailableError: "gateway_unavailable",
    ConflictError: "conflict",
    ValidationError: "invalid",
}


async def checkout(
    db: AsyncSession,
    gateway: PaymentGateway,
    buyer: Principal | None,
    nonce: str | None,
    *,
    idempotency_key: str | None = None,
) -> Order:
    if buyer is None:
        raise AuthenticationError("Not authenticated")
    if not nonce or not nonce.strip():
        raise ValidationError("Payment nonce is required")

    async with _lock_for(buyer.user_id):
        try:
            order = await _checkout_locked(db, gateway, buyer, nonce.strip(), idempotency_key)
        except tuple(_OUTCOME_LABELS) as exc:
            record_checkout_outcome(_OUTCOME_LABELS[type(exc)])
            raise
    record_checkout_outcome("succeeded")
    return order


async def _checkout_locked(
    db: AsyncSession,
    gateway: PaymentGateway,
    buyer: Principal,
    nonce: str,
    client_key: str | None,
) -> Order:
    key = client_idempotency_key(buyer.user_id, client_key) if client_key else None
    if key:
        existing = await _find_attempt(db, key)
        if existing is not None:
            return await _replay(db, existing)

    product_ids = await cart_service.get_cart(db, buyer.user_id)
    if not product_ids:
        raise ValidationError("Cart is empty")

    products = await _price_cart(db, product_ids)
    total = sum((p.price for p in products), Decimal("0"))
    if total <= 0:
        raise ValidationError("Cart total must be greater than 0")

    if key is None:
        key = derive_idempotency_key(buyer.user_id, product_ids, nonce)
        existing = await _find_attempt(db, key)
        if existing is not None:
            return await _replay(db, existing)

    attempt = await _claim(db, key, buyer.user_id, total)
    log_context = {"attempt_id": str(attempt.id), "user_id": str(buyer.user_id), "amount": str(total)}

    try:
        outcome = await payment_service.charge(gateway, nonce, total, order_ref=str(attempt.id))
    except (GatewayAuthError, GatewayUnavailableError):
        await _release(db, attempt)
        raise
    except ChargeOutcomeUnknown:
        await _settle(db, attempt, CheckoutAttemptStatus.unknown, detail="gateway did not confirm the charge")
        raise

    if not outcome.success:
        await _settle(
            db,
            attempt,
            CheckoutAttemptStatus.declined,
            transaction_id=outcome.transaction_id,
            detail=(outcome.message or "Payment was declined")[:500],
        )
        logger.info("Checkout declined", extra={**log_context, "reason": outcome.message})
        raise ChargeDeclined(outcome.message or "Payment was declined")

    # Money has been taken from here on. Any failure must be surfaced for reconciliation.
    try:
        order = await order_service.create_order(
            db,
            buyer_id=buyer.user_id,
            products=products,
            payment=outcome,
            idempotency_key=key,
        )
        await cart_service.clear_cart(db, buyer.user_id)
        attempt.status = CheckoutAttemptStatus.succeeded
        attempt.order_id = order.id
        attempt.transaction_id = outcome.transaction_id
        await commit(db)
    except Exception as exc:
        await rollback(db)
        reconciliation_alert(
            "Charge succeeded but order was not recorded",
            **log_context,
            transaction_id=outcome.transaction_id,
            error=repr(exc),
        )
        await _record_inconsistency(db, key, outcome, repr(exc))
        raise PostPaymentInconsistency(outcome.transaction_id) from exc

    logger.info(
        "Checkout completed",
        extra={**log_context, "order_id": str(order.id), "transaction_id": outcome.transaction_id},
    )
    return order
