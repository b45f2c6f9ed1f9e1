"""Maps payment provider failures onto the service error taxonomy.

Nothing raised by ``httpx`` or a provider module gets past this layer.
"""

from __future__ import annotations

from decimal import Decimal

from storefront.core.logging import get_logger
from storefront.services.exceptions import (
    ChargeOutcomeUnknown,
    GatewayAuthError,
    GatewayUnavailableError,
)
from storefront.services.payment_providers import (
    ChargeOutcome,
    PaymentGateway,
    PaymentProviderConfigurationError,
    PaymentProviderError,
    PaymentProviderTimeout,
    PaymentProviderUnavailable,
)

logger = get_logger("storefront.payments")


async def get_client_token(gateway: PaymentGateway) -> str:
    try:
        return await gateway.get_client_token()
    except PaymentProviderConfigurationError as exc:
        logger.error("Payment gateway credentials rejected while issuing client token", exc_info=exc)
        raise GatewayAuthError() from exc
    except PaymentProviderError as exc:
        logger.error("Payment gateway failed to issue client token", exc_info=exc)
        raise GatewayUnavailableError() from exc


async def charge(gateway: PaymentGateway, nonce: str, amount: Decimal, *, order_ref: str) -> ChargeOutcome:
    """Submit exactly one charge request.

    Returns the outcome for both approvals and declines. Raises
    ``ChargeOutcomeUnknown`` when the gateway may have processed the
    charge without telling us.
    """
    try:
        outcome = await gateway.charge(nonce, amount, order_id=order_ref)
    except PaymentProviderConfigurationError as exc:
        logger.error("Payment gateway credentials rejected", exc_info=exc, extra={"order_ref": order_ref})
        raise GatewayAuthError() from exc
    except PaymentProviderTimeout as exc:
        logger.error(
            "Charge outcome unknown",
            exc_info=exc,
            extra={"order_ref": order_ref, "amount": str(amount)},
        )
        raise ChargeOutcomeUnknown() from exc
    except (PaymentProviderUnavailable, PaymentProviderError) as exc:
        logger.error("Payment gateway unavailable", exc_info=exc, extra={"order_ref": order_ref})
        raise GatewayUnavailableError() from exc

    logger.info(
        "Charge processed",
        extra={
            "order_ref": order_ref,
            "success": outcome.success,
            "transaction_id": outcome.transaction_id,
            "status": outcome.status,
            "amount": str(amount),
        },
    )
    return outcome
