"""Payment provider integrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol


class PaymentProviderError(Exception):
    """Base error for payment providers."""


class PaymentProviderConfigurationError(PaymentProviderError):
    """Raised when provider credentials are missing or rejected."""


class PaymentProviderUnavailable(PaymentProviderError):
    """The request never reached the provider, so nothing was charged."""


class PaymentProviderTimeout(PaymentProviderError):
    """The request may have been processed but no usable answer came back."""


@dataclass(frozen=True)
class GatewayConfig:
    environment: str
    merchant_id: str
    public_key: str
    private_key: str
    api_version: str = "2019-01-01"
    timeout_seconds: float = 15.0
    currency: str = "USD"

    @property
    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.public_key and self.private_key)

    @classmethod
    def from_settings(cls, settings) -> "GatewayConfig":
        return cls(
            environment=settings.BRAINTREE_ENVIRONMENT,
            merchant_id=settings.BRAINTREE_MERCHANT_ID,
            public_key=settings.BRAINTREE_PUBLIC_KEY,
            private_key=settings.BRAINTREE_PRIVATE_KEY,
            api_version=settings.BRAINTREE_API_VERSION,
            timeout_seconds=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            currency=settings.CURRENCY,
        )


@dataclass(frozen=True)
class ChargeOutcome:
    success: bool
    transaction_id: str | None = None
    status: str | None = None
    message: str | None = None
    amount: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def as_record(self) -> dict[str, Any]:
        """JSON-safe form embedded into the order."""
        return {
            "success": self.success,
            "transaction_id": self.transaction_id,
            "status": self.status,
            "amount": str(self.amount) if self.amount is not None else None,
            "message": self.message,
        }


class PaymentGateway(Protocol):
    async def get_client_token(self) -> str: ...

    async def charge(self, nonce: str, amount: Decimal, *, order_id: str | None = None) -> ChargeOutcome: ...
