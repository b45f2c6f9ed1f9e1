from __future__ import annotations

import base64
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx

from storefront.core.logging import get_logger
from storefront.services.payment_providers import (
    ChargeOutcome,
    GatewayConfig,
    PaymentProviderConfigurationError,
    PaymentProviderError,
    PaymentProviderTimeout,
    PaymentProviderUnavailable,
)

logger = get_logger("storefront.payments.braintree")

API_URLS = {
    "sandbox": "https://payments.sandbox.braintree-api.com/graphql",
    "production": "https://payments.braintree-api.com/graphql",
}

# Transaction statuses that mean the money was authorized and captured (or queued for capture).
SUCCESS_STATUSES = frozenset(
    {"AUTHORIZED", "SUBMITTED_FOR_SETTLEMENT", "SETTLING", "SETTLEMENT_PENDING", "SETTLED"}
)
_AUTH_ERROR_CLASSES = frozenset({"AUTHENTICATION", "AUTHORIZATION"})

CLIENT_TOKEN_MUTATION = """
mutation CreateClientToken($input: CreateClientTokenInput) {
  createClientToken(input: $input) {
    clientToken
  }
}
"""

CHARGE_MUTATION = """
mutation ChargePaymentMethod($input: ChargePaymentMethodInput!) {
  chargePaymentMethod(input: $input) {
    transaction {
      id
      status
      amount { value currencyCode }
    }
  }
}
"""


def format_amount(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class BraintreeGateway:
    """Braintree GraphQL client.

    ``transport`` is passed straight to ``httpx.AsyncClient`` so tests can
    plug in ``httpx.MockTransport``.
    """

    def __init__(self, config: GatewayConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if config.environment not in API_URLS:
            raise PaymentProviderConfigurationError(f"Unknown Braintree environment: {config.environment}")
        self.config = config
        self._transport = transport
        self._url = API_URLS[config.environment]

    def _headers(self) -> dict:
        if not self.config.is_configured:
            raise PaymentProviderConfigurationError("Braintree credentials are not configured")
        basic = base64.b64encode(f"{self.config.public_key}:{self.config.private_key}".encode()).decode()
        return {
            "Authorization": f"Basic {basic}",
            "Braintree-Version": self.config.api_version,
            "Content-Type": "application/json",
        }

    async def _post(self, query: str, variables: dict[str, Any] | None = None) -> dict:
        payload = {"query": query, "variables": variables or {}}
        headers = self._headers()
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.config.timeout_seconds) as client:
                response = await client.post(self._url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            if status_code in (401, 403):
                raise PaymentProviderConfigurationError("Braintree rejected the API credentials") from exc
            if status_code >= 500:
                raise PaymentProviderTimeout(f"Braintree error: HTTP {status_code}") from exc
            raise PaymentProviderError(f"Braintree error: {exc.response.text}") from exc
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise PaymentProviderUnavailable(f"Braintree connection error: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise PaymentProviderTimeout("Braintree request timed out") from exc
        except httpx.TransportError as exc:
            raise PaymentProviderTimeout(f"Braintree transport error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise PaymentProviderTimeout("Braintree returned a malformed response") from exc

    @staticmethod
    def _raise_for_auth_errors(errors: list[dict]) -> None:
        for error in errors:
            error_class = (error.get("extensions") or {}).get("errorClass")
            if error_class in _AUTH_ERROR_CLASSES:
                raise PaymentProviderConfigurationError(error.get("message") or "Braintree authentication failed")

    async def get_client_token(self) -> str:
        body = await self._post(CLIENT_TOKEN_MUTATION, {"input": {}})
        errors = body.get("errors") or []
        self._raise_for_auth_errors(errors)

        token = ((body.get("data") or {}).get("createClientToken") or {}).get("clientToken")
        if not token:
            message = errors[0].get("message") if errors else "empty client token"
            raise PaymentProviderError(f"Braintree did not issue a client token: {message}")
        return token

    async def charge(self, nonce: str, amount: Decimal, *, order_id: str | None = None) -> ChargeOutcome:
        amount_str = format_amount(amount)
        transaction_input: dict[str, Any] = {"amount": amount_str}
        if order_id:
            transaction_input["orderId"] = order_id[:255]

        body = await self._post(
            CHARGE_MUTATION,
            {"input": {"paymentMethodId": nonce, "transaction": transaction_input}},
        )
        errors = body.get("errors") or []
        self._raise_for_auth_errors(errors)
        if any((error.get("extensions") or {}).get("errorClass") == "INTERNAL" for error in errors):
            raise PaymentProviderTimeout("Braintree reported an internal error")

        transaction = ((body.get("data") or {}).get("chargePaymentMethod") or {}).get("transaction")
        if not transaction:
            message = errors[0].get("message") if errors else "Payment was declined"
            logger.info("Charge rejected by gateway", extra={"order_ref": order_id, "reason": message})
            return ChargeOutcome(success=False, message=message, amount=Decimal(amount_str), raw=body)

        status = transaction.get("status")
        success = status in SUCCESS_STATUSES
        return ChargeOutcome(
            success=success,
            transaction_id=transaction.get("id"),
            status=status,
            message=None if success else f"Payment was declined ({status})",
            amount=Decimal(amount_str),
            raw=body,
        )
