import base64
import json
from decimal import Decimal

import httpx
import pytest

from storefront.services import payment_service
from storefront.services.exceptions import ChargeOutcomeUnknown, GatewayAuthError, GatewayUnavailableError
from storefront.services.payment_providers import (
    GatewayConfig,
    PaymentProviderConfigurationError,
    PaymentProviderError,
    PaymentProviderTimeout,
    PaymentProviderUnavailable,
)
from storefront.services.payment_providers.braintree import API_URLS, BraintreeGateway, format_amount

CONFIG = GatewayConfig(
    environment="sandbox",
    merchant_id="merchant",
    public_key="pub",
    private_key="priv",
)


def _gateway(handler, config: GatewayConfig = CONFIG) -> BraintreeGateway:
    return BraintreeGateway(config, transport=httpx.MockTransport(handler))


def _charge_reply(status: str, txn_id: str = "dHJhbnNhY3Rpb25fYWJj") -> dict:
    return {
        "data": {
            "chargePaymentMethod": {
                "transaction": {
                    "id": txn_id,
                    "status": status,
                    "amount": {"value": "30.00", "currencyCode": "USD"},
                }
            }
        }
    }


@pytest.mark.asyncio
async def test_client_token_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["version"] = request.headers["Braintree-Version"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"createClientToken": {"clientToken": "tok-123"}}})

    token = await _gateway(handler).get_client_token()

    assert token == "tok-123"
    assert seen["url"] == API_URLS["sandbox"]
    assert seen["auth"] == "Basic " + base64.b64encode(b"pub:priv").decode()
    assert seen["version"] == "2019-01-01"
    assert "createClientToken" in seen["body"]["query"]


@pytest.mark.asyncio
async def test_charge_success_sends_rounded_amount():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_charge_reply("SUBMITTED_FOR_SETTLEMENT"))

    outcome = await _gateway(handler).charge("fake-valid-nonce", Decimal("29.999"), order_id="attempt-1")

    variables = seen["body"]["variables"]["input"]
    assert variables["paymentMethodId"] == "fake-valid-nonce"
    assert variables["transaction"] == {"amount": "30.00", "orderId": "attempt-1"}
    assert outcome.success is True
    assert outcome.transaction_id == "dHJhbnNhY3Rpb25fYWJj"
    assert outcome.amount == Decimal("30.00")
    assert outcome.as_record()["amount"] == "30.00"


@pytest.mark.asyncio
async def test_charge_declined_by_processor():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_charge_reply("PROCESSOR_DECLINED"))

    outcome = await _gateway(handler).charge("nonce", Decimal("10"))
    assert outcome.success is False
    assert outcome.status == "PROCESSOR_DECLINED"
    assert "declined" in outcome.message


@pytest.mark.asyncio
async def test_charge_validation_error_is_a_decline():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {"chargePaymentMethod": None},
                "errors": [
                    {
                        "message": "Unknown or expired payment_method_nonce.",
                        "extensions": {"errorClass": "VALIDATION"},
                    }
                ],
            },
        )

    outcome = await _gateway(handler).charge("expired", Decimal("10"))
    assert outcome.success is False
    assert outcome.message == "Unknown or expired payment_method_nonce."


@pytest.mark.asyncio
async def test_rejected_credentials_raise_configuration_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Unauthorized")

    with pytest.raises(PaymentProviderConfigurationError):
        await _gateway(handler).get_client_token()


@pytest.mark.asyncio
async def test_missing_credentials_never_reach_the_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    config = GatewayConfig(environment="sandbox", merchant_id="", public_key="", private_key="")
    with pytest.raises(PaymentProviderConfigurationError):
        await _gateway(handler, config).charge("nonce", Decimal("1"))
    assert calls == []


@pytest.mark.asyncio
async def test_read_timeout_is_an_unknown_outcome():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PaymentProviderTimeout):
        await _gateway(handler).charge("nonce", Decimal("10"))


@pytest.mark.asyncio
async def test_connect_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(PaymentProviderUnavailable):
        await _gateway(handler).charge("nonce", Decimal("10"))


@pytest.mark.asyncio
async def test_server_error_is_an_unknown_outcome():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    with pytest.raises(PaymentProviderTimeout):
        await _gateway(handler).charge("nonce", Decimal("10"))


@pytest.mark.asyncio
async def test_missing_client_token_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"createClientToken": None}})

    with pytest.raises(PaymentProviderError):
        await _gateway(handler).get_client_token()


def test_unknown_environment_is_rejected():
    config = GatewayConfig(environment="staging", merchant_id="m", public_key="p", private_key="k")
    with pytest.raises(PaymentProviderConfigurationError):
        BraintreeGateway(config)


def test_format_amount_rounds_half_up():
    assert format_amount(Decimal("1.005")) == "1.01"
    assert format_amount(Decimal("7")) == "7.00"


@pytest.mark.asyncio
async def test_payment_service_maps_provider_errors():
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    def unauthorized(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="Forbidden")

    with pytest.raises(ChargeOutcomeUnknown):
        await payment_service.charge(_gateway(timeout), "nonce", Decimal("5"), order_ref="a")
    with pytest.raises(GatewayUnavailableError):
        await payment_service.charge(_gateway(refused), "nonce", Decimal("5"), order_ref="b")
    with pytest.raises(GatewayAuthError):
        await payment_service.charge(_gateway(unauthorized), "nonce", Decimal("5"), order_ref="c")
    with pytest.raises(GatewayAuthError):
        await payment_service.get_client_token(_gateway(unauthorized))
