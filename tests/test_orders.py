import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from storefront.core.config import settings
from storefront.domain.enums import OrderStatus, UserRole
from storefront.models.order import ImmutableOrderError, Order
from storefront.models.product import Product
from storefront.services import order_service, order_status_service
from storefront.services.auth_service import Principal
from storefront.services.exceptions import AuthorizationError, ConflictError, ValidationError


async def _place_order(client: AsyncClient, headers: dict, *products, nonce: str = "nonce") -> dict:
    for product in products:
        resp = await client.post("/api/v1/cart/add-item", json={"product_id": str(product.id)}, headers=headers)
        assert resp.status_code == 200, resp.text
    resp = await client.post("/api/v1/payments/braintree/payment", json={"nonce": nonce}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["order"]


async def _set_status(client: AsyncClient, headers: dict, order_id: str, status: str):
    return await client.put(f"/api/v1/orders/{order_id}/status", json={"status": status}, headers=headers)


@pytest.mark.asyncio
async def test_admin_status_change_is_visible_to_buyer(
    client: AsyncClient, buyer_token, admin_token, auth_headers, make_product, gateway
):
    buyer = auth_headers(buyer_token)
    order = await _place_order(client, buyer, make_product("Mug"))

    resp = await _set_status(client, auth_headers(admin_token), order["id"], "Processing")
    assert resp.status_code == 200, resp.text
    assert resp.json()["order"]["status"] == "Processing"

    resp = await client.get("/api/v1/orders", headers=buyer)
    assert resp.status_code == 200, resp.text
    orders = resp.json()["orders"]
    assert [o["id"] for o in orders] == [order["id"]]
    assert orders[0]["status"] == "Processing"


@pytest.mark.asyncio
async def test_non_admin_cannot_change_status(client: AsyncClient, buyer_token, auth_headers, make_product, gateway):
    buyer = auth_headers(buyer_token)
    order = await _place_order(client, buyer, make_product("Mug"))

    resp = await _set_status(client, buyer, order["id"], "Shipped")
    assert resp.status_code == 401
    assert resp.json()["success"] is False

    resp = await client.get("/api/v1/orders", headers=buyer)
    assert resp.json()["orders"][0]["status"] == "Not Processed"


@pytest.mark.asyncio
async def test_buyer_orders_oldest_first_and_admin_list_newest_first(
    client: AsyncClient, buyer_token, admin_token, auth_headers, make_product, gateway
):
    buyer = auth_headers(buyer_token)
    first = await _place_order(client, buyer, make_product("Lamp"), nonce="n-1")
    second = await _place_order(client, buyer, make_product("Desk"), nonce="n-2")

    resp = await client.get("/api/v1/orders", headers=buyer)
    assert [o["id"] for o in resp.json()["orders"]] == [first["id"], second["id"]]

    resp = await client.get("/api/v1/orders/all", headers=auth_headers(admin_token))
    assert resp.status_code == 200, resp.text
    listed = resp.json()["orders"]
    assert [o["id"] for o in listed] == [second["id"], first["id"]]
    assert all(o["buyer_name"] == "Test Buyer" for o in listed)


@pytest.mark.asyncio
async def test_all_orders_requires_admin(client: AsyncClient, buyer_token, auth_headers):
    resp = await client.get("/api/v1/orders/all", headers=auth_headers(buyer_token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_buyer_without_orders_gets_empty_list(client: AsyncClient, buyer_token, auth_headers):
    resp = await client.get("/api/v1/orders", headers=auth_headers(buyer_token))
    assert resp.status_code == 200
    assert resp.json()["orders"] == []


@pytest.mark.asyncio
async def test_permissive_policy_allows_any_transition(
    client: AsyncClient, buyer_token, admin_token, auth_headers, make_product, gateway
):
    order = await _place_order(client, auth_headers(buyer_token), make_product("Rug"))
    admin = auth_headers(admin_token)

    for status in ("Delivered", "Not Processed", "Cancelled", "Shipped"):
        resp = await _set_status(client, admin, order["id"], status)
        assert resp.status_code == 200, resp.text
        assert resp.json()["order"]["status"] == status


@pytest.mark.asyncio
async def test_strict_policy_rejects_backward_moves(
    client: AsyncClient, buyer_token, admin_token, auth_headers, make_product, gateway, monkeypatch
):
    monkeypatch.setattr(settings, "ORDER_STATUS_POLICY", "strict")
    order = await _place_order(client, auth_headers(buyer_token), make_product("Chair"))
    admin = auth_headers(admin_token)

    resp = await _set_status(client, admin, order["id"], "Shipped")
    assert resp.status_code == 409

    for status in ("Processing", "Shipped", "Delivered"):
        resp = await _set_status(client, admin, order["id"], status)
        assert resp.status_code == 200, resp.text

    resp = await _set_status(client, admin, order["id"], "Cancelled")
    assert resp.status_code == 409
    resp = await _set_status(client, admin, order["id"], "Delivered")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_invalid_status_value_is_rejected(
    client: AsyncClient, buyer_token, admin_token, auth_headers, make_product, gateway
):
    order = await _place_order(client, auth_headers(buyer_token), make_product("Cup"))
    resp = await _set_status(client, auth_headers(admin_token), order["id"], "Teleported")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_unknown_order_is_not_found(client: AsyncClient, admin_token, auth_headers):
    resp = await _set_status(client, auth_headers(admin_token), str(uuid.uuid4()), "Processing")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_order_keeps_product_snapshot(
    client: AsyncClient, buyer_token, auth_headers, make_product, gateway, db_session
):
    buyer = auth_headers(buyer_token)
    product = make_product("Teapot", "18.00", description="Cast iron")
    order = await _place_order(client, buyer, product)

    stored = db_session.get(Product, product.id)
    stored.name = "Teapot v2"
    stored.price = Decimal("25.00")
    db_session.commit()

    resp = await client.get("/api/v1/orders", headers=buyer)
    line = resp.json()["orders"][0]["products"][0]
    assert line["name"] == "Teapot"
    assert line["price"] == 18.0
    assert line["description"] == "Cast iron"

    db_session.delete(stored)
    db_session.commit()

    resp = await client.get("/api/v1/orders", headers=buyer)
    assert resp.json()["orders"][0]["products"][0]["name"] == "Teapot"
    assert resp.json()["orders"][0]["id"] == order["id"]


@pytest.mark.asyncio
async def test_paid_order_fields_are_immutable(
    client: AsyncClient, buyer_token, auth_headers, make_product, gateway, db_session
):
    order = await _place_order(client, auth_headers(buyer_token), make_product("Stool", "40.00"))

    stored = db_session.scalars(select(Order).where(Order.id == uuid.UUID(order["id"]))).one()
    stored.total_amount = Decimal("1.00")
    with pytest.raises(ImmutableOrderError):
        db_session.commit()
    db_session.rollback()

    stored = db_session.scalars(select(Order).where(Order.id == uuid.UUID(order["id"]))).one()
    assert Decimal(str(stored.total_amount)) == Decimal("40.00")


@pytest.mark.asyncio
async def test_set_status_service_checks_role_first(async_db_session):
    actor = Principal(user_id=uuid.uuid4(), role=UserRole.user)
    with pytest.raises(AuthorizationError):
        await order_status_service.set_status(async_db_session, actor, uuid.uuid4(), "Processing")


def test_parse_status_rejects_unknown_values():
    assert order_status_service.parse_status("Shipped") is OrderStatus.shipped
    with pytest.raises(ValidationError):
        order_status_service.parse_status("shipped-ish")


def test_transition_tables():
    allowed = order_status_service.is_transition_allowed
    assert allowed(OrderStatus.delivered, OrderStatus.not_processed, "permissive")
    assert allowed(OrderStatus.shipped, OrderStatus.shipped, "strict")
    assert allowed(OrderStatus.not_processed, OrderStatus.cancelled, "strict")
    assert not allowed(OrderStatus.delivered, OrderStatus.cancelled, "strict")
    assert not allowed(OrderStatus.processing, OrderStatus.not_processed, "strict")


@pytest.mark.asyncio
async def test_set_status_reports_tampered_order_as_conflict(
    client: AsyncClient, buyer_token, admin_user, auth_headers, make_product, gateway, async_db_session, monkeypatch
):
    order = await _place_order(client, auth_headers(buyer_token), make_product("Bench", "60.00"))
    real_get_order = order_service.get_order

    async def get_tampered_order(db, order_id):
        loaded = await real_get_order(db, order_id)
        loaded.total_amount = Decimal("1.00")
        return loaded

    monkeypatch.setattr(order_service, "get_order", get_tampered_order)
    admin = Principal(user_id=admin_user.id, role=UserRole.admin)

    with pytest.raises(ConflictError) as excinfo:
        await order_status_service.set_status(async_db_session, admin, order["id"], "Processing")
    assert "total_amount" in excinfo.value.detail
