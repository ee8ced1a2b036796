"""Integration tests for store_service endpoints: cart, checkout, orders."""

import pytest
from services.store_service.app.main import app
from tests.factories import (
    CUSTOMER_ID,
    SHIPPING_ADDRESS,
    make_admin_user,
    make_customer_user,
    make_vendor_user,
    override_auth,
    seed_vendor_with_product,
)


async def _fill_cart(client, db_session):
    vendor_a, burger = await seed_vendor_with_product(
        db_session, price="10.00", delivery_fee="2.00", name="Vendor A"
    )
    vendor_b, fries = await seed_vendor_with_product(
        db_session, price="5.00", delivery_fee="1.00", name="Vendor B"
    )
    for product, quantity in ((burger, 2), (fries, 1)):
        response = await client.post(
            "/store/cart/items",
            json={"product_id": str(product.id), "quantity": quantity},
        )
        assert response.status_code == 201, response.text
    return vendor_a, vendor_b


async def _checkout(client, payment_method="paystack", **extra):
    return await client.post(
        "/store/orders",
        json={
            "shipping_address": SHIPPING_ADDRESS,
            "payment_method": payment_method,
            **extra,
        },
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(store_client):
    response = await store_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "store"}


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_cart(store_client):
    response = await store_client.get("/store/cart")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] is None
    assert data["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_totals(store_client, db_session):
    await _fill_cart(store_client, db_session)

    response = await store_client.get("/store/cart")

    data = response.json()
    assert data["item_count"] == 3
    assert data["total_price"] == "25.00"
    assert [item["line_total"] for item in data["items"]] == ["20.00", "5.00"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_and_remove_cart_item(store_client, db_session):
    await _fill_cart(store_client, db_session)
    item_id = (await store_client.get("/store/cart")).json()["items"][0]["id"]

    response = await store_client.patch(
        f"/store/cart/items/{item_id}", json={"quantity": 5}
    )
    assert response.status_code == 200
    assert response.json()["items"][0]["quantity"] == 5

    response = await store_client.delete(f"/store/cart/items/{item_id}")
    assert response.status_code == 200
    assert len(response.json()["items"]) == 1

    response = await store_client.delete(f"/store/cart/items/{item_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_clear_cart(store_client, db_session):
    await _fill_cart(store_client, db_session)

    response = await store_client.delete("/store/cart")

    assert response.status_code == 200
    assert response.json()["items"] == []


# ---------------------------------------------------------------------------
# Checkout and order history
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_creates_vendor_orders(store_client, db_session, notifier):
    await _fill_cart(store_client, db_session)

    response = await _checkout(store_client)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["items_price"] == "25.00"
    assert data["shipping_price"] == "3.00"
    assert data["total_price"] == "28.00"
    assert data["order_status"] == "pending"
    assert data["customer_auth_id"] == CUSTOMER_ID
    assert [vo["subtotal"] for vo in data["vendor_orders"]] == ["20.00", "5.00"]
    assert len(notifier.events("order_placed")) == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_empty_cart(store_client):
    response = await _checkout(store_client)

    assert response.status_code == 400
    assert response.json()["error"] == "EmptyCartError"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_rejects_wrong_total(store_client, db_session):
    await _fill_cart(store_client, db_session)

    response = await _checkout(store_client, total_price="20.00")

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_and_get_orders(store_client, db_session):
    await _fill_cart(store_client, db_session)
    order_id = (await _checkout(store_client, "cash_on_delivery")).json()["id"]

    response = await store_client.get("/store/orders")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["total_pages"] == 1
    assert data["items"][0]["id"] == order_id

    response = await store_client.get(f"/store/orders/{order_id}")
    assert response.status_code == 200
    assert response.json()["payment_method"] == "cash_on_delivery"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_hidden_from_other_customers(store_client, db_session):
    await _fill_cart(store_client, db_session)
    order_id = (await _checkout(store_client)).json()["id"]

    with override_auth(app, make_customer_user(user_id="someone-else")):
        response = await store_client.get(f"/store/orders/{order_id}")
    assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        response = await store_client.get(f"/store/orders/{order_id}")
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cancels_order(store_client, db_session):
    await _fill_cart(store_client, db_session)
    order_id = (await _checkout(store_client)).json()["id"]

    response = await store_client.post(f"/store/orders/{order_id}/cancel")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["order_status"] == "cancelled"
    assert {vo["status"] for vo in data["vendor_orders"]} == {"cancelled"}


# ---------------------------------------------------------------------------
# Vendor side
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_vendor_sees_and_updates_own_sub_order(store_client, db_session):
    vendor_a, vendor_b = await _fill_cart(store_client, db_session)
    order_id = (await _checkout(store_client)).json()["id"]

    with override_auth(app, make_vendor_user(vendor_a.auth_id)):
        response = await store_client.get("/vendor/orders")
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await store_client.put(
            f"/vendor/orders/{order_id}/status", json={"status": "preparing"}
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "preparing"
        assert response.json()["vendor_id"] == str(vendor_a.id)

        response = await store_client.put(
            f"/vendor/orders/{order_id}/status", json={"status": "confirmed"}
        )
        assert response.status_code == 409

    # Vendor B still pending, so the customer can no longer cancel
    response = await store_client.post(f"/store/orders/{order_id}/cancel")
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_vendor_routes_reject_customers(store_client):
    response = await store_client.get("/vendor/orders")

    assert response.status_code == 403
