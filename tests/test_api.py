from shared.events import ActivityRecorded, ConfirmationEmailRequested

from conftest import CUSTOMER, OTHER_CUSTOMER, STAFF, auth_headers, seed_coupon, seed_variant, stock_of

INTERNAL = {"X-Internal-API-Key": "test-internal-key"}

CHECKOUT_BODY = {
    "customer_name": "Lan Nguyen",
    "customer_phone": "0901234567",
    "email": "lan@example.com",
    "ship_address_line1": "12 Nguyen Hue",
    "ship_city": "HCM",
    "ship_province": "Ho Chi Minh",
}


async def fill_cart(client, headers, variant_id, quantity):
    resp = await client.post("/carts/items", json={"variant_id": variant_id, "quantity": quantity}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def checkout(client, headers, **overrides):
    return await client.post("/orders/checkout", json={**CHECKOUT_BODY, **overrides}, headers=headers)


class TestCheckoutEndpoint:
    async def test_checkout_creates_order_and_dispatches_events(self, client, sessions, dispatcher):
        variant = await seed_variant(sessions, price="100000", stock=5)
        await seed_coupon(sessions, code="SAVE10")
        headers = auth_headers(CUSTOMER)
        await fill_cart(client, headers, variant.id, 2)

        resp = await checkout(client, headers, coupon_code="SAVE10")

        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["success"] is True
        assert float(body["data"]["grand_total"]) == 205000
        assert body["data"]["items"][0]["qty"] == 2
        assert dispatcher.of_type(ActivityRecorded)
        assert dispatcher.of_type(ConfirmationEmailRequested)
        assert await stock_of(sessions, variant.id) == 3

    async def test_guest_checkout_with_session_header(self, client, sessions):
        variant = await seed_variant(sessions, stock=5)
        headers = {"X-Session-Id": "guest-abc"}
        await fill_cart(client, headers, variant.id, 1)

        resp = await checkout(client, headers, email="")

        assert resp.status_code == 201, resp.text
        assert resp.json()["data"]["user_id"] is None

    async def test_staff_account_is_forbidden(self, client, sessions, dispatcher):
        resp = await checkout(client, auth_headers(STAFF))

        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "authorization"
        assert dispatcher.events == []

    async def test_empty_cart_is_bad_request(self, client):
        resp = await checkout(client, auth_headers(CUSTOMER))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "cart_empty"

    async def test_invalid_body(self, client):
        resp = await checkout(client, auth_headers(CUSTOMER), payment_method="cash-in-envelope")

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert resp.json()["success"] is False
        assert (error["kind"], error["code"]) == ("validation", "invalid_input")
        assert error["details"]["field"] == "payment_method"

    async def test_missing_fields(self, client):
        resp = await client.post(
            "/orders/checkout",
            json={"customer_name": "Lan Nguyen", "payment_method": "cash"},
            headers=auth_headers(CUSTOMER),
        )

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["kind"] == "validation"
        fields = {e["field"] for e in error["details"]["errors"]}
        assert {"customer_phone", "ship_address_line1", "ship_city", "payment_method"} <= fields

    async def test_bad_token(self, client):
        resp = await checkout(client, {"Authorization": "Bearer not-a-token"})

        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["error"]["kind"] == "unauthenticated"


class TestOrderEndpoints:
    async def place(self, client, sessions, identity=CUSTOMER, **overrides):
        variant = await seed_variant(sessions, sku=f"SKU-{identity.user_id}", stock=10)
        headers = auth_headers(identity)
        await fill_cart(client, headers, variant.id, 1)
        resp = await checkout(client, headers, **overrides)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    async def test_my_orders(self, client, sessions):
        order = await self.place(client, sessions)
        await self.place(client, sessions, identity=OTHER_CUSTOMER)

        resp = await client.get("/orders/me", headers=auth_headers(CUSTOMER))

        body = resp.json()
        assert [o["id"] for o in body["orders"]] == [order["id"]]
        assert body["pagination"]["total"] == 1

    async def test_order_detail_is_private(self, client, sessions):
        order = await self.place(client, sessions)

        own = await client.get(f"/orders/{order['id']}", headers=auth_headers(CUSTOMER))
        other = await client.get(f"/orders/{order['id']}", headers=auth_headers(OTHER_CUSTOMER))
        staff = await client.get(f"/orders/{order['id']}", headers=auth_headers(STAFF))

        assert (own.status_code, other.status_code, staff.status_code) == (200, 403, 200)

    async def test_lookup_by_code(self, client, sessions):
        order = await self.place(client, sessions)

        found = await client.get(f"/orders/code/{order['order_code']}")
        missing = await client.get("/orders/code/FS00000000-NOPE00")

        assert found.json()["data"]["id"] == order["id"]
        assert missing.status_code == 404

    async def test_staff_listing_and_status_update(self, client, sessions):
        order = await self.place(client, sessions)

        forbidden = await client.patch(
            f"/orders/{order['id']}/status", json={"status": "processing"}, headers=auth_headers(CUSTOMER)
        )
        updated = await client.patch(
            f"/orders/{order['id']}/status", json={"status": "processing"}, headers=auth_headers(STAFF)
        )
        invalid = await client.patch(
            f"/orders/{order['id']}/status", json={"status": "pending"}, headers=auth_headers(STAFF)
        )
        listing = await client.get("/orders/", params={"status": "processing"}, headers=auth_headers(STAFF))

        assert forbidden.status_code == 403
        assert forbidden.json()["error"]["code"] == "staff_required"
        assert updated.json()["data"]["status"] == "processing"
        assert invalid.status_code == 400
        assert invalid.json()["error"]["code"] == "invalid_transition"
        assert [o["id"] for o in listing.json()["orders"]] == [order["id"]]

    async def test_customer_cancel(self, client, sessions):
        order = await self.place(client, sessions)

        resp = await client.post(f"/orders/{order['id']}/cancel", headers=auth_headers(CUSTOMER))
        again = await client.post(f"/orders/{order['id']}/cancel", headers=auth_headers(CUSTOMER))
        anonymous = await client.post(f"/orders/{order['id']}/cancel")

        assert resp.json()["data"]["status"] == "cancelled"
        assert again.status_code == 400
        assert anonymous.status_code == 401


class TestPaymentCallbacks:
    async def test_confirm_requires_internal_key(self, client, sessions):
        variant = await seed_variant(sessions, price="100000", stock=5)
        headers = auth_headers(CUSTOMER)
        await fill_cart(client, headers, variant.id, 1)
        order = (await checkout(client, headers, payment_method="momo")).json()["data"]
        payload = {"transaction_ref": "MOMO-123", "amount": order["grand_total"]}

        denied = await client.post(f"/payments/orders/{order['id']}/confirm", json=payload)
        confirmed = await client.post(f"/payments/orders/{order['id']}/confirm", json=payload, headers=INTERNAL)
        payment = await client.get(f"/payments/orders/{order['id']}", headers=auth_headers(STAFF))

        assert denied.status_code == 403
        assert denied.json()["error"] == {
            "kind": "authorization",
            "code": "invalid_api_key",
            "message": "Invalid or missing X-Internal-API-Key header",
            "details": {},
        }
        assert confirmed.status_code == 200, confirmed.text
        assert confirmed.json()["data"]["status"] == "paid"
        assert payment.json()["transaction_ref"] == "MOMO-123"

    async def test_failed_payment_keeps_order_pending(self, client, sessions):
        variant = await seed_variant(sessions, stock=5)
        headers = auth_headers(CUSTOMER)
        await fill_cart(client, headers, variant.id, 1)
        order = (await checkout(client, headers, payment_method="zalopay")).json()["data"]

        resp = await client.post(
            f"/payments/orders/{order['id']}/fail", json={"reason": "declined"}, headers=INTERNAL
        )
        detail = await client.get(f"/orders/{order['id']}", headers=headers)

        assert resp.json()["status"] == "failed"
        assert detail.json()["data"]["status"] == "pending"

    async def test_unknown_payment_uses_failure_envelope(self, client):
        resp = await client.get("/payments/orders/9999", headers=auth_headers(STAFF))

        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": {"kind": "not_found", "code": "not_found", "message": "Payment not found", "details": {}},
        }


class TestPricingAndShipping:
    async def test_shipping_fee(self, client):
        metro = await client.get("/shipping/fee", params={"city": "HCM"})
        other = await client.get("/shipping/fee", params={"city": "Hanoi"})
        assert float(metro.json()["shipping_fee"]) == 25000
        assert float(other.json()["shipping_fee"]) == 35000

    async def test_quote_matches_checkout(self, client, sessions):
        variant = await seed_variant(sessions, price="100000", stock=5)
        await seed_coupon(sessions, code="SAVE10")
        headers = auth_headers(CUSTOMER)
        await fill_cart(client, headers, variant.id, 2)

        quote = await client.post("/pricing/quote", json={"ship_city": "HCM", "coupon_code": "SAVE10"}, headers=headers)
        unknown = await client.post("/pricing/quote", json={"ship_city": "HCM", "coupon_code": "NOPE"}, headers=headers)

        assert float(quote.json()["grand_total"]) == 205000
        assert quote.json()["coupon_code"] == "SAVE10"
        assert unknown.json()["coupon_rejection"] == "not_found"
        assert float(unknown.json()["discount_total"]) == 0

    async def test_apply_coupon_endpoint(self, client, sessions):
        await seed_coupon(sessions, code="SAVE10")
        ok = await client.post("/coupons/apply", json={"code": "SAVE10", "subtotal": "200000"})
        missing = await client.post("/coupons/apply", json={"code": "NONE", "subtotal": "200000"})
        assert float(ok.json()["discount_amount"]) == 20000
        assert missing.status_code == 404


class TestInventoryEndpoints:
    async def test_staff_creates_product_and_checks_ledger(self, client):
        body = {"name": "Wool Scarf", "variants": [{"sku": "SCARF-1", "price": "89000", "stock_qty": 7}]}

        denied = await client.post("/inventory/products", json=body, headers=auth_headers(CUSTOMER))
        created = await client.post("/inventory/products", json=body, headers=auth_headers(STAFF))
        variant_id = created.json()["variants"][0]["id"]
        restocked = await client.post(
            f"/inventory/variants/{variant_id}/restock", json={"quantity": 3}, headers=auth_headers(STAFF)
        )
        ledger = await client.get(f"/inventory/variants/{variant_id}/ledger", headers=auth_headers(STAFF))

        assert denied.status_code == 403
        assert created.status_code == 201
        assert restocked.json()["note"] == "Restock"
        assert ledger.json() == {
            "variant_id": variant_id,
            "stock_qty": 10,
            "ledger_in": 10,
            "ledger_out": 0,
            "consistent": True,
        }
