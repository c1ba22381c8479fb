import hashlib
import hmac

import pytest

ADDRESS = {
    "fullName": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


@pytest.fixture
def in_cart(client, customer, product):
    client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 1}, headers=customer["headers"])
    return product


@pytest.fixture
def welcome(db):
    return db.add("coupons", code="WELCOME10", discount_type="percentage", discount_value=10,
                  is_active=True, used_count=0)


class TestQuote:
    def test_welcome_coupon_for_first_order(self, client, customer, in_cart, welcome):
        res = client.post("/api/checkout/quote", json={"payment_method": "cod"}, headers=customer["headers"])
        quote = res.json()
        assert quote["welcome_applied"] is True
        assert quote["coupon_code"] == "WELCOME10"
        assert quote["subtotal"] == 1500
        assert quote["shipping"] == 0
        assert quote["final_total"] == 1350

    def test_no_welcome_after_an_order(self, client, db, customer, in_cart, welcome):
        db.add("orders", user_id=customer["id"], status="delivered", total_amount=100)
        quote = client.post("/api/checkout/quote", json={}, headers=customer["headers"]).json()
        assert quote["welcome_applied"] is False
        assert quote["coupon_discount"] == 0
        assert quote["payment_method"] == "cod"

    def test_guest_quote_uses_lines(self, client, product):
        res = client.post("/api/checkout/quote", json={"items": [{"product_id": product["id"], "quantity": 2}]})
        assert res.json()["subtotal"] == 3000

    def test_empty_cart(self, client, customer):
        res = client.post("/api/checkout/quote", json={}, headers=customer["headers"])
        assert res.status_code == 400


class TestCoupon:
    def test_apply(self, client, db, customer, in_cart):
        db.add("coupons", code="FLAT200", discount_type="fixed", discount_value=200, is_active=True)
        res = client.post("/api/checkout/coupon", json={"code": " flat200 "}, headers=customer["headers"])
        body = res.json()
        assert body["coupon"]["code"] == "FLAT200"
        assert body["discount"] == 200
        assert body["quote"]["final_total"] == 1300

    def test_inactive_coupon(self, client, db, customer, in_cart):
        db.add("coupons", code="OLD", discount_type="fixed", discount_value=200, is_active=False)
        res = client.post("/api/checkout/coupon", json={"code": "OLD"}, headers=customer["headers"])
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid coupon code"


class TestPincode:
    def test_serviceable(self, client, db):
        db.add("serviceable_pincodes", pincode="411001", city="Pune", state="Maharashtra",
               delivery_days=3, cod_available=True, is_active=True)
        body = client.get("/api/checkout/pincode/411001").json()
        assert body["available"] is True
        assert body["info"]["delivery_days"] == 3

    def test_unknown_and_malformed(self, client, db):
        assert client.get("/api/checkout/pincode/110001").json()["available"] is False
        assert "valid 6-digit" in client.get("/api/checkout/pincode/11A001").json()["message"]


class TestPlaceOrder:
    def test_cod_order(self, client, db, customer, in_cart, welcome):
        res = client.post("/api/checkout/orders", json={"payment_method": "cod", "address": ADDRESS},
                          headers=customer["headers"])
        assert res.status_code == 201
        order = res.json()["order"]
        assert order["status"] == "confirmed"
        assert order["total_amount"] == 1350
        assert order["coupon_code"] == "WELCOME10"

        items = db.rows("order_items")
        assert items[0]["product_name"] == "Silk Wrap Dress"
        assert items[0]["price"] == 1500
        assert items[0]["product_image"] == "https://img.test/dress.jpg"
        assert db.rows("cart") == []
        assert db.rows("coupon_usage")[0]["order_id"] == order["id"]
        assert db.rows("coupons")[0]["used_count"] == 1

    def test_cod_unavailable(self, client, db, customer, product):
        db.tables["products"][0]["cod_available"] = False
        res = client.post("/api/checkout/orders", json={
            "payment_method": "cod", "address": ADDRESS,
            "buy_now": {"product_id": product["id"]},
        }, headers=customer["headers"])
        assert res.status_code == 400

    def test_upi_order_awaits_payment(self, client, db, product):
        db.add("payment_settings", upi_enabled=True, upi_id="shop@upi")
        res = client.post("/api/checkout/orders", json={
            "payment_method": "upi", "address": ADDRESS,
            "items": [{"product_id": product["id"], "quantity": 1}],
        })
        body = res.json()
        assert body["order"]["status"] == "awaiting_payment"
        assert body["order"]["guest_email"] == "asha@example.com"
        assert body["upi_link"].startswith("upi://pay?pa=shop@upi&pn=Store&am=1500.00&tn=Order%20")

    def test_buy_now_keeps_cart(self, client, db, customer, in_cart):
        client.post("/api/checkout/orders", json={
            "payment_method": "cod", "address": ADDRESS,
            "buy_now": {"product_id": in_cart["id"], "quantity": 1},
        }, headers=customer["headers"])
        assert len(db.rows("cart")) == 1

    def test_razorpay_signature_checked(self, client, db, customer, in_cart):
        payload = {"payment_method": "razorpay", "address": ADDRESS, "razorpay_order_id": "order_1",
                   "razorpay_payment_id": "pay_1", "razorpay_signature": "forged"}
        res = client.post("/api/checkout/orders", json=payload, headers=customer["headers"])
        assert res.status_code == 400
        assert db.rows("orders") == []

        payload["razorpay_signature"] = hmac.new(b"rzp_test_secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        order = client.post("/api/checkout/orders", json=payload, headers=customer["headers"]).json()["order"]
        assert order["status"] == "confirmed"
        assert order["payment_id"] == "pay_1"

    def test_invalid_address(self, client, customer, in_cart):
        res = client.post("/api/checkout/orders", json={
            "payment_method": "cod", "address": {**ADDRESS, "pincode": "4110"},
        }, headers=customer["headers"])
        assert res.status_code == 422


class TestUtr:
    def test_submit(self, client, db):
        order = db.add("orders", status="awaiting_payment", payment_method="upi", total_amount=500)
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"})
        assert res.json()["status"] == "awaiting_verification"
        assert db.rows("orders")[0]["payment_id"] == "UTR:123456789012"

    def test_tr_id_length(self, client, db):
        order = db.add("orders", status="awaiting_payment", payment_method="razorpay_upi", total_amount=500)
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Please enter a valid 20-digit TR ID"

    def test_only_awaiting_payment(self, client, db):
        order = db.add("orders", status="confirmed", payment_method="upi", total_amount=500)
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"})
        assert res.status_code == 409

    def test_someone_elses_order(self, client, db, customer):
        order = db.add("orders", user_id="another-user", status="awaiting_payment", payment_method="upi")
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"},
                          headers=customer["headers"])
        assert res.status_code == 404

    def test_letters_rejected(self, client, db):
        order = db.add("orders", status="awaiting_payment", payment_method="upi", total_amount=500)
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "ABCDEFGHIJKL"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Please enter a valid 12-digit UTR number"
        assert db.rows("orders")[0]["status"] == "awaiting_payment"

    def test_anonymous_caller_on_account_order(self, client, db, customer):
        order = db.add("orders", user_id=customer["id"], status="awaiting_payment", payment_method="upi")
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"})
        assert res.status_code == 404
        assert db.rows("orders")[0]["status"] == "awaiting_payment"

    def test_owner_submits(self, client, db, customer):
        order = db.add("orders", user_id=customer["id"], status="awaiting_payment", payment_method="upi")
        res = client.post(f"/api/checkout/orders/{order['id']}/utr", json={"utr": "123456789012"},
                          headers=customer["headers"])
        assert res.json()["status"] == "awaiting_verification"
