import asyncio
import hashlib
import hmac
import json

import httpx
import pytest

from luxe.core import config
from luxe.core.errors import InvalidInput, StoreError, UpstreamError
from luxe.services import payments, pincodes


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRazorpayOrder:
    def test_amount_sent_in_paise(self, db):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={"id": "order_abc", "amount": seen["body"]["amount"]})

        result = asyncio.run(payments.create_razorpay_order(1499.5, mock_client(handler)))
        assert result == {"order": {"id": "order_abc", "amount": 149950}, "key_id": "rzp_test_key"}
        assert seen["body"]["currency"] == "INR"
        assert seen["body"]["receipt"].startswith("receipt_")
        assert seen["auth"].startswith("Basic ")

    def test_gateway_error_description(self, db):
        def handler(request):
            return httpx.Response(400, json={"error": {"description": "Amount exceeds maximum"}})

        with pytest.raises(InvalidInput, match="Amount exceeds maximum"):
            asyncio.run(payments.create_razorpay_order(10, mock_client(handler)))

    def test_network_error(self, db):
        def handler(request):
            raise httpx.ConnectError("boom")

        with pytest.raises(UpstreamError):
            asyncio.run(payments.create_razorpay_order(10, mock_client(handler)))

    def test_not_configured(self, db, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", None)
        monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", None)
        with pytest.raises(StoreError, match="Payment system not configured"):
            asyncio.run(payments.create_razorpay_order(10))

    def test_keys_from_settings_row(self, db, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", None)
        monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", None)
        db.add("payment_settings", razorpay_key_id="rzp_live_row", razorpay_key_secret="row_secret")

        def handler(request):
            return httpx.Response(200, json={"id": "order_row"})

        assert asyncio.run(payments.create_razorpay_order(10, mock_client(handler)))["key_id"] == "rzp_live_row"


class TestSignature:
    def test_valid_and_tampered(self):
        sig = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert payments.verify_razorpay_signature("order_1", "pay_1", sig, key_secret="secret")
        assert not payments.verify_razorpay_signature("order_1", "pay_2", sig, key_secret="secret")

    def test_verify_endpoint(self, client):
        sig = hmac.new(b"rzp_test_secret", b"o|p", hashlib.sha256).hexdigest()
        res = client.post("/api/payments/razorpay/verify",
                          json={"razorpay_order_id": "o", "razorpay_payment_id": "p", "razorpay_signature": sig})
        assert res.json() == {"verified": True}


class TestOptions:
    def test_public_options_hide_secrets(self, client, db):
        db.add("payment_settings", cod_enabled=False, upi_enabled=True, upi_id="shop@upi",
               upi_display_name="Any UPI app", razorpay_key_secret="shh", shipping_charge=49)
        body = client.get("/api/payments/options").json()
        assert body["gateways"]["cod"]["enabled"] is False
        assert body["gateways"]["upi"] == {"enabled": True, "display_name": "Any UPI app",
                                           "display_description": None, "upi_id": "shop@upi"}
        assert body["default_method"] == "upi"
        assert body["shipping"]["shipping_charge"] == 49
        assert "shh" not in json.dumps(body)

    def test_cod_enabled_unless_switched_off(self):
        assert payments.public_options({})["gateways"]["cod"]["enabled"] is True

    def test_redact(self):
        assert payments.redact({"razorpay_key_secret": "x", "upi_id": "a@b"}) == {
            "razorpay_key_secret": "********", "upi_id": "a@b"}


def test_upi_links():
    link = payments.upi_link("shop@upi", 499.0, "abcdef12-3456", app="phonepe")
    assert link == "phonepe://pay?pa=shop@upi&pn=Store&am=499.00&tn=Order%20ABCDEF12"


def test_upi_link_keeps_paise():
    link = payments.upi_link("shop@upi", 10999.99, "abcdef12-3456")
    assert "&am=10999.99&" in link
    assert "&am=125000.50&" in payments.upi_link("shop@upi", 125000.5, "abcdef12-3456")


class TestPostalLookup:
    def test_found(self):
        def handler(request):
            assert request.url.path.endswith("/411001")
            return httpx.Response(200, json=[{"Status": "Success", "PostOffice": [
                {"District": "Pune", "State": "Maharashtra"}]}])

        found = asyncio.run(pincodes.lookup_postal("411001", mock_client(handler)))
        assert found == {"pincode": "411001", "city": "Pune", "state": "Maharashtra"}

    def test_not_found(self):
        def handler(request):
            return httpx.Response(200, json=[{"Status": "Error", "PostOffice": None}])

        assert asyncio.run(pincodes.lookup_postal("999999", mock_client(handler))) is None

    def test_rejects_bad_pincode(self):
        with pytest.raises(InvalidInput):
            asyncio.run(pincodes.lookup_postal("12345"))
