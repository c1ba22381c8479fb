"""Payment gateway configuration and the Razorpay integration.

The ``payment_settings`` table holds a single row with gateway toggles,
credentials, UPI ids, display names and shipping settings. Customers only
ever see :func:`public_options`; the credential columns stay server side.
"""
import hashlib
import hmac
import logging
import time
from typing import Optional
from urllib.parse import quote

import httpx

from luxe.core import config
from luxe.core.errors import InvalidInput, StoreError, UpstreamError
from luxe.db.supabase import first, get_client, run
from luxe.services.pricing import GATEWAYS, default_payment_method, shipping_settings

logger = logging.getLogger(__name__)

SECRET_FIELDS = {
    "razorpay_key_secret",
    "paytm_merchant_key",
    "cashfree_secret_key",
    "bharatpay_api_key",
    "payyou_api_key",
    "phonepe_salt_key",
    "phonepe_salt_index",
}

UPI_APP_SCHEMES = {
    "phonepe": "phonepe://pay",
    "paytm": "paytmmp://pay",
}


def get_settings() -> Optional[dict]:
    return first(get_client().table("payment_settings").select("*"))


def save_settings(data: dict) -> dict:
    """Update the settings row, or create it on first save."""
    client = get_client()
    existing = first(client.table("payment_settings").select("id"))
    if existing:
        res = run(client.table("payment_settings").update(data).eq("id", existing["id"]))
    else:
        res = run(client.table("payment_settings").insert(data))
    return res.data[0]


def public_options(settings: Optional[dict] = None) -> dict:
    row = settings if settings is not None else get_settings()
    row = row or {}
    gateways = {}
    for gateway in GATEWAYS:
        enabled = row.get(f"{gateway}_enabled")
        if gateway == "cod":
            enabled = enabled is not False
        gateways[gateway] = {
            "enabled": bool(enabled),
            "display_name": row.get(f"{gateway}_display_name"),
            "display_description": row.get(f"{gateway}_display_description"),
        }
    gateways["upi"]["upi_id"] = row.get("upi_id")
    gateways["razorpay_upi"]["upi_id"] = row.get("razorpay_upi_id")
    gateways["razorpay"]["key_id"] = row.get("razorpay_key_id") or config.RAZORPAY_KEY_ID
    return {
        "gateways": gateways,
        "default_method": default_payment_method(row),
        "shipping": shipping_settings(row),
    }


def redact(settings: Optional[dict]) -> dict:
    return {k: ("********" if k in SECRET_FIELDS and v else v) for k, v in (settings or {}).items()}


def _razorpay_credentials():
    row = get_settings() or {}
    key_id = config.RAZORPAY_KEY_ID or row.get("razorpay_key_id")
    key_secret = config.RAZORPAY_KEY_SECRET or row.get("razorpay_key_secret")
    if not key_id or not key_secret:
        logger.error("Razorpay credentials not configured")
        raise StoreError("Payment system not configured")
    return key_id, key_secret


async def create_razorpay_order(amount: float, http_client: Optional[httpx.AsyncClient] = None) -> dict:
    """Create a Razorpay order for ``amount`` rupees."""
    key_id, key_secret = _razorpay_credentials()
    payload = {
        "amount": int(round(amount * 100)),
        "currency": "INR",
        "receipt": f"receipt_{int(time.time() * 1000)}",
    }
    logger.info("Creating Razorpay order for amount: %s", payload["amount"])

    client = http_client or httpx.AsyncClient(timeout=20.0)
    try:
        r = await client.post(f"{config.RAZORPAY_API_URL}/orders", json=payload, auth=(key_id, key_secret))
        order = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Razorpay network error: %s", e)
        raise UpstreamError("Failed to create order") from e
    finally:
        if http_client is None:
            await client.aclose()

    if r.status_code >= 400:
        logger.error("Razorpay API error: %s", order)
        description = (order.get("error") or {}).get("description") or "Failed to create order"
        raise InvalidInput(description)

    logger.info("Razorpay order created: %s", order.get("id"))
    return {"order": order, "key_id": key_id}


def verify_razorpay_signature(order_id: str, payment_id: str, signature: str,
                              key_secret: Optional[str] = None) -> bool:
    if key_secret is None:
        _, key_secret = _razorpay_credentials()
    expected = hmac.new(key_secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature or "")


def upi_link(upi_id: str, amount: float, order_id: str, app: Optional[str] = None) -> str:
    note = quote(f"Order {order_id[:8].upper()}")
    base = UPI_APP_SCHEMES.get(app, "upi://pay")
    return f"{base}?pa={upi_id}&pn=Store&am={amount:.2f}&tn={note}"
