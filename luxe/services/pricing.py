"""Price arithmetic shared by the cart, checkout and catalog.

Every function here is pure: callers fetch products, coupons and the
``payment_settings`` row and pass them in as plain dicts.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from luxe.core.errors import InvalidInput

SHIPPING_DEFAULTS = {
    "shipping_enabled": True,
    "shipping_charge": 99,
    "free_shipping_threshold": 999,
}

GATEWAYS = (
    "razorpay", "upi", "razorpay_upi", "paytm", "cashfree",
    "bharatpay", "payyou", "phonepe", "cod",
)


def effective_price(product: dict) -> float:
    return product.get("sale_price") or product.get("price") or 0


def discount_percent(product: dict) -> int:
    price = product.get("price") or 0
    sale_price = product.get("sale_price")
    if not sale_price or price <= 0 or sale_price >= price:
        return 0
    # JS Math.round semantics: halves round up
    return int((price - sale_price) / price * 100 + 0.5)


def cart_totals(items: Iterable[dict]) -> dict:
    items = list(items)
    total_items = sum(it["quantity"] for it in items)
    total_amount = sum(effective_price(it.get("product") or {}) * it["quantity"] for it in items)
    return {"total_items": total_items, "total_amount": total_amount}


def original_total(items: Iterable[dict]) -> float:
    return sum((it.get("product") or {}).get("price", 0) * it["quantity"] for it in items)


def shipping_settings(row: Optional[dict]) -> dict:
    settings = dict(SHIPPING_DEFAULTS)
    for gateway in GATEWAYS:
        settings[f"{gateway}_shipping_charge"] = 0
    for key, value in (row or {}).items():
        if key in settings and value is not None:
            settings[key] = value
    return settings


def gateway_shipping_charge(settings: dict, payment_method: Optional[str]) -> float:
    if not payment_method or payment_method not in GATEWAYS:
        return 0
    return settings.get(f"{payment_method}_shipping_charge") or 0


def calculate_shipping(items: Iterable[dict], settings: dict, payment_method: Optional[str],
                       subtotal: float) -> float:
    """Shipping for a checkout.

    Per-product charges win over the global rule; the free shipping
    threshold only applies to the global charge.
    """
    if not settings.get("shipping_enabled"):
        return 0

    product_shipping = 0
    has_product_shipping = False
    for it in items:
        charge = (it.get("product") or {}).get("shipping_charge")
        if charge is not None:
            product_shipping += charge * it["quantity"]
            has_product_shipping = True

    gateway_charge = gateway_shipping_charge(settings, payment_method)
    if has_product_shipping:
        return product_shipping + gateway_charge

    threshold = settings.get("free_shipping_threshold") or 0
    if threshold > 0 and subtotal >= threshold:
        return 0
    return (settings.get("shipping_charge") or 0) + gateway_charge


def _parse_ts(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def check_coupon(coupon: Optional[dict], subtotal: float, now: Optional[datetime] = None) -> dict:
    if not coupon or coupon.get("is_active") is False:
        raise InvalidInput("Invalid coupon code")
    now = now or datetime.now(timezone.utc)

    valid_from = _parse_ts(coupon.get("valid_from"))
    if valid_from and valid_from > now:
        raise InvalidInput("This coupon is not yet active")
    valid_until = _parse_ts(coupon.get("valid_until"))
    if valid_until and valid_until < now:
        raise InvalidInput("This coupon has expired")

    limit = coupon.get("usage_limit")
    if limit and (coupon.get("used_count") or 0) >= limit:
        raise InvalidInput("This coupon has been fully redeemed")

    min_order = coupon.get("min_order_amount")
    if min_order and subtotal < min_order:
        raise InvalidInput(f"Minimum order amount is ₹{min_order:g}")
    return coupon


def coupon_discount(coupon: dict, subtotal: float, shipping: float = 0) -> float:
    if coupon.get("discount_type") == "percentage":
        discount = subtotal * coupon["discount_value"] / 100
    else:
        discount = coupon["discount_value"]

    cap = coupon.get("max_discount_amount")
    if cap and discount > cap:
        discount = cap
    return min(discount, subtotal + shipping)


def cod_available(settings_row: Optional[dict], items: Iterable[dict]) -> bool:
    if (settings_row or {}).get("cod_enabled") is False:
        return False
    return all((it.get("product") or {}).get("cod_available") is not False for it in items)


def default_payment_method(settings_row: Optional[dict]) -> str:
    row = settings_row or {}
    if row.get("cod_enabled") is not False:
        return "cod"
    if row.get("razorpay_enabled"):
        return "razorpay"
    if row.get("razorpay_upi_enabled") and row.get("razorpay_upi_id"):
        return "razorpay_upi"
    if row.get("upi_enabled") and row.get("upi_id"):
        return "upi"
    return "cod"


def build_quote(items: list, settings_row: Optional[dict], payment_method: Optional[str],
                coupon: Optional[dict] = None) -> dict:
    settings = shipping_settings(settings_row)
    subtotal = cart_totals(items)["total_amount"]
    original = original_total(items)
    shipping = calculate_shipping(items, settings, payment_method, subtotal)
    discount = coupon_discount(coupon, subtotal, shipping) if coupon else 0
    return {
        "payment_method": payment_method,
        "subtotal": subtotal,
        "original_total": original,
        "product_discount": original - subtotal,
        "shipping": shipping,
        "coupon_code": coupon["code"] if coupon else None,
        "coupon_discount": discount,
        "total_discount": original - subtotal + discount,
        "final_total": subtotal + shipping - discount,
        "cod_available": cod_available(settings_row, items),
    }
