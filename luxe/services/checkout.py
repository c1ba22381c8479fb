"""Checkout: quotes, coupons, order placement and UPI reference capture."""
import logging
from typing import List, Optional

from luxe.core.errors import Conflict, InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run
from luxe.services import cart as cart_service
from luxe.services import payments
from luxe.services.pricing import build_quote, cart_totals, check_coupon, default_payment_method

logger = logging.getLogger(__name__)

WELCOME_COUPON = "WELCOME10"

INITIAL_STATUS = {
    "cod": "confirmed",
    "razorpay": "confirmed",
    "upi": "awaiting_payment",
    "razorpay_upi": "awaiting_payment",
    "paytm": "awaiting_payment",
}

# Reference length the bank app shows for each manual method
UTR_LENGTHS = {"upi": 12, "razorpay_upi": 20, "paytm": 12}


def checkout_items(user: Optional[dict], buy_now: Optional[dict] = None,
                   lines: Optional[List[dict]] = None) -> List[dict]:
    if buy_now:
        return cart_service.resolve_lines([buy_now])
    if user:
        items = cart_service.get_items(user["id"])
        if not items:
            raise InvalidInput("Your cart is empty")
        return items
    return cart_service.resolve_lines(lines or [])


def find_coupon(code: str) -> Optional[dict]:
    code = code.upper().strip()
    if not code:
        raise InvalidInput("Please enter a coupon code")
    return first(get_client().table("coupons").select("*").eq("code", code).eq("is_active", True))


def apply_coupon(code: str, items: List[dict], payment_method: Optional[str] = None) -> dict:
    coupon = check_coupon(find_coupon(code), _subtotal(items))
    totals = build_quote(items, payments.get_settings(), payment_method, coupon)
    return {"coupon": _coupon_summary(coupon), "discount": totals["coupon_discount"], "quote": totals}


def _subtotal(items: List[dict]) -> float:
    return cart_totals(items)["total_amount"]


def _coupon_summary(coupon: dict) -> dict:
    keys = ("id", "code", "discount_type", "discount_value", "max_discount_amount")
    return {k: coupon.get(k) for k in keys}


def welcome_coupon(user: Optional[dict], items: List[dict]) -> Optional[dict]:
    """WELCOME10 for a signed-in customer's first order, when it is valid."""
    if not user or not items:
        return None
    client = get_client()
    previous = run(
        client.table("orders").select("id").eq("user_id", user["id"]).neq("status", "cancelled").limit(1)
    ).data
    if previous:
        return None
    coupon = first(client.table("coupons").select("*").eq("code", WELCOME_COUPON).eq("is_active", True))
    if not coupon:
        return None
    try:
        return check_coupon(coupon, _subtotal(items))
    except InvalidInput:
        return None


def quote(user: Optional[dict], payment_method: Optional[str] = None, coupon_code: Optional[str] = None,
          buy_now: Optional[dict] = None, lines: Optional[List[dict]] = None) -> dict:
    items = checkout_items(user, buy_now, lines)
    settings = payments.get_settings()
    method = payment_method or default_payment_method(settings)
    if coupon_code:
        coupon = check_coupon(find_coupon(coupon_code), _subtotal(items))
    else:
        coupon = welcome_coupon(user, items)
    result = build_quote(items, settings, method, coupon)
    result["items"] = items
    result["welcome_applied"] = bool(coupon) and not coupon_code
    return result


def _record_coupon_use(coupon: dict, user: Optional[dict], order_id: str) -> None:
    client = get_client()
    run(client.table("coupon_usage").insert({
        "coupon_id": coupon["id"],
        "user_id": user["id"] if user else None,
        "order_id": order_id,
    }))
    run(client.table("coupons").update({"used_count": (coupon.get("used_count") or 0) + 1}).eq("id", coupon["id"]))


def place_order(user: Optional[dict], payload: dict, customer_ip: Optional[str] = None) -> dict:
    method = payload["payment_method"]
    address = payload["address"]
    buy_now = payload.get("buy_now")
    items = checkout_items(user, buy_now, payload.get("items"))
    settings = payments.get_settings()

    if method == "cod" and not build_quote(items, settings, method)["cod_available"]:
        raise InvalidInput("Cash on delivery is not available for this order")

    payment_id = None
    if method == "razorpay":
        verified = payments.verify_razorpay_signature(
            payload.get("razorpay_order_id") or "",
            payload.get("razorpay_payment_id") or "",
            payload.get("razorpay_signature") or "",
        )
        if not verified:
            raise InvalidInput("Payment verification failed")
        payment_id = payload["razorpay_payment_id"]

    if payload.get("coupon_code"):
        coupon = check_coupon(find_coupon(payload["coupon_code"]), _subtotal(items))
    else:
        coupon = welcome_coupon(user, items)
    totals = build_quote(items, settings, method, coupon)

    order_data = {
        "total_amount": totals["final_total"],
        "status": INITIAL_STATUS.get(method, "pending"),
        "payment_method": method,
        "shipping_address": address,
        "coupon_code": coupon["code"] if coupon else None,
        "discount_amount": totals["coupon_discount"],
    }
    if user:
        order_data["user_id"] = user["id"]
    else:
        order_data["guest_email"] = address.get("email")
        order_data["guest_name"] = address.get("fullName")
        order_data["guest_phone"] = address.get("phone")
    if payment_id:
        order_data["payment_id"] = payment_id
    if customer_ip:
        order_data["customer_ip"] = customer_ip

    client = get_client()
    order = run(client.table("orders").insert(order_data)).data[0]

    order_items = []
    for it in items:
        product = it["product"]
        images = product.get("images") or []
        order_items.append({
            "order_id": order["id"],
            "product_id": product["id"],
            "quantity": it["quantity"],
            "price": product.get("sale_price") or product["price"],
            "product_name": product["name"],
            "product_image": images[0] if images else None,
            "size": it.get("size") or None,
            "color": it.get("color") or None,
        })
    run(client.table("order_items").insert(order_items))

    if coupon:
        _record_coupon_use(coupon, user, order["id"])
    if user and not buy_now:
        cart_service.clear_cart(user["id"])

    logger.info("Order %s placed via %s (%s)", order["id"], method, order["status"])
    result = {"order": order, "quote": totals}
    if order["status"] == "awaiting_payment":
        upi_id = (settings or {}).get("razorpay_upi_id" if method == "razorpay_upi" else "upi_id")
        if upi_id:
            result["upi_id"] = upi_id
            result["upi_link"] = payments.upi_link(upi_id, totals["final_total"], order["id"])
    return result


def submit_utr(order_id: str, utr: str, user: Optional[dict] = None) -> dict:
    client = get_client()
    order = first(client.table("orders").select("*").eq("id", order_id))
    if not order:
        raise NotFound("Order not found")
    # guest orders take anonymous submissions; account orders only their owner's
    if order.get("user_id") and (not user or order["user_id"] != user["id"]):
        raise NotFound("Order not found")
    if order["status"] != "awaiting_payment":
        raise Conflict("This order is not awaiting payment")

    utr = utr.strip()
    expected = UTR_LENGTHS.get(order.get("payment_method"), 12)
    label = "TR ID" if order.get("payment_method") == "razorpay_upi" else "UTR number"
    if len(utr) != expected or not (utr.isascii() and utr.isdigit()):
        raise InvalidInput(f"Please enter a valid {expected}-digit {label}")

    res = run(client.table("orders").update({
        "payment_id": f"UTR:{utr}",
        "status": "awaiting_verification",
    }).eq("id", order_id))
    logger.info("UTR submitted for order %s", order_id)
    return res.data[0]
