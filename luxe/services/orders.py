import logging
import re
from typing import List, Optional
from urllib.parse import quote

from luxe.core.errors import InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run
from luxe.models.schemas import ORDER_STATUSES

logger = logging.getLogger(__name__)

TIMELINE = [
    ("pending", "Order Placed"),
    ("confirmed", "Confirmed"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
]

STATUS_MESSAGES = {
    "pending": "Your order has been received and is pending confirmation.",
    "awaiting_payment": "We are waiting for your payment confirmation.",
    "awaiting_verification": "We have received your payment reference and are verifying it.",
    "confirmed": "Great news! Your order has been confirmed and is being processed.",
    "shipped": "Your order has been shipped and is on the way!",
    "delivered": "Your order has been delivered. Thank you for shopping with us!",
    "cancelled": "Your order has been cancelled. If you have any questions, please contact us.",
}

VERIFIED_STATUSES = ("confirmed", "shipped", "delivered")
UTR_TABS = ("pending", "with_utr", "verified", "rejected", "all")
UTR_METHODS = ("upi", "razorpay_upi", "paytm")


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, "Your order status has been updated.")


def status_index(status: str) -> int:
    """Position on the tracking timeline; -1 when the order is off it."""
    for i, (key, _) in enumerate(TIMELINE):
        if key == status:
            return i
    return -1


def timeline(status: str) -> List[dict]:
    current = status_index(status)
    return [
        {"key": key, "label": label, "completed": current >= i, "current": current == i}
        for i, (key, label) in enumerate(TIMELINE)
    ]


def my_orders(user_id: str) -> List[dict]:
    query = get_client().table("orders").select("*, order_items(*)").eq("user_id", user_id)
    return run(query.order("created_at", desc=True)).data or []


def track_order(order_id: str, user_id: str) -> dict:
    order = first(
        get_client().table("orders").select("*, order_items(*)").eq("id", order_id).eq("user_id", user_id)
    )
    if not order:
        raise NotFound("Order not found")
    return {
        "order": order,
        "status_index": status_index(order["status"]),
        "timeline": timeline(order["status"]),
        "is_cancelled": order["status"] == "cancelled",
        "message": status_message(order["status"]),
    }


# --- Admin ---

def all_orders(status: Optional[str] = None) -> List[dict]:
    query = get_client().table("orders").select("*, order_items(*)")
    if status:
        query = query.eq("status", status)
    return run(query.order("created_at", desc=True)).data or []


def set_status(order_id: str, status: str) -> dict:
    if status not in ORDER_STATUSES:
        raise InvalidInput(f"Unknown status: {status}")
    res = run(get_client().table("orders").update({"status": status}).eq("id", order_id))
    if not res.data:
        raise NotFound("Order not found")
    logger.info("Order %s -> %s", order_id, status)
    return res.data[0]


def get_order(order_id: str) -> dict:
    order = first(get_client().table("orders").select("*, order_items(*)").eq("id", order_id))
    if not order:
        raise NotFound("Order not found")
    return order


def format_phone_for_whatsapp(phone: str) -> str:
    cleaned = re.sub(r"\D", "", phone)
    if cleaned.startswith("0"):
        cleaned = "91" + cleaned[1:]
    elif not cleaned.startswith("91") and len(cleaned) == 10:
        cleaned = "91" + cleaned
    return cleaned


def whatsapp_link(order: dict, status: Optional[str] = None) -> str:
    address = order.get("shipping_address") or {}
    phone = address.get("phone") or order.get("guest_phone")
    if not phone:
        raise InvalidInput("Customer phone not available")

    status = status or order["status"]
    name = address.get("fullName") or order.get("guest_name") or "Customer"
    short_id = order["id"][:8].upper()
    total = order.get("total_amount") or 0
    text = (
        f"🛍️ *LUXE Order Update*\n\nHello {name}!\n\n"
        f"*Order ID:* #{short_id}\n"
        f"*Status:* {status.replace('_', ' ').upper()}\n\n"
        f"{status_message(status)}\n\n"
        f"📦 *Order Total:* ₹{total:,.0f}\n\nThank you for shopping with LUXE!"
    )
    return f"https://wa.me/{format_phone_for_whatsapp(phone)}?text={quote(text)}"


def utr_of(order: dict) -> Optional[str]:
    payment_id = order.get("payment_id")
    if payment_id and payment_id.startswith("UTR:"):
        return payment_id[len("UTR:"):]
    return None


def _in_tab(order: dict, tab: str) -> bool:
    if tab == "pending":
        return order["status"] in ("awaiting_payment", "awaiting_verification")
    if tab == "with_utr":
        return utr_of(order) is not None
    if tab == "verified":
        return order["status"] in VERIFIED_STATUSES
    if tab == "rejected":
        return order["status"] == "cancelled"
    return True


def _matches(order: dict, search: str) -> bool:
    q = search.lower()
    address = order.get("shipping_address") or {}
    haystack = (
        order["id"].lower(),
        (utr_of(order) or "").lower(),
        (address.get("fullName") or "").lower(),
        (address.get("phone") or "").lower(),
    )
    return any(q in field for field in haystack)


def utr_orders(tab: str = "pending", search: Optional[str] = None) -> dict:
    if tab not in UTR_TABS:
        raise InvalidInput(f"Unknown tab: {tab}")
    query = get_client().table("orders").select("*, order_items(*)").in_("payment_method", list(UTR_METHODS))
    orders = run(query.order("created_at", desc=True)).data or []

    for order in orders:
        order["utr"] = utr_of(order)
    counts = {t: sum(1 for o in orders if _in_tab(o, t)) for t in UTR_TABS}
    selected = [o for o in orders if _in_tab(o, tab) and (not search or _matches(o, search))]
    return {"orders": selected, "counts": counts}


def verify_payment(order_id: str) -> dict:
    return set_status(order_id, "confirmed")


def reject_payment(order_id: str) -> dict:
    return set_status(order_id, "cancelled")


def mark_pending(order_id: str) -> dict:
    return set_status(order_id, "awaiting_payment")


def delete_utr(order_id: str) -> dict:
    # status stays as it is
    res = run(get_client().table("orders").update({"payment_id": None}).eq("id", order_id))
    if not res.data:
        raise NotFound("Order not found")
    return res.data[0]


def dashboard() -> dict:
    client = get_client()
    products = run(client.table("products").select("id", count="exact"))
    categories = run(client.table("categories").select("id", count="exact"))
    orders = run(client.table("orders").select("id, total_amount, status, created_at")).data or []
    return {
        "total_products": products.count or 0,
        "total_categories": categories.count or 0,
        "total_orders": len(orders),
        "total_revenue": sum(o.get("total_amount") or 0 for o in orders),
        "pending_orders": sum(1 for o in orders if o["status"] == "pending"),
    }
