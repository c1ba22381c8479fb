import logging
from datetime import datetime, timezone
from typing import List, Optional

from luxe.core.errors import Forbidden, InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
ADMIN = "admin"

QUICK_REPLIES = [
    {"category": "Greeting", "replies": [
        {"label": "Welcome", "text": "Hello! Welcome to LUXE support. How can I help you today?"},
        {"label": "Thanks for waiting", "text": "Thank you for your patience. I am here to assist you now."},
    ]},
    {"category": "Order Status", "replies": [
        {"label": "Order confirmed", "text": "Your order has been confirmed and is being processed. "
                                             "You will receive a notification once it ships."},
        {"label": "Order shipped", "text": "Great news! Your order has been shipped. You can track it using "
                                           "the tracking link in your order details."},
        {"label": "Delivery timeline", "text": "Typically, orders are delivered within 3-5 business days. "
                                               "You can check the exact status in your order tracking page."},
    ]},
    {"category": "Returns & Refunds", "replies": [
        {"label": "Return policy", "text": "We offer 30-day returns for all unused items in original packaging. "
                                           "Would you like me to initiate a return for you?"},
        {"label": "Refund processing", "text": "Your refund has been initiated and will be credited to your "
                                               "original payment method within 5-7 business days."},
        {"label": "Exchange request", "text": "I can help you with an exchange. Please let me know the item you "
                                              "would like to exchange and your preferred replacement."},
    ]},
    {"category": "Payment", "replies": [
        {"label": "Payment failed", "text": "It seems your payment did not go through. Please try again or use a "
                                            "different payment method. Let me know if you need assistance."},
        {"label": "Payment confirmation", "text": "Your payment has been successfully received. "
                                                  "Thank you for your purchase!"},
    ]},
    {"category": "Closing", "replies": [
        {"label": "Anything else?", "text": "Is there anything else I can help you with today?"},
        {"label": "Thank you", "text": "Thank you for contacting LUXE support. Have a wonderful day!"},
        {"label": "Follow up", "text": "Feel free to reach out if you have any more questions. "
                                       "We are always here to help!"},
    ]},
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def open_conversation(user_id: str) -> Optional[dict]:
    """The customer's latest open conversation, if any."""
    return first(
        get_client().table("support_conversations").select("*")
        .eq("user_id", user_id).eq("status", "open")
        .order("created_at", desc=True)
    )


def get_or_create_conversation(user: dict) -> dict:
    existing = open_conversation(user["id"])
    if existing:
        return existing

    email = user.get("email")
    name = user.get("full_name") or (email.split("@")[0] if email else None)
    conversation = run(get_client().table("support_conversations").insert({
        "user_id": user["id"],
        "user_email": email,
        "user_name": name,
        "status": "open",
    })).data[0]
    logger.info("Opened support conversation %s for %s", conversation["id"], user["id"])
    return conversation


def get_conversation(conversation_id: str) -> dict:
    conversation = first(get_client().table("support_conversations").select("*").eq("id", conversation_id))
    if not conversation:
        raise NotFound("Conversation not found")
    return conversation


def conversation_for(conversation_id: str, user: dict) -> dict:
    conversation = get_conversation(conversation_id)
    if not user.get("is_admin") and conversation["user_id"] != user["id"]:
        raise Forbidden("Not your conversation")
    return conversation


def list_messages(conversation_id: str) -> List[dict]:
    query = get_client().table("support_messages").select("*").eq("conversation_id", conversation_id)
    return run(query.order("created_at")).data or []


def recent_messages(conversation_id: str, limit: int = 10) -> List[dict]:
    """The last ``limit`` messages, oldest first."""
    query = (
        get_client().table("support_messages").select("sender_type, message, created_at")
        .eq("conversation_id", conversation_id)
        .order("created_at", desc=True).limit(limit)
    )
    return list(reversed(run(query).data or []))


def add_message(conversation: dict, sender_type: str, sender_id: str, message: str) -> dict:
    if sender_type not in (CUSTOMER, ADMIN):
        raise InvalidInput(f"Unknown sender type: {sender_type}")
    if conversation["status"] != "open":
        raise InvalidInput("This conversation is closed")

    client = get_client()
    row = run(client.table("support_messages").insert({
        "conversation_id": conversation["id"],
        "sender_type": sender_type,
        "sender_id": sender_id,
        "message": message,
        "is_read": False,
    })).data[0]
    run(client.table("support_conversations").update({"updated_at": _now()}).eq("id", conversation["id"]))
    return row


def unread_count(conversation_id: str, sender_type: str) -> int:
    """Unread messages sent by ``sender_type`` in one conversation."""
    res = run(
        get_client().table("support_messages").select("id", count="exact")
        .eq("conversation_id", conversation_id).eq("sender_type", sender_type).eq("is_read", False)
    )
    return res.count or 0


def mark_read(conversation_id: str, sender_type: str) -> None:
    run(
        get_client().table("support_messages").update({"is_read": True})
        .eq("conversation_id", conversation_id).eq("sender_type", sender_type).eq("is_read", False)
    )


def admin_conversations(status: Optional[str] = None) -> dict:
    query = get_client().table("support_conversations").select("*")
    if status:
        query = query.eq("status", status)
    conversations = run(query.order("updated_at", desc=True)).data or []
    for conv in conversations:
        conv["unread_count"] = unread_count(conv["id"], CUSTOMER)
    return {
        "conversations": conversations,
        "total_unread": sum(c["unread_count"] for c in conversations),
    }


def set_status(conversation_id: str, status: str) -> dict:
    if status not in ("open", "closed"):
        raise InvalidInput(f"Unknown status: {status}")
    res = run(get_client().table("support_conversations").update({"status": status}).eq("id", conversation_id))
    if not res.data:
        raise NotFound("Conversation not found")
    return res.data[0]
