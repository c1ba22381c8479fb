import logging
from typing import Awaitable, Callable, List, Optional

import httpx
from fastapi.concurrency import run_in_threadpool

from luxe.core import config
from luxe.core.errors import InvalidInput, NotFound, StoreError, UpstreamError
from luxe.db.supabase import get_client, run
from luxe.services import support

logger = logging.getLogger(__name__)

AI_SENDER_ID = "00000000-0000-0000-0000-000000000000"
AI_PREFIX = "🤖 "
HISTORY_LIMIT = 10
CONTEXT_PRODUCTS = 5

BUSY_REPLY = ("I'm currently experiencing high traffic. A human agent will assist you shortly. "
              "Thank you for your patience!")
EMPTY_REPLY = ("I apologize, but I'm having trouble processing your request. "
               "A human agent will assist you shortly.")

SYSTEM_PROMPT = """You are a helpful customer support assistant for an e-commerce store. Your name is "Support Bot".

Important Guidelines:
- Be friendly, professional, and helpful
- Keep responses concise and to the point (max 2-3 sentences)
- Help with order inquiries, product questions, returns, and general support
- If you don't know something specific, politely suggest the customer wait for a human agent
- Use simple language and be empathetic
- For order-specific queries, ask for order ID if not provided
- Always offer to help with anything else at the end

Available Products (for reference):
{products}

Common Topics You Can Help With:
- Order status and tracking
- Product information and recommendations
- Return and refund policies
- Payment issues
- Shipping information
- General inquiries

If the query requires human intervention (like order modifications, refunds, complaints), acknowledge the issue and let them know a human agent will follow up soon."""


def to_chat_history(rows: List[dict]) -> List[dict]:
    return [
        {"role": "user" if r["sender_type"] == support.CUSTOMER else "assistant", "content": r["message"]}
        for r in rows
    ]


def product_context(products: List[dict]) -> str:
    if not products:
        return "No products available"
    lines = []
    for p in products:
        description = (p.get("description") or "")[:100] or "No description"
        lines.append(f"- {p['name']}: ₹{p.get('sale_price') or p['price']} - {description}")
    return "\n".join(lines)


def _context_products() -> List[dict]:
    query = (
        get_client().table("products").select("name, price, sale_price, description")
        .eq("active", True).limit(CONTEXT_PRODUCTS)
    )
    return run(query).data or []


def build_messages(message: str, history: List[dict], products: List[dict]) -> List[dict]:
    system = SYSTEM_PROMPT.format(products=product_context(products))
    return [{"role": "system", "content": system}, *to_chat_history(history), {"role": "user", "content": message}]


async def call_llm(messages: List[dict], http_client: Optional[httpx.AsyncClient] = None) -> str:
    """Ask the chat-completions gateway for a reply.

    A rate limited gateway yields the canned busy reply instead of an error.
    """
    if not config.LLM_API_KEY:
        raise StoreError("LLM_API_KEY is not configured")

    client = http_client or httpx.AsyncClient(timeout=config.LLM_TIMEOUT_SECONDS)
    try:
        r = await client.post(
            config.LLM_API_URL,
            headers={"Authorization": f"Bearer {config.LLM_API_KEY}"},
            json={
                "model": config.LLM_MODEL,
                "messages": messages,
                "max_tokens": 200,
                "temperature": 0.7,
            },
        )
    except httpx.HTTPError as e:
        logger.error("AI gateway network error: %s", e)
        raise UpstreamError("AI service unreachable") from e
    finally:
        if http_client is None:
            await client.aclose()

    if r.status_code == 429:
        logger.warning("AI gateway rate limited")
        return BUSY_REPLY
    if r.status_code >= 400:
        logger.error("AI gateway error: %s %s", r.status_code, r.text)
        raise UpstreamError(f"AI gateway error: {r.status_code}")

    choices = r.json().get("choices") or []
    content = choices[0].get("message", {}).get("content") if choices else None
    return content or EMPTY_REPLY


async def generate_reply(message: str, conversation_id: str, user_id: str,
                         http_client: Optional[httpx.AsyncClient] = None,
                         publish: Optional[Callable[[dict], Awaitable[None]]] = None) -> dict:
    if not message or not conversation_id or not user_id:
        raise InvalidInput("Missing required fields: message, conversationId, userId")

    conversation = await run_in_threadpool(support.get_conversation, conversation_id)
    if conversation["user_id"] != user_id:
        raise NotFound("Conversation not found")

    history = await run_in_threadpool(support.recent_messages, conversation_id, HISTORY_LIMIT)
    # The customer's message is usually already stored; don't send it twice.
    if history and history[-1]["sender_type"] == support.CUSTOMER and history[-1]["message"] == message:
        history = history[:-1]
    products = await run_in_threadpool(_context_products)

    logger.info("Sending request to AI gateway for conversation %s", conversation_id)
    reply = await call_llm(build_messages(message, history, products), http_client)
    if reply == BUSY_REPLY:
        return {"reply": reply, "stored": False}

    try:
        row = await run_in_threadpool(
            support.add_message, conversation, support.ADMIN, AI_SENDER_ID, f"{AI_PREFIX}{reply}"
        )
    except StoreError as e:
        logger.error("Error inserting AI reply: %s", e.detail)
        return {"reply": reply, "stored": False}

    if publish:
        await publish(row)
    return {"reply": reply, "stored": True}


async def auto_reply(message: str, conversation_id: str, user_id: str,
                     publish: Optional[Callable[[dict], Awaitable[None]]] = None) -> None:
    """Background task run after every customer message."""
    try:
        await generate_reply(message, conversation_id, user_id, publish=publish)
    except StoreError as e:
        logger.error("Auto-reply failed for conversation %s: %s", conversation_id, e.detail)
