import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from luxe.api.deps import get_admin_user, get_current_user, user_from_token
from luxe.core.errors import Forbidden, StoreError
from luxe.models.schemas import AiReplyIn, AiReplyOut, SupportMessageIn
from luxe.realtime import ADMIN_ROOM, conversation_room, manager
from luxe.services import support, support_ai

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Customer ---

@router.get("/conversation")
def my_conversation(user=Depends(get_current_user)):
    conversation = support.get_or_create_conversation(user)
    return {
        "conversation": conversation,
        "messages": support.list_messages(conversation["id"]),
        "unread": support.unread_count(conversation["id"], support.ADMIN),
    }


@router.get("/conversation/{conversation_id}/messages")
def messages(conversation_id: str, user=Depends(get_current_user)):
    support.conversation_for(conversation_id, user)
    support.mark_read(conversation_id, support.ADMIN)
    return support.list_messages(conversation_id)


@router.post("/conversation/{conversation_id}/messages", status_code=201)
async def send_message(conversation_id: str, payload: SupportMessageIn, background_tasks: BackgroundTasks,
                       user=Depends(get_current_user)):
    conversation = await run_in_threadpool(support.conversation_for, conversation_id, user)
    if conversation["user_id"] != user["id"]:
        raise Forbidden("Only the customer can post here")
    row = await run_in_threadpool(support.add_message, conversation, support.CUSTOMER, user["id"], payload.message)
    await manager.publish_message(row)
    background_tasks.add_task(
        support_ai.auto_reply, payload.message, conversation_id, user["id"], manager.publish_message
    )
    return row


@router.get("/unread")
def unread(user=Depends(get_current_user)):
    conversation = support.open_conversation(user["id"])
    if not conversation:
        return {"conversation_id": None, "unread": 0}
    return {"conversation_id": conversation["id"], "unread": support.unread_count(conversation["id"], support.ADMIN)}


@router.post("/ai-reply", response_model=AiReplyOut)
async def ai_reply(payload: AiReplyIn, user=Depends(get_current_user)):
    if payload.userId != user["id"] and not user["is_admin"]:
        raise Forbidden("Not your conversation")
    return await support_ai.generate_reply(
        payload.message, payload.conversationId, payload.userId, publish=manager.publish_message
    )


# --- Admin ---

@router.get("/admin/conversations")
def admin_conversations(status: Optional[str] = None, admin=Depends(get_admin_user)):
    return support.admin_conversations(status)


@router.get("/admin/conversations/{conversation_id}/messages")
def admin_messages(conversation_id: str, admin=Depends(get_admin_user)):
    support.get_conversation(conversation_id)
    support.mark_read(conversation_id, support.CUSTOMER)
    return support.list_messages(conversation_id)


@router.post("/admin/conversations/{conversation_id}/messages", status_code=201)
async def admin_reply(conversation_id: str, payload: SupportMessageIn, admin=Depends(get_admin_user)):
    conversation = await run_in_threadpool(support.get_conversation, conversation_id)
    row = await run_in_threadpool(support.add_message, conversation, support.ADMIN, admin["id"], payload.message)
    await manager.publish_message(row)
    return row


async def _set_status(conversation_id: str, new_status: str) -> dict:
    conversation = await run_in_threadpool(support.set_status, conversation_id, new_status)
    event = {"type": "conversation_updated", "conversation_id": conversation_id, "status": new_status}
    await manager.publish(conversation_room(conversation_id), event)
    await manager.publish(ADMIN_ROOM, event)
    return conversation


@router.post("/admin/conversations/{conversation_id}/close")
async def close_conversation(conversation_id: str, admin=Depends(get_admin_user)):
    return await _set_status(conversation_id, "closed")


@router.post("/admin/conversations/{conversation_id}/reopen")
async def reopen_conversation(conversation_id: str, admin=Depends(get_admin_user)):
    return await _set_status(conversation_id, "open")


@router.get("/admin/quick-replies")
def quick_replies(admin=Depends(get_admin_user)):
    return support.QUICK_REPLIES


# --- Realtime ---

async def _authenticate(websocket: WebSocket, token: Optional[str]) -> Optional[dict]:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return await run_in_threadpool(user_from_token, token)
    except StoreError as e:
        logger.info("WebSocket auth rejected: %s", e.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


async def _relay(websocket: WebSocket, room: str, user: dict, conversation_id: Optional[str]):
    sender_type = support.ADMIN if user["is_admin"] else support.CUSTOMER
    await manager.connect(room, websocket)
    try:
        while True:
            try:
                data = await websocket.receive_json()
            except (KeyError, ValueError):
                logger.info("Ignoring malformed frame in %s", room)
                continue
            if not isinstance(data, dict) or data.get("type") != "typing":
                continue
            target = conversation_id or data.get("conversation_id")
            if not target:
                continue
            await manager.publish(conversation_room(target), {
                "type": "typing",
                "sender_type": sender_type,
                "conversation_id": target,
            }, exclude=websocket)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(room, websocket)


@router.websocket("/ws/admin")
async def admin_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    user = await _authenticate(websocket, token)
    if user is None:
        return
    if not user["is_admin"]:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await _relay(websocket, ADMIN_ROOM, user, None)


@router.websocket("/ws/{conversation_id}")
async def conversation_socket(websocket: WebSocket, conversation_id: str, token: Optional[str] = Query(None)):
    user = await _authenticate(websocket, token)
    if user is None:
        return
    try:
        await run_in_threadpool(support.conversation_for, conversation_id, user)
    except StoreError as e:
        logger.info("WebSocket rejected for %s: %s", conversation_id, e.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await _relay(websocket, conversation_room(conversation_id), user, conversation_id)
