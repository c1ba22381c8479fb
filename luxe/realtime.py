"""In-process WebSocket rooms for the support chat.

Message rows are persisted in Supabase; this relay only pushes chat events
(new messages, typing indicators, conversation updates) to the sockets that
are connected to this process.

Rooms:
    support:<conversation_id>  customer and admins of one conversation
    support:admin              every admin console, for list refreshes
"""
import logging
from collections import defaultdict
from typing import Dict, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

ADMIN_ROOM = "support:admin"


def conversation_room(conversation_id: str) -> str:
    return f"support:{conversation_id}"


class ConnectionManager:
    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, room: str, websocket: WebSocket):
        await websocket.accept()
        self.rooms[room].add(websocket)
        logger.info("WebSocket connected: %s (%d open)", room, len(self.rooms[room]))

    def disconnect(self, room: str, websocket: WebSocket):
        sockets = self.rooms.get(room)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.rooms[room]
        logger.info("WebSocket disconnected: %s", room)

    async def publish(self, room: str, payload: dict, exclude: Optional[WebSocket] = None) -> int:
        sent = 0
        for ws in list(self.rooms.get(room, ())):
            if ws is exclude:
                continue
            if ws.client_state != WebSocketState.CONNECTED:
                self.disconnect(room, ws)
                continue
            try:
                await ws.send_json(payload)
                sent += 1
            except RuntimeError as e:
                logger.warning("Dropping socket in %s: %s", room, e)
                self.disconnect(room, ws)
        return sent

    async def publish_message(self, message: dict):
        payload = {"type": "new_message", "message": message}
        await self.publish(conversation_room(message["conversation_id"]), payload)
        await self.publish(ADMIN_ROOM, {
            "type": "conversation_updated",
            "conversation_id": message["conversation_id"],
            "sender_type": message["sender_type"],
        })


manager = ConnectionManager()
