import logging
import time
from typing import List

from fastapi import WebSocket
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from acorn_hub.models import ChatMessage
from acorn_hub.schemas import ChatSend

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Open relay sockets. Every message goes to every socket."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict):
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception:
                logger.exception("Dropping chat socket after failed send")
                self.disconnect(connection)


class ChatRelay:
    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def publish(self, session: AsyncSession, msg: ChatSend) -> dict:
        """Broadcast first, then append to the log.

        A failed insert is logged and does not stop the broadcast.
        """
        payload = {
            "event": "chat:message",
            "channel": msg.channel or "global",
            "userId": msg.userId,
            "text": msg.text or "",
            "ts": int(time.time() * 1000),
        }
        await self.manager.broadcast(payload)
        try:
            session.add(ChatMessage(channel=payload["channel"], user_id=msg.userId, text=payload["text"]))
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception(f"Failed to store chat message on channel={payload['channel']}")
        return payload

    async def history(self, session: AsyncSession, channel: str, limit: int) -> List[ChatMessage]:
        result = await session.execute(
            select(ChatMessage).where(ChatMessage.channel == channel).order_by(desc(ChatMessage.id)).limit(limit)
        )
        rows = list(result.scalars().all())
        rows.reverse()
        return rows
