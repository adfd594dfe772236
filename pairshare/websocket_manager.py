from fastapi import WebSocket
from typing import Dict, Iterable, Optional
import json
import logging

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        # WebSocket connections - socket_id -> WebSocket
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, socket_id: str):
        """Accept WebSocket connection"""
        await websocket.accept()
        self.active_connections[socket_id] = websocket
        logger.info(f"🔌 WebSocket connected: {socket_id}")
        logger.info(f"📊 Total connections: {len(self.active_connections)}")

    def disconnect(self, socket_id: str):
        """Remove WebSocket connection"""
        if socket_id in self.active_connections:
            del self.active_connections[socket_id]
            logger.info(f"❌ WebSocket disconnected: {socket_id}")
            logger.info(f"📊 Total connections: {len(self.active_connections)}")

    async def send_personal_message(self, socket_id: Optional[str], message: dict) -> bool:
        """Send message to a single connection"""
        websocket = self.active_connections.get(socket_id) if socket_id else None
        if websocket is None:
            logger.debug(f"Socket {socket_id} not found in active connections")
            return False
        try:
            await websocket.send_text(json.dumps(message))
            logger.debug(f"✅ Sent {message.get('type', 'unknown')} to {socket_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Error sending {message.get('type', 'unknown')} to {socket_id}: {e}")
            return False

    async def send_many(self, socket_ids: Iterable[str], message: dict, exclude_socket: str = None) -> int:
        """Send message to each listed connection, returns the number delivered"""
        delivered = 0
        for socket_id in socket_ids:
            if socket_id == exclude_socket:
                continue
            if await self.send_personal_message(socket_id, message):
                delivered += 1
        logger.debug(f"📡 {message.get('type')} delivered to {delivered} connection(s)")
        return delivered

    def __len__(self) -> int:
        return len(self.active_connections)
