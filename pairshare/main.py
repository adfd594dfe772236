from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
import uuid
import json
import logging
from pathlib import Path

from .config import Settings
from .errors import UnknownRoom
from .models import ChatRequest, JoinRoomRequest, RoomStatus, SETUP_EVENTS, SetupMessage
from .registry import RoomRegistry
from .relay import SignalingRelay
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None) -> FastAPI:
    """Build the relay app with its own registry, connection manager and relay"""
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="pairshare signaling relay", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = RoomRegistry()
    manager = ConnectionManager()
    app.state.settings = settings
    app.state.registry = registry
    app.state.manager = manager
    app.state.relay = SignalingRelay(registry, manager)

    @app.get("/api/rooms/{room_id}", response_model=RoomStatus)
    async def get_room(request: Request, room_id: str):
        """Get slot occupancy of a room"""
        try:
            return request.app.state.relay.room_status(room_id)
        except UnknownRoom:
            raise HTTPException(status_code=404, detail="Room not found")

    @app.get("/api/debug")
    async def debug_info(request: Request):
        """Get server debug information"""
        state = request.app.state
        return {
            "rooms": state.registry.snapshot(),
            "total_rooms": len(state.registry),
            "total_connections": len(state.manager),
            "total_sessions": len(state.relay.sessions),
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for signaling and chat"""
        relay: SignalingRelay = websocket.app.state.relay
        socket_id = str(uuid.uuid4())
        await relay.manager.connect(websocket, socket_id)
        relay.open_session(socket_id)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text")
                if data is None:
                    logger.warning(f"⚠️ Ignored binary frame from {socket_id}")
                    continue
                try:
                    message_data = json.loads(data)
                except (json.JSONDecodeError, RecursionError):
                    logger.warning(f"⚠️ Ignored non-JSON frame from {socket_id}")
                    continue
                if not isinstance(message_data, dict):
                    logger.warning(f"⚠️ Ignored non-object frame from {socket_id}")
                    continue

                message_type = message_data.get("type")
                if not isinstance(message_type, str):
                    logger.warning(f"⚠️ Ignored frame without event type from {socket_id}")
                    continue
                logger.debug(f"📨 Received {message_type} from {socket_id}")

                try:
                    if message_type == "join-room":
                        await relay.on_join(socket_id, JoinRoomRequest.model_validate(message_data))

                    elif message_type in SETUP_EVENTS:
                        await relay.on_setup_message(socket_id, SetupMessage.from_event(message_type, message_data))

                    elif message_type == "chat":
                        await relay.on_chat(socket_id, ChatRequest.model_validate(message_data))

                    else:
                        logger.warning(f"⚠️ Unknown event {message_type!r} from {socket_id}")
                except ValidationError as e:
                    logger.warning(f"⚠️ Invalid {message_type} from {socket_id}: {e}")

        except WebSocketDisconnect:
            logger.info(f"🔌 WebSocket disconnected: {socket_id}")
        except Exception as e:
            logger.error(f"❌ WebSocket error for {socket_id}: {e}", exc_info=True)
        finally:
            relay.manager.disconnect(socket_id)
            await relay.on_disconnect(socket_id)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        # Browser client; mounted last so the API and WebSocket routes win
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.info(f"No static directory at {static_dir}, serving API only")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = app.state.settings
    uvicorn.run("pairshare.main:app", host=settings.host, port=settings.port)
