import logging
from typing import Dict, Optional

from .errors import EmptySlot, InvalidRoom, RoomFull, UnknownRoom
from .models import (
    ChatMessage,
    ChatRequest,
    JoinRoomRequest,
    ParticipantSession,
    RoomStatus,
    SessionState,
    SETUP_EVENT_NAMES,
    SetupMessage,
)
from .registry import RoomRegistry
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


class SignalingRelay:
    """Turns participant connection events into registry updates and forwards.

    The relay owns one ``ParticipantSession`` per open connection. A session
    moves ``unjoined -> joined -> left`` and never returns from ``left``.
    Errors are scoped to the event that raised them: ``InvalidRoom`` and
    ``RoomFull`` go back to the requester, routing races are dropped.
    """

    def __init__(self, registry: RoomRegistry, manager: ConnectionManager):
        self.registry = registry
        self.manager = manager
        self.sessions: Dict[str, ParticipantSession] = {}

    def open_session(self, socket_id: str) -> ParticipantSession:
        session = ParticipantSession(socket_id=socket_id)
        self.sessions[socket_id] = session
        return session

    def session(self, socket_id: str) -> Optional[ParticipantSession]:
        return self.sessions.get(socket_id)

    async def on_join(self, socket_id: str, request: JoinRoomRequest):
        session = self.sessions.get(socket_id)
        if session is None or session.state is SessionState.LEFT:
            logger.debug(f"Ignored join from closed connection {socket_id}")
            return

        try:
            if not request.room_id:
                raise InvalidRoom("Room id must not be empty.")
            if session.room_id is not None and session.room_id != request.room_id:
                raise InvalidRoom(f"Already joined room {session.room_id}.")
        except InvalidRoom as e:
            logger.info(f"⚠️ Join rejected for {socket_id}: {e}")
            await self.manager.send_personal_message(socket_id, {"type": "err", "message": str(e)})
            return

        try:
            room, role = self.registry.join(request.room_id, socket_id)
        except RoomFull:
            await self.manager.send_personal_message(socket_id, {"type": "room-full"})
            return

        # Slot is recorded before anyone hears about it
        session.room_id = room.room_id
        session.role = role
        session.name = request.name
        session.state = SessionState.JOINED
        logger.info(f"🏠 {session.name} ({socket_id}) joined room {room.room_id} as {role.value}")

        await self.manager.send_personal_message(socket_id, {
            "type": "joined",
            "roomId": room.room_id,
            "role": role.value,
        })
        await self.manager.send_many(room.occupants(), {
            "type": "system",
            "text": f"{session.name} joined as {role.value}",
        }, exclude_socket=socket_id)

        initiator_id, responder_id = room.initiator_id, room.responder_id
        # A responder arriving, or an initiator (re-)joining next to a
        # responder, both mean the initiator should start a fresh offer.
        if initiator_id and responder_id:
            await self.manager.send_personal_message(initiator_id, {
                "type": "need-offer",
                "roomId": room.room_id,
            })

    async def on_setup_message(self, socket_id: str, message: SetupMessage):
        try:
            room = self.registry.get(message.room_id)
            target = self.registry.counterpart(room, message.kind, socket_id)
        except (UnknownRoom, EmptySlot) as e:
            logger.debug(f"🔄 Dropped {message.kind.value} from {socket_id}: {type(e).__name__} {e}")
            return

        logger.debug(f"🔄 {message.kind.value}: {socket_id} -> {target} in room {room.room_id}")
        await self.manager.send_personal_message(target, {
            "type": SETUP_EVENT_NAMES[message.kind],
            message.kind.value: message.payload,
        })

    async def on_chat(self, socket_id: str, request: ChatRequest):
        if not request.text:
            return
        try:
            room = self.registry.get(request.room_id)
        except UnknownRoom:
            logger.debug(f"💬 Dropped chat from {socket_id}: unknown room {request.room_id!r}")
            return
        if room.role_of(socket_id) is None:
            logger.debug(f"💬 Dropped chat from {socket_id}: not an occupant of {room.room_id}")
            return

        chat = ChatMessage(name=request.name, text=request.text)
        await self.manager.send_many(room.occupants(), chat.to_event())

    async def on_disconnect(self, socket_id: str):
        session = self.sessions.pop(socket_id, None)
        if session is None or session.room_id is None:
            return
        session.state = SessionState.LEFT

        try:
            room = self.registry.get(session.room_id)
        except UnknownRoom:
            return
        self.registry.release(room, socket_id)
        logger.info(f"🚪 {session.name} ({socket_id}) left room {room.room_id}")

        await self.manager.send_many(room.occupants(), {
            "type": "system",
            "text": f"{session.name} left",
        })

    def room_status(self, room_id: str) -> RoomStatus:
        """Occupancy of one room by display name; raises UnknownRoom."""
        room = self.registry.get(room_id)

        def name_of(participant_id):
            session = self.sessions.get(participant_id) if participant_id else None
            return session.name if session else None

        return RoomStatus(
            room_id=room.room_id,
            initiator=name_of(room.initiator_id),
            responder=name_of(room.responder_id),
            occupants=len(room.occupants()),
        )
