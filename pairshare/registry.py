import logging
import threading
from typing import Dict, Optional, Tuple

from .errors import EmptySlot, RoomFull, UnknownRoom
from .models import Role, Room, SetupKind

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Room id -> slot state for every live room.

    A single lock guards every read-modify-write of the mapping and of the
    slots it holds. It is re-entrant so ``join`` can run ``get_or_create``
    and ``assign_slot`` inside one critical section.
    """

    def __init__(self):
        self.rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    def get_or_create(self, room_id: str) -> Room:
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None:
                room = Room(room_id=room_id)
                self.rooms[room_id] = room
                logger.info(f"🏠 Created room {room_id}")
            return room

    def get(self, room_id: str) -> Room:
        with self._lock:
            room = self.rooms.get(room_id)
        if room is None:
            raise UnknownRoom(room_id)
        return room

    def assign_slot(self, room: Room, participant_id: str) -> Role:
        """Give ``participant_id`` a slot in ``room`` and return its role.

        Priority order: an existing slot is kept, then the initiator slot is
        taken, then the responder slot. Raises ``RoomFull`` when both slots
        belong to other participants.
        """
        with self._lock:
            if room.initiator_id == participant_id:
                return Role.INITIATOR
            if room.responder_id == participant_id:
                return Role.RESPONDER
            if not room.initiator_id:
                room.initiator_id = participant_id
                return Role.INITIATOR
            if not room.responder_id:
                room.responder_id = participant_id
                return Role.RESPONDER
            raise RoomFull(room.room_id)

    def join(self, room_id: str, participant_id: str) -> Tuple[Room, Role]:
        with self._lock:
            room = self.get_or_create(room_id)
            try:
                role = self.assign_slot(room, participant_id)
            except RoomFull:
                logger.info(f"🚫 Room {room_id} is full, rejected {participant_id}")
                raise
            logger.info(f"👤 {participant_id} holds {role.value} slot in room {room_id}")
            return room, role

    def release(self, room: Room, participant_id: str) -> Optional[Role]:
        """Clear the slot held by ``participant_id``; drop the room once empty."""
        with self._lock:
            role = room.role_of(participant_id)
            if role is Role.INITIATOR:
                room.initiator_id = None
            elif role is Role.RESPONDER:
                room.responder_id = None

            if room.is_empty() and self.rooms.get(room.room_id) is room:
                del self.rooms[room.room_id]
                logger.info(f"🗑️ Removed empty room {room.room_id}")
            return role

    def counterpart(self, room: Room, kind: SetupKind, sender_id: str) -> str:
        """Participant a setup message of ``kind`` from ``sender_id`` goes to."""
        with self._lock:
            if kind is SetupKind.OFFER:
                target = room.responder_id
            elif kind is SetupKind.ANSWER:
                target = room.initiator_id
            elif sender_id == room.initiator_id:
                target = room.responder_id
            elif sender_id == room.responder_id:
                target = room.initiator_id
            else:
                target = None

        if not target or target == sender_id:
            raise EmptySlot(f"{room.room_id}: no destination for {kind.value}")
        return target

    def snapshot(self) -> Dict[str, dict]:
        with self._lock:
            return {room_id: room.model_dump() for room_id, room in self.rooms.items()}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self.rooms
