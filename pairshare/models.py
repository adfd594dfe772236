from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime, timezone
from enum import Enum

from .config import MAX_NAME_LENGTH, MAX_CHAT_LENGTH, DEFAULT_NAME


class Role(str, Enum):
    INITIATOR = "initiator"
    RESPONDER = "responder"


class SessionState(str, Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    LEFT = "left"


class SetupKind(str, Enum):
    OFFER = "offer"
    ANSWER = "answer"
    CANDIDATE = "candidate"


# client event name -> setup message kind, also used for the outbound event name
SETUP_EVENTS = {
    "webrtc-offer": SetupKind.OFFER,
    "webrtc-answer": SetupKind.ANSWER,
    "webrtc-ice": SetupKind.CANDIDATE,
}
SETUP_EVENT_NAMES = {kind: event for event, kind in SETUP_EVENTS.items()}


def clean_room_id(value: Any) -> str:
    """Coerce a client supplied room id to a trimmed string ("" when missing)."""
    if value is None:
        return ""
    return str(value).strip()


def clean_name(value: Any) -> str:
    name = str(value or "").strip()[:MAX_NAME_LENGTH].rstrip()
    return name or DEFAULT_NAME


def clean_text(value: Any) -> str:
    return str(value or "")[:MAX_CHAT_LENGTH].strip()


def now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class Room(BaseModel):
    room_id: str
    initiator_id: Optional[str] = None
    responder_id: Optional[str] = None

    def occupants(self) -> List[str]:
        return [pid for pid in (self.initiator_id, self.responder_id) if pid]

    def role_of(self, participant_id: str) -> Optional[Role]:
        if participant_id is None:
            return None
        if self.initiator_id == participant_id:
            return Role.INITIATOR
        if self.responder_id == participant_id:
            return Role.RESPONDER
        return None

    def is_empty(self) -> bool:
        return not self.initiator_id and not self.responder_id


class ParticipantSession(BaseModel):
    socket_id: str
    room_id: Optional[str] = None
    name: str = DEFAULT_NAME
    role: Optional[Role] = None
    state: SessionState = SessionState.UNJOINED


# Inbound events. Fields are coerced rather than rejected so a sloppy
# client never produces a validation error for these.

class JoinRoomRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field("", alias="roomId")
    name: str = DEFAULT_NAME

    @field_validator("room_id", mode="before")
    @classmethod
    def coerce_room_id(cls, v):
        return clean_room_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return clean_name(v)


class SetupMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: SetupKind
    room_id: str = Field("", alias="roomId")
    payload: Any = None

    @field_validator("room_id", mode="before")
    @classmethod
    def coerce_room_id(cls, v):
        return clean_room_id(v)

    @classmethod
    def from_event(cls, event: str, data: dict) -> "SetupMessage":
        """Build from a client frame such as {"type": "webrtc-offer", "roomId": .., "offer": ..}"""
        kind = SETUP_EVENTS[event]
        return cls(kind=kind, room_id=data.get("roomId"), payload=data.get(kind.value))


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field("", alias="roomId")
    name: str = DEFAULT_NAME
    text: str = ""

    @field_validator("room_id", mode="before")
    @classmethod
    def coerce_room_id(cls, v):
        return clean_room_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return clean_name(v)

    @field_validator("text", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return clean_text(v)


class ChatMessage(BaseModel):
    name: str
    text: str
    timestamp: int = Field(default_factory=now_millis)

    def to_event(self) -> dict:
        return {"type": "chat", **self.model_dump()}


class RoomStatus(BaseModel):
    room_id: str
    initiator: Optional[str] = None
    responder: Optional[str] = None
    occupants: int = 0
