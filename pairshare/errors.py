class SignalingError(Exception):
    """Base class for errors scoped to a single relay event."""


class InvalidRoom(SignalingError):
    """Join attempted with an empty or missing room id."""


class RoomFull(SignalingError):
    """Both slots of the room are held by other participants."""


class UnknownRoom(SignalingError):
    """No registry entry exists for the room id."""


class EmptySlot(SignalingError):
    """The slot a setup message is destined for has no occupant."""
