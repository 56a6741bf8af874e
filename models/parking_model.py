from enum import Enum


class EventType(str, Enum):
    ENTRY = "ENTRY"
    PARKED = "PARKED"
    EXIT = "EXIT"


class SessionState(str, Enum):
    NONE = "NONE"
    ENTERED = "ENTERED"
    PARKED = "PARKED"
    CLOSED = "CLOSED"
