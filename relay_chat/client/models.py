"""Client-side models for session state and presence display."""
from dataclasses import dataclass
from enum import Enum

from ..shared.dto import Identity


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class AnnouncementKind(str, Enum):
    JOINED = "joined"
    LEFT = "left"


@dataclass(frozen=True)
class SystemAnnouncement:
    kind: AnnouncementKind
    identity: Identity
    timestamp: float
