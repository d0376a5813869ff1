"""Shared data transfer objects for identities and chat messages.

Payloads relayed between clients are never validated by the server, so
``from_payload`` is tolerant: a missing or wrongly typed field falls back to
a default instead of raising. Older browser clients named the avatar
``dp``; it is accepted as an alias.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .utils import utc_timestamp

UNKNOWN_USERNAME = "Unknown"


def _text(payload: Dict[str, Any], key: str, default: str = "") -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else default


def _avatar(payload: Dict[str, Any]) -> Optional[str]:
    for key in ("avatar", "dp"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass
class Identity:
    user_id: str
    username: str
    avatar: Optional[str] = None

    @classmethod
    def create(cls, username: str, avatar: Optional[str] = None) -> "Identity":
        return cls(user_id=str(uuid.uuid4()), username=username, avatar=avatar)

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["Identity"]:
        if not isinstance(payload, dict):
            return None
        return cls(
            user_id=_text(payload, "userId"),
            username=_text(payload, "username", UNKNOWN_USERNAME) or UNKNOWN_USERNAME,
            avatar=_avatar(payload),
        )

    def to_payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"userId": self.user_id, "username": self.username}
        if self.avatar:
            data["avatar"] = self.avatar
        return data


@dataclass
class ChatMessage:
    id: Optional[str]
    user_id: str
    username: str
    text: str
    timestamp: str
    avatar: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def compose(cls, author: Identity, text: str) -> "ChatMessage":
        return cls(
            id=str(uuid.uuid4()),
            user_id=author.user_id,
            username=author.username,
            avatar=author.avatar,
            text=text,
            timestamp=utc_timestamp(),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["ChatMessage"]:
        if not isinstance(payload, dict):
            return None
        message_id = payload.get("id")
        known = {"id", "userId", "username", "avatar", "dp", "text", "timestamp"}
        return cls(
            id=message_id if isinstance(message_id, str) and message_id else None,
            user_id=_text(payload, "userId"),
            username=_text(payload, "username", UNKNOWN_USERNAME) or UNKNOWN_USERNAME,
            avatar=_avatar(payload),
            text=_text(payload, "text"),
            timestamp=_text(payload, "timestamp"),
            extra={k: v for k, v in payload.items() if k not in known},
        )

    def to_payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "userId": self.user_id,
                "username": self.username,
                "text": self.text,
                "timestamp": self.timestamp,
            }
        )
        if self.avatar:
            data["avatar"] = self.avatar
        return data
