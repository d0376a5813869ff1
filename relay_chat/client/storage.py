"""Local client storage for the last identity and the chat log."""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from ..shared.dto import ChatMessage, Identity
from .config import STORAGE_FILE


@dataclass
class StoredSession:
    identity: Optional[Identity] = None
    chat: List[ChatMessage] = field(default_factory=list)

    def to_state(self) -> Dict[str, Any]:
        return {
            "identity": self.identity.to_payload() if self.identity else None,
            "chat": [message.to_payload() for message in self.chat],
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "StoredSession":
        identity = Identity.from_payload(state.get("identity"))
        raw_chat = state.get("chat")
        messages = (ChatMessage.from_payload(item) for item in raw_chat) if isinstance(raw_chat, list) else ()
        return cls(identity=identity, chat=[m for m in messages if m is not None])


class SessionStorage(Protocol):
    def load_session(self) -> StoredSession: ...

    def save_session(self, session: StoredSession) -> None: ...

    def clear_session(self) -> None: ...


class JsonFileStorage:
    """Persists the session as a plain JSON copy, re-read verbatim at startup."""

    def __init__(self, path: Path = STORAGE_FILE):
        self.path = Path(path)

    def load_session(self) -> StoredSession:
        if not self.path.exists():
            return StoredSession()
        with self.path.open("r", encoding="utf-8") as f:
            try:
                state = json.load(f)
            except json.JSONDecodeError:
                return StoredSession()
        return StoredSession.from_state(state) if isinstance(state, dict) else StoredSession()

    def save_session(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(session.to_state(), f, indent=2, ensure_ascii=False)

    def clear_session(self) -> None:
        self.path.unlink(missing_ok=True)


class MemoryStorage:
    """In-memory storage, used by tests and throwaway sessions."""

    def __init__(self, session: Optional[StoredSession] = None):
        self.state: Optional[Dict[str, Any]] = session.to_state() if session else None
        self.saves = 0

    def load_session(self) -> StoredSession:
        return StoredSession.from_state(self.state) if self.state else StoredSession()

    def save_session(self, session: StoredSession) -> None:
        self.state = session.to_state()
        self.saves += 1

    def clear_session(self) -> None:
        self.state = None
