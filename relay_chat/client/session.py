"""Client session: identity, connection lifecycle and the shared chat view.

Everything the user sees is rebuilt from relayed events, including the
user's own messages and join announcements, which the relay echoes back to
the sender. Typing indicators are the exception: the relay never reflects
them to their originator and the session ignores them if it does.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..shared.dto import ChatMessage, Identity
from ..shared.events import ClientEvent, ServerEvent
from ..shared.utils import is_blank
from .config import TYPING_TIMEOUT_SECONDS
from .models import AnnouncementKind, SessionState, SystemAnnouncement
from .storage import SessionStorage, StoredSession

logger = logging.getLogger(__name__)

EventHandler = Callable[[ServerEvent, Any], None]
StateHandler = Callable[[SessionState], None]


class Transport(Protocol):
    async def open(self) -> None: ...

    async def send(self, event: ClientEvent, data: Any) -> bool: ...

    async def listen(self, handler: EventHandler) -> None: ...

    async def close(self) -> None: ...


class SessionError(RuntimeError):
    """Raised when the session lifecycle is driven out of order."""


class ChatSession:
    def __init__(
        self,
        storage: SessionStorage,
        transport_factory: Callable[[], Transport],
        typing_timeout: float = TYPING_TIMEOUT_SECONDS,
    ):
        self.storage = storage
        self.transport_factory = transport_factory
        self.typing_timeout = typing_timeout
        self.state = SessionState.DISCONNECTED
        self.draft = ""
        self.announcements: List[SystemAnnouncement] = []
        self._transport: Optional[Transport] = None
        self._listener: Optional[asyncio.Task] = None
        self._typing: Dict[str, asyncio.Task] = {}
        self._stop_typing_timer: Optional[asyncio.Task] = None
        self._subscribers: List[EventHandler] = []
        self._state_subscribers: List[StateHandler] = []

        stored = storage.load_session()
        self.identity: Optional[Identity] = stored.identity
        self.chat: List[ChatMessage] = list(stored.chat)

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def typing_users(self) -> List[str]:
        return list(self._typing)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Call ``handler`` after every relayed event is applied.

        Typing indicators cleared locally (quiet-period expiry or a dropped
        connection) are reported as ``STOP_TYPING`` for that username.
        """
        self._subscribers.append(handler)
        return lambda: self._subscribers.remove(handler)

    def subscribe_state(self, handler: StateHandler) -> Callable[[], None]:
        """Call ``handler`` whenever the session connects or disconnects."""
        self._state_subscribers.append(handler)
        return lambda: self._state_subscribers.remove(handler)

    # Lifecycle

    def login(self, username: str, avatar: Optional[str] = None) -> Optional[Identity]:
        """Create and persist a new local identity; blank names are ignored."""
        if is_blank(username):
            return None
        self.identity = Identity.create(username, avatar)
        self._save()
        return self.identity

    async def connect(self) -> None:
        """Open the connection and announce the local identity."""
        if self.connected:
            return
        if self.identity is None:
            raise SessionError("Cannot connect without an identity; log in first")
        transport = self.transport_factory()
        await transport.open()
        self._transport = transport
        self._set_state(SessionState.CONNECTED)
        await self._emit(ClientEvent.USER_JOINED, self.identity.to_payload())
        self._listener = asyncio.create_task(self._listen(transport))

    async def update_avatar(self, avatar: Optional[str]) -> None:
        if self.identity is None:
            raise SessionError("No identity to update")
        self.identity.avatar = avatar or None
        self._save()
        await self._emit(ClientEvent.USER_JOINED, self.identity.to_payload())

    async def disconnect(self) -> None:
        """Close the connection but keep identity and chat log."""
        transport = self._transport
        self._drop_connection()
        if transport is not None:
            await transport.close()

    async def logout(self) -> None:
        await self.disconnect()
        self.storage.clear_session()
        self.identity = None
        self.chat = []
        self.announcements = []
        self.draft = ""

    def connection_lost(self) -> None:
        if self.connected:
            logger.info("Connection to relay lost")
        self._drop_connection()

    # Composer

    async def keystroke(self, text: str) -> None:
        """Replace the draft and signal typing, restarting the quiet-period timer."""
        self.draft = text
        if not self.connected:
            return
        await self._emit(ClientEvent.TYPING, self.identity.to_payload())
        self._cancel_stop_typing()
        self._stop_typing_timer = asyncio.create_task(self._stop_typing_later())

    async def press_enter(self, line_break: bool = False) -> Optional[ChatMessage]:
        if line_break:
            await self.keystroke(self.draft + "\n")
            return None
        return await self.submit()

    async def submit(self) -> Optional[ChatMessage]:
        if not self.connected or is_blank(self.draft):
            return None
        message = ChatMessage.compose(self.identity, self.draft)
        if not await self._emit(ClientEvent.SEND_MESSAGE, message.to_payload()):
            return None
        self.draft = ""
        self._cancel_stop_typing()
        await self._emit(ClientEvent.STOP_TYPING, self.identity.to_payload())
        return message

    async def delete_message(self, message_id: str) -> bool:
        """Request removal of one of the local user's own messages."""
        if not self.connected or is_blank(message_id):
            return False
        for message in self.chat:
            if message.id == message_id and message.user_id != self.identity.user_id:
                return False
        return await self._emit(ClientEvent.DELETE_MESSAGE, message_id)

    # Relayed events

    def apply(self, event: ServerEvent, data: Any) -> None:
        """Fold one relayed event into the local view."""
        if event is ServerEvent.RECEIVE_MESSAGE:
            self._on_message(data)
        elif event is ServerEvent.DELETE_MESSAGE:
            self._on_delete(data)
        elif event is ServerEvent.TYPING:
            self._on_typing(data)
        elif event is ServerEvent.STOP_TYPING:
            identity = Identity.from_payload(data)
            if identity is not None:
                self._clear_typing(identity.username)
        elif event is ServerEvent.USER_JOINED:
            self._announce(AnnouncementKind.JOINED, data)
        elif event is ServerEvent.USER_LEFT:
            self._announce(AnnouncementKind.LEFT, data)
        else:
            logger.warning("Ignoring unhandled relay event %r", event)
            return
        self._notify(event, data)

    def _on_message(self, data: Any) -> None:
        message = ChatMessage.from_payload(data)
        if message is None:
            logger.warning("Dropping malformed message payload: %r", data)
            return
        if message.id is not None and any(m.id == message.id for m in self.chat):
            return
        self.chat.append(message)
        self._save()

    def _on_delete(self, message_id: Any) -> None:
        remaining = [m for m in self.chat if m.id is None or m.id != message_id]
        if len(remaining) != len(self.chat):
            self.chat = remaining
            self._save()

    def _on_typing(self, data: Any) -> None:
        identity = Identity.from_payload(data)
        if identity is None or self._is_self(identity):
            return
        timer = self._typing.pop(identity.username, None)
        if timer is not None:
            timer.cancel()
        self._typing[identity.username] = asyncio.create_task(self._expire_typing(identity.username))

    def _announce(self, kind: AnnouncementKind, data: Any) -> None:
        identity = Identity.from_payload(data)
        if identity is None:
            logger.warning("Dropping malformed %s announcement: %r", kind.value, data)
            return
        self.announcements.append(SystemAnnouncement(kind, identity, time.time()))

    # Internals

    def _is_self(self, identity: Identity) -> bool:
        if self.identity is None:
            return False
        if identity.user_id and identity.user_id == self.identity.user_id:
            return True
        return identity.username == self.identity.username

    def _clear_typing(self, username: str) -> bool:
        timer = self._typing.pop(username, None)
        if timer is None:
            return False
        if timer is not asyncio.current_task():
            timer.cancel()
        return True

    async def _expire_typing(self, username: str) -> None:
        await asyncio.sleep(self.typing_timeout)
        if self._clear_typing(username):
            self._notify(ServerEvent.STOP_TYPING, {"username": username})

    async def _stop_typing_later(self) -> None:
        await asyncio.sleep(self.typing_timeout)
        self._stop_typing_timer = None
        if self.identity is not None:
            await self._emit(ClientEvent.STOP_TYPING, self.identity.to_payload())

    def _cancel_stop_typing(self) -> None:
        if self._stop_typing_timer is not None:
            self._stop_typing_timer.cancel()
            self._stop_typing_timer = None

    async def _emit(self, event: ClientEvent, data: Any) -> bool:
        if not self.connected or self._transport is None:
            return False
        return await self._transport.send(event, data)

    async def _listen(self, transport: Transport) -> None:
        try:
            await transport.listen(self.apply)
        finally:
            if self._transport is transport:
                self.connection_lost()

    def _drop_connection(self) -> None:
        self._transport = None
        self._cancel_stop_typing()
        for username in list(self._typing):
            self._clear_typing(username)
            self._notify(ServerEvent.STOP_TYPING, {"username": username})
        listener, self._listener = self._listener, None
        if listener is not None and listener is not asyncio.current_task():
            listener.cancel()
        self._set_state(SessionState.DISCONNECTED)

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        self.state = state
        for handler in list(self._state_subscribers):
            handler(state)

    def _notify(self, event: ServerEvent, data: Any) -> None:
        for handler in list(self._subscribers):
            handler(event, data)

    def _save(self) -> None:
        self.storage.save_session(StoredSession(identity=self.identity, chat=list(self.chat)))
