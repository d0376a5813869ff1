"""Event names and frame codec shared by the relay server and its clients."""
import json
from enum import Enum
from typing import Any, Tuple, Type, TypeVar

E = TypeVar("E", bound=Enum)


class ClientEvent(str, Enum):
    """Events a client may emit to the relay."""

    USER_JOINED = "user_joined"
    SEND_MESSAGE = "send_message"
    DELETE_MESSAGE = "delete_message"
    TYPING = "typing"
    STOP_TYPING = "stop_typing"


class ServerEvent(str, Enum):
    """Events the relay fans out to clients."""

    USER_JOINED = "user_joined"
    RECEIVE_MESSAGE = "receive_message"
    DELETE_MESSAGE = "delete_message"
    TYPING = "typing"
    STOP_TYPING = "stop_typing"
    USER_LEFT = "user_left"


class FrameError(ValueError):
    """Raised when a text frame cannot be decoded into an event."""


def encode_frame(event: Enum, data: Any) -> str:
    return json.dumps({"event": event.value, "data": data}, ensure_ascii=False)


def decode_frame(text: str, kinds: Type[E]) -> Tuple[E, Any]:
    """Split a text frame into its event kind and untouched payload.

    Only the envelope is checked; ``data`` is returned exactly as received
    (``None`` when absent).
    """
    try:
        frame = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise FrameError(f"frame is not valid JSON: {exc}") from exc
    if not isinstance(frame, dict):
        raise FrameError("frame must be a JSON object")
    name = frame.get("event")
    try:
        event = kinds(name)
    except ValueError as exc:
        raise FrameError(f"unknown event {name!r}") from exc
    return event, frame.get("data")
