"""Fan-out rules for relayed chat events."""
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from ..shared.dto import Identity
from ..shared.events import ClientEvent, ServerEvent
from .config import VALIDATE_PAYLOADS
from .logging_config import configure_logging
from .registry import ConnectionRegistry
from .schemas import ChatMessageIn, IdentityIn

logger = configure_logging()


@dataclass(frozen=True)
class Delivery:
    """One outbound event; ``exclude`` names a connection that must not receive it."""

    event: ServerEvent
    data: Any
    exclude: Optional[str] = None


_SCHEMAS = {
    ClientEvent.USER_JOINED: IdentityIn,
    ClientEvent.SEND_MESSAGE: ChatMessageIn,
    ClientEvent.TYPING: IdentityIn,
    ClientEvent.STOP_TYPING: IdentityIn,
}


def _username(payload: Any) -> str:
    identity = Identity.from_payload(payload)
    return identity.username if identity else "?"


class EventRelay:
    """Reducer turning one inbound client event into the delivery it causes.

    No authentication is performed: any connection may announce any identity
    or delete any message id. The relay is meant for a trusted network.
    """

    def __init__(self, registry: Optional[ConnectionRegistry] = None, validate_payloads: bool = VALIDATE_PAYLOADS):
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.validate_payloads = validate_payloads

    def handle(self, connection_id: str, event: ClientEvent, data: Any) -> Optional[Delivery]:
        if self.validate_payloads and not self._is_valid(connection_id, event, data):
            return None

        if event is ClientEvent.USER_JOINED:
            updated = self.registry.register(connection_id, data)
            logger.info(
                "USER_JOINED connection=%s username=%s reannounce=%s", connection_id, _username(data), updated
            )
            return Delivery(ServerEvent.USER_JOINED, data)
        if event is ClientEvent.SEND_MESSAGE:
            message_id = data.get("id") if isinstance(data, dict) else None
            logger.info("MESSAGE_RELAYED connection=%s message_id=%s", connection_id, message_id)
            return Delivery(ServerEvent.RECEIVE_MESSAGE, data)
        if event is ClientEvent.DELETE_MESSAGE:
            logger.info("MESSAGE_DELETED connection=%s message_id=%s", connection_id, data)
            return Delivery(ServerEvent.DELETE_MESSAGE, data)
        if event is ClientEvent.TYPING:
            return Delivery(ServerEvent.TYPING, data, exclude=connection_id)
        if event is ClientEvent.STOP_TYPING:
            return Delivery(ServerEvent.STOP_TYPING, data, exclude=connection_id)
        raise ValueError(f"Unhandled client event: {event!r}")

    def disconnect(self, connection_id: str) -> Optional[Delivery]:
        """Evict the connection and return its departure, if it ever joined."""
        if connection_id not in self.registry:
            return None
        identity = self.registry.remove(connection_id)
        logger.info("USER_LEFT connection=%s username=%s", connection_id, _username(identity))
        return Delivery(ServerEvent.USER_LEFT, identity)

    def _is_valid(self, connection_id: str, event: ClientEvent, data: Any) -> bool:
        if event is ClientEvent.DELETE_MESSAGE:
            valid = isinstance(data, str) and bool(data)
        else:
            schema: type[BaseModel] = _SCHEMAS[event]
            try:
                schema.model_validate(data)
                valid = True
            except ValidationError:
                valid = False
        if not valid:
            logger.warning("PAYLOAD_REJECTED connection=%s event=%s", connection_id, event.value)
        return valid
