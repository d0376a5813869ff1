"""Live WebSocket connections and delivery of relay events."""
import uuid
from typing import Dict, List, Optional

from fastapi import WebSocket

from ..shared.events import encode_frame
from .logging_config import configure_logging
from .relay import Delivery, EventRelay

logger = configure_logging()


class ConnectionManager:
    def __init__(self, relay: Optional[EventRelay] = None):
        self.relay = relay if relay is not None else EventRelay()
        self._sockets: Dict[str, WebSocket] = {}

    @property
    def connection_ids(self) -> List[str]:
        return list(self._sockets)

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self._sockets[connection_id] = websocket
        logger.info("CONNECT connection=%s", connection_id)
        return connection_id

    async def deliver(self, delivery: Delivery) -> int:
        """Send a delivery to every live connection it addresses; return how many got it."""
        frame = encode_frame(delivery.event, delivery.data)
        sent = 0
        for connection_id, websocket in list(self._sockets.items()):
            if connection_id == delivery.exclude:
                continue
            try:
                await websocket.send_text(frame)
                sent += 1
            except Exception as exc:  # noqa: BLE001
                # The recipient's own receive loop notices the closed socket and disconnects it.
                logger.warning(
                    "SEND_FAILED connection=%s event=%s error=%s", connection_id, delivery.event.value, exc
                )
        return sent

    async def disconnect(self, connection_id: str) -> bool:
        """Drop a connection and announce its departure; repeated calls are no-ops."""
        if self._sockets.pop(connection_id, None) is None:
            return False
        logger.info("DISCONNECT connection=%s", connection_id)
        departure = self.relay.disconnect(connection_id)
        if departure is not None:
            await self.deliver(departure)
        return True
