"""In-process stand-ins for the relay transport and WebSocket objects."""
import asyncio
import json
from typing import Any, Dict, List, Optional

from relay_chat.server.relay import Delivery, EventRelay
from relay_chat.shared.events import ClientEvent, ServerEvent, decode_frame, encode_frame


async def settle(delay: float = 0.01) -> None:
    """Let queued deliveries reach their listeners."""
    await asyncio.sleep(delay)


class FakeHub:
    """Routes client events through a real EventRelay without sockets."""

    def __init__(self, relay: Optional[EventRelay] = None):
        self.relay = relay if relay is not None else EventRelay()
        self.transports: Dict[str, "FakeTransport"] = {}
        self.created: List["FakeTransport"] = []
        self.opened = 0

    def transport(self) -> "FakeTransport":
        transport = FakeTransport(self)
        self.created.append(transport)
        return transport

    def fan_out(self, delivery: Optional[Delivery]) -> None:
        if delivery is None:
            return
        event, data = decode_frame(encode_frame(delivery.event, delivery.data), ServerEvent)
        for connection_id, transport in self.transports.items():
            if connection_id != delivery.exclude:
                transport.inbox.put_nowait((event, data))

    def drop(self, connection_id: str) -> None:
        if self.transports.pop(connection_id, None) is not None:
            self.fan_out(self.relay.disconnect(connection_id))


class FakeTransport:
    def __init__(self, hub: FakeHub):
        self.hub = hub
        self.connection_id: Optional[str] = None
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.sent: List[tuple] = []
        self.closed = 0

    async def open(self) -> None:
        self.hub.opened += 1
        self.connection_id = f"conn-{self.hub.opened}"
        self.hub.transports[self.connection_id] = self

    async def send(self, event: ClientEvent, data: Any) -> bool:
        if self.connection_id not in self.hub.transports:
            return False
        self.sent.append((event, json.loads(json.dumps(data))))
        self.hub.fan_out(self.hub.relay.handle(self.connection_id, event, data))
        return True

    async def listen(self, handler) -> None:
        while True:
            item = await self.inbox.get()
            if item is None:
                return
            handler(*item)

    async def close(self) -> None:
        self.closed += 1
        self.hub.drop(self.connection_id)
        self.inbox.put_nowait(None)

    def lose(self) -> None:
        """Simulate the network dropping underneath both peers."""
        self.hub.drop(self.connection_id)
        self.inbox.put_nowait(None)

    def sent_events(self) -> List[ClientEvent]:
        return [event for event, _ in self.sent]


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.fail = fail
        self.frames: List[tuple] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket is closed")
        self.frames.append(decode_frame(text, ServerEvent))

    def events(self) -> List[ServerEvent]:
        return [event for event, _ in self.frames]
