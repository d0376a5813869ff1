"""WebSocket client for exchanging events with the chat relay."""
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from ..shared.events import ClientEvent, FrameError, ServerEvent, decode_frame, encode_frame
from .session import EventHandler

logger = logging.getLogger(__name__)


class RelayClient:
    """One relay connection; opened once and closed at most once."""

    def __init__(self, url: str):
        self.url = url
        self._ws: Optional[Any] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    async def open(self) -> None:
        if self._ws is not None:
            raise RuntimeError("Relay connection already opened")
        self._ws = await websockets.connect(self.url)
        logger.debug("Connected to relay at %s", self.url)

    async def send(self, event: ClientEvent, data: Any) -> bool:
        if not self.is_open:
            return False
        try:
            await self._ws.send(encode_frame(event, data))
        except ConnectionClosed:
            logger.info("Could not send %s: relay connection closed", event.value)
            return False
        return True

    async def listen(self, handler: EventHandler) -> None:
        """Dispatch incoming events to ``handler`` until the connection ends."""
        if self._ws is None:
            raise RuntimeError("Relay connection not opened")
        try:
            async for frame in self._ws:
                if isinstance(frame, bytes):
                    frame = frame.decode("utf-8", errors="replace")
                try:
                    event, data = decode_frame(frame, ServerEvent)
                except FrameError as exc:
                    logger.warning("Skipping malformed relay frame: %s", exc)
                    continue
                handler(event, data)
        except ConnectionClosed as exc:
            logger.info("Relay connection closed: %s", exc)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._ws is not None:
            await self._ws.close()
