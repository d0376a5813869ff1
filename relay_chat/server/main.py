"""FastAPI application entrypoint for the chat relay server."""
import asyncio
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..shared.dto import Identity
from ..shared.events import ClientEvent, FrameError, decode_frame
from . import schemas
from .config import CORS_METHODS, CORS_ORIGINS, HOST, PORT, WS_PATH
from .connections import ConnectionManager
from .logging_config import configure_logging
from .relay import EventRelay

logger = configure_logging()


def create_app(relay: Optional[EventRelay] = None) -> FastAPI:
    manager = ConnectionManager(relay)

    app = FastAPI(title="Chat Relay Server", version="1.0.0")
    app.state.manager = manager
    app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_methods=CORS_METHODS)

    @app.get("/", response_model=schemas.StatusOut)
    def root():
        return schemas.StatusOut(connections=len(manager.connection_ids))

    @app.get("/users", response_model=List[schemas.IdentityOut])
    def list_online_users():
        identities = (Identity.from_payload(entry) for entry in manager.relay.registry.online())
        return [schemas.IdentityOut(**identity.to_payload()) for identity in identities if identity]

    @app.websocket(WS_PATH)
    async def relay_endpoint(websocket: WebSocket):
        connection_id = await manager.connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                text = message.get("text")
                if text is None:
                    text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                try:
                    event, data = decode_frame(text, ClientEvent)
                except FrameError as exc:
                    logger.warning("FRAME_REJECTED connection=%s reason=%s", connection_id, exc)
                    continue
                delivery = manager.relay.handle(connection_id, event, data)
                if delivery is not None:
                    await manager.deliver(delivery)
        except WebSocketDisconnect:
            pass
        finally:
            # The departure must go out even when the handler itself is being cancelled.
            await asyncio.shield(manager.disconnect(connection_id))

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("relay_chat.server.main:app", host=HOST, port=PORT, reload=False)
