"""WebSocket transport for the authority, served with FastAPI."""

import asyncio
import itertools

import structlog
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from kanban_sync.authority import Authority
from kanban_sync.channel import Channel
from kanban_sync.protocol import parse_command

logger = structlog.get_logger()

_connection_ids = itertools.count(1)


class WebSocketChannel(Channel):
    """Channel backed by a FastAPI WebSocket.

    Frames are queued synchronously and written by ``pump`` so that the
    authority never awaits while it holds the collection.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._name = f"ws-{next(_connection_ids)}"
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    @property
    def name(self) -> str:
        return self._name

    def send(self, frame: str) -> None:
        self._queue.put_nowait(frame)

    async def pump(self) -> None:
        """Write queued frames until the connection goes away."""
        while True:
            frame = await self._queue.get()
            try:
                await self.websocket.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.debug("Stopped writing to closed connection", channel=self.name, error=str(e))
                return


def create_app(authority: Authority | None = None, cors_origins: list[str] | None = None) -> FastAPI:
    """Build the FastAPI application serving one authority.

    Args:
        authority: Authority to serve (a fresh, empty one by default)
        cors_origins: Allowed origins for browser clients

    Returns:
        FastAPI application with the board WebSocket at ``/ws``
    """
    authority = authority or Authority()
    app = FastAPI(title="kanban-sync")
    app.state.authority = authority
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.websocket("/ws")
    async def board_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        channel = WebSocketChannel(websocket)
        writer = asyncio.create_task(channel.pump())
        authority.connect(channel)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.debug("WebSocket closed by client", channel=channel.name)
                    break
                # Text or binary frames carry the same JSON.
                frame = message.get("text") or message.get("bytes")
                if frame is None:
                    continue
                command = parse_command(frame)
                if command is None:
                    continue
                authority.handle(channel, command)
        finally:
            authority.disconnect(channel)
            writer.cancel()

    return app
