"""
Base WebSocket server for game rooms.
Provides connection bookkeeping and ordered outbound delivery.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class BaseGameManager(ABC):
    """
    Abstract base class for game managers.
    Subclasses implement message handling; this class owns the sockets.

    Game code only ever sees connection ids. Every connection has an outbound
    queue drained by a single writer task, so messages reach each client in
    the order they were sent.
    """

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.outboxes: Dict[str, asyncio.Queue] = {}
        self.writers: Dict[str, asyncio.Task] = {}

    async def connect(self, ws: WebSocket) -> str:
        """Accept a WebSocket connection and return its connection id."""
        await ws.accept()
        connection_id = uuid.uuid4().hex
        queue = asyncio.Queue()
        self.connections[connection_id] = ws
        self.outboxes[connection_id] = queue
        self.writers[connection_id] = asyncio.create_task(self._drain(connection_id, ws, queue))
        logger.info("Connection %s opened", connection_id)
        return connection_id

    async def _drain(self, connection_id: str, ws: WebSocket, queue: asyncio.Queue):
        while True:
            message = await queue.get()
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("Dropping output for %s: %s", connection_id, e)
                return

    def disconnect(self, connection_id: str):
        """Forget a connection and stop its writer."""
        self.connections.pop(connection_id, None)
        self.outboxes.pop(connection_id, None)
        writer = self.writers.pop(connection_id, None)
        if writer is not None:
            writer.cancel()
        logger.info("Connection %s closed", connection_id)
        self.on_disconnect(connection_id)

    def send(self, connection_id: str, msg: dict):
        """Queue a message for one connection. Unknown ids are ignored."""
        queue = self.outboxes.get(connection_id)
        if queue is not None:
            queue.put_nowait(msg)

    def on_disconnect(self, connection_id: str):
        """Hook for subclasses; called after a connection is forgotten."""
        pass

    def shutdown(self):
        """Hook for subclasses; called when the app stops."""
        pass

    @abstractmethod
    async def handle_message(self, connection_id: str, data: dict):
        """Handle incoming WebSocket messages. Must be implemented by subclasses."""
        pass


def create_game_app(manager: BaseGameManager, title: str = None) -> FastAPI:
    """
    Create a FastAPI app for a game.

    Args:
        manager: The game manager instance
        title: Title shown in the OpenAPI docs

    Returns:
        Configured FastAPI app exposing the manager at /ws
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        manager.shutdown()

    app = FastAPI(title=title or "Game Server", lifespan=lifespan)
    app.state.manager = manager

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        connection_id = await manager.connect(ws)
        try:
            while True:
                try:
                    data = await ws.receive_json()
                except ValueError:
                    manager.send(connection_id, {"type": "error", "reason": "invalid JSON"})
                    continue
                await manager.handle_message(connection_id, data)
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(connection_id)

    return app


def run_server(app: FastAPI, host: str = "0.0.0.0", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
