import asyncio
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import SEND_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class WebSocketConnection:
    """Wraps a FastAPI WebSocket with a bounded outbound queue drained by a writer task.

    ``send_nowait`` never awaits, so a slow peer only fills its own queue. Once the
    queue is full or the socket is gone the connection reports itself unwritable
    and further frames for it are dropped.
    """

    def __init__(self, websocket: WebSocket, queue_size: int = SEND_QUEUE_SIZE):
        self.websocket = websocket
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._writer_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def start(self) -> None:
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._writer())

    def send_nowait(self, message: str) -> bool:
        if not self.is_open:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Outbound queue full, dropping frame for slow connection")
            return False
        return True

    async def _writer(self) -> None:
        while True:
            message = await self._queue.get()
            if message is None:
                break
            try:
                await self.websocket.send_text(message)
            except Exception as e:
                logger.warning(f"Error writing to websocket, marking connection closed: {e}")
                self._closed = True
                break

    async def close(self) -> None:
        """Flush what is already queued, then stop the writer."""
        if self._writer_task is not None and not self._writer_task.done():
            try:
                self._queue.put_nowait(None)
            except asyncio.QueueFull:
                self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
        self._closed = True
