"""WebSocket connection management for scene generation progress."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks progress subscribers per generation job.

    A job's key is registered before its background task starts, so a
    client connecting right after the 202 response never misses the
    first progress event.
    """

    def __init__(self):
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, job_id: str, websocket: WebSocket) -> None:
        """Accept a connection and subscribe it to a job."""
        await websocket.accept()
        self.connections.setdefault(job_id, []).append(websocket)

    async def broadcast(self, job_id: str, message: dict) -> None:
        """Send a progress message to every subscriber of a job.

        Subscribers that fail to receive are dropped.
        """
        disconnected = []
        for ws in self.connections.get(job_id, []):
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.debug(f"Dropping subscriber of job {job_id}: {e}")
                disconnected.append(ws)

        for ws in disconnected:
            if ws in self.connections.get(job_id, []):
                self.connections[job_id].remove(ws)

    def disconnect(self, job_id: str, websocket: WebSocket) -> None:
        if job_id in self.connections and websocket in self.connections[job_id]:
            self.connections[job_id].remove(websocket)

    def ensure_key(self, job_id: str) -> None:
        self.connections.setdefault(job_id, [])

    def cleanup(self, job_id: str) -> None:
        self.connections.pop(job_id, None)
