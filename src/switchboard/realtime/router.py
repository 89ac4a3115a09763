"""WebSocket endpoint multiplexing connections across named services."""

import inspect
import logging

from fastapi import APIRouter, FastAPI, WebSocket, WebSocketDisconnect

from switchboard.realtime.connection import Connection
from switchboard.realtime.services import ServiceRegistry

logger = logging.getLogger(__name__)

# Application-range close code standing in for HTTP 404
SERVICE_NOT_FOUND = 4404


class ConnectionRouter:
    """Routes connections on ``{prefix}/{service_name}`` to registered services.

    Each connection is handled by its own task; frames within a connection
    are processed one at a time, in arrival order.
    """

    def __init__(self, services: ServiceRegistry, prefix: str = "/socket"):
        self.services = services
        self.prefix = "/" + prefix.strip("/")
        self._connections: set[Connection] = set()

        self.router = APIRouter(tags=["realtime"])
        self.router.add_api_websocket_route(
            f"{self.prefix}/{{service_name}}", self.handle
        )

    def install(self, app: FastAPI) -> None:
        """Mount the realtime endpoint on an app."""
        app.include_router(self.router)
        logger.info(f"Realtime services available under {self.prefix}/{{service}}")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def handle(self, websocket: WebSocket, service_name: str) -> None:
        """Serve one connection until the peer goes away."""
        logger.info(f"Connection to service '{service_name}'")

        service = self.services.get(service_name)
        await websocket.accept()

        if service is None:
            logger.error(f"Invalid service '{service_name}'")
            await websocket.close(code=SERVICE_NOT_FOUND, reason="Service not found")
            return

        connection = Connection(websocket, service_name)
        self._connections.add(connection)

        try:
            result = service.handler(connection)
            if inspect.isawaitable(result):
                await result

            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                await connection.dispatch(raw)
        except WebSocketDisconnect:
            pass
        finally:
            self._connections.discard(connection)
            logger.info(f"Connection to service '{service_name}' closed")
            await connection.closed()
