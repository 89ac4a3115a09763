"""A realtime connection attached to one service."""

import inspect
import json
import logging
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket

from switchboard.models import SocketFrame

logger = logging.getLogger(__name__)

# Listener signature: (payload) -> None, or an awaitable of it
Listener = Callable[[Any], Any]

INVALID_JSON_MESSAGE = "Invalid JSON format"


async def _call(listener: Callable[..., Any], *args: Any) -> None:
    result = listener(*args)
    if inspect.isawaitable(result):
        await result


class Connection:
    """One WebSocket session routed to a service.

    Services attach listeners when their handler is called:

        def handler(conn: Connection) -> None:
            @conn.on("ping")
            async def ping(data):
                await conn.send("pong", data)

    Frames with a ``method`` go to the listeners registered for that
    method; frames without one go to the ``on_message`` listeners.
    """

    def __init__(self, websocket: WebSocket, service_name: str):
        self.websocket = websocket
        self.service_name = service_name
        self._methods: dict[str, list[Listener]] = {}
        self._message_listeners: list[Listener] = []
        self._close_listeners: list[Callable[[], Any]] = []

    @property
    def client(self) -> str | None:
        """Peer address as ``host:port``, if known."""
        if self.websocket.client is None:
            return None
        return f"{self.websocket.client.host}:{self.websocket.client.port}"

    async def send(self, method: str, data: Any = None) -> None:
        """Send one ``{method, data}`` frame."""
        frame = SocketFrame(method=method, data=data)
        await self.websocket.send_text(frame.model_dump_json())

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        await self.websocket.close(code=code, reason=reason)

    def on(self, method: str, listener: Listener | None = None) -> Any:
        """Register a listener for frames carrying ``method``.

        Can be called directly or used as a decorator.
        """

        def decorator(fn: Listener) -> Listener:
            self._methods.setdefault(method, []).append(fn)
            return fn

        if listener is not None:
            return decorator(listener)
        return decorator

    def on_message(self, listener: Listener) -> Listener:
        """Register a listener for frames without a method."""
        self._message_listeners.append(listener)
        return listener

    def on_close(self, listener: Callable[[], Any]) -> Callable[[], Any]:
        """Register a callback run once when the connection ends."""
        self._close_listeners.append(listener)
        return listener

    async def dispatch(self, raw: str) -> None:
        """Decode one inbound frame and call the matching listeners.

        Listener errors are not caught here.
        """
        try:
            frame = json.loads(raw)
        except ValueError as e:
            logger.error(f"Error parsing data on '{self.service_name}': {raw!r}, {e}")
            await self.send("error", {"message": INVALID_JSON_MESSAGE})
            return

        method = frame.get("method") if isinstance(frame, dict) else None
        if method:
            payload = frame.get("data") or {}
            listeners = self._methods.get(str(method), [])
            if not listeners:
                logger.debug(f"No listener for method '{method}' on '{self.service_name}'")
            for listener in list(listeners):
                await _call(listener, payload)
        else:
            for listener in list(self._message_listeners):
                await _call(listener, frame)

    async def closed(self) -> None:
        """Run close listeners. Called by the router when the session ends.

        Listener errors are not caught here.
        """
        listeners, self._close_listeners = self._close_listeners, []
        for listener in listeners:
            await _call(listener)
