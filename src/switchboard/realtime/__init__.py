"""Realtime services over WebSocket.

Clients connect to ``/socket/{service}`` and exchange JSON frames shaped
``{"method": ..., "data": ...}``.
"""

from switchboard.realtime.connection import Connection
from switchboard.realtime.router import SERVICE_NOT_FOUND, ConnectionRouter
from switchboard.realtime.services import ServiceRegistration, ServiceRegistry

__all__ = [
    "Connection",
    "ConnectionRouter",
    "SERVICE_NOT_FOUND",
    "ServiceRegistration",
    "ServiceRegistry",
]
