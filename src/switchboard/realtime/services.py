"""Registry of realtime services."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from switchboard.realtime.connection import Connection

logger = logging.getLogger(__name__)

# Service handler signature: (connection) -> None, or an awaitable of it
ServiceHandler = Callable[["Connection"], Any]


@dataclass
class ServiceRegistration:
    """A named service and the handler called once per connection."""

    name: str
    handler: ServiceHandler


class ServiceRegistry:
    """Table of service name -> connection handler.

    Registering a name twice replaces the earlier handler with a warning.
    """

    def __init__(self):
        self._services: dict[str, ServiceRegistration] = {}

    def register(self, name: str, handler: ServiceHandler) -> ServiceRegistration:
        """Register a service.

        Args:
            name: Service name, matched against the connection path
            handler: Called with each new Connection to attach listeners

        Raises:
            ValueError: If the name is not a non-empty string or the handler is not callable
        """
        if not name or not isinstance(name, str) or not callable(handler):
            raise ValueError("Invalid service name or handler function.")

        if name in self._services:
            logger.warning(f"Service '{name}' already registered, replacing handler")
        else:
            logger.info(f"Adding service: {name}")

        registration = ServiceRegistration(name=name, handler=handler)
        self._services[name] = registration
        return registration

    def service(self, name: str) -> Callable[[ServiceHandler], ServiceHandler]:
        """Decorator to register a service handler.

        Usage:
            @services.service("chat")
            def chat(conn: Connection) -> None:
                ...
        """

        def decorator(handler: ServiceHandler) -> ServiceHandler:
            self.register(name, handler)
            return handler

        return decorator

    def get(self, name: str) -> ServiceRegistration | None:
        """Get a service by name, or None if it is not registered."""
        return self._services.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __len__(self) -> int:
        return len(self._services)

    def list_services(self) -> list[str]:
        """List all registered service names."""
        return sorted(self._services)
