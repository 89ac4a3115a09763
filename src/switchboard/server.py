"""Main FastAPI server for Switchboard."""

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from switchboard import __version__
from switchboard.config import ServerConfig
from switchboard.hooks import HookError, HookInvoker, HookRegistry, PostProcessors
from switchboard.models import HealthResponse, HookInfo
from switchboard.realtime import Connection, ConnectionRouter, ServiceRegistry
from switchboard.realtime.services import ServiceHandler

logger = logging.getLogger(__name__)


class SwitchboardServer:
    """Main Switchboard application.

    Hosts the hook invoker and the realtime services behind one FastAPI app.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        local_hooks: Mapping[str, Any] | None = None,
        post_processors: PostProcessors | None = None,
    ):
        """Initialize the server.

        Args:
            config: Server configuration (defaults from the environment)
            local_hooks: In-process hook handlers by name, merged over configured URLs
            post_processors: Result validators (built-ins if None)
        """
        self.config = config or ServerConfig()

        # Core components
        self.hooks = HookRegistry(self.config.hook_options(local_hooks))
        self.invoker = HookInvoker(
            self.hooks,
            post_processors=post_processors,
            timeout_ms=self.config.hook_timeout_ms,
        )
        self.services = ServiceRegistry()
        self.connections = ConnectionRouter(self.services, prefix=self.config.socket_prefix)

        # FastAPI app
        self.app = self._create_app()

        # Register built-in services
        self._setup_builtin_services()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Manage server lifecycle."""
            logger.info(f"Switchboard starting on {self.config.host}:{self.config.port}")
            logger.info(f"Hooks: {len(self.hooks.list_hooks())}, services: {len(self.services)}")

            yield

            logger.info("Switchboard shutting down")
            await self.invoker.aclose()

        app = FastAPI(
            title="Switchboard",
            description="Hook dispatch and realtime service routing",
            version=__version__,
            lifespan=lifespan,
        )

        # CORS middleware
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self.connections.install(app)

        # API root endpoint
        @app.get("/api")
        async def root():
            return {
                "service": "Switchboard",
                "version": __version__,
                "status": "running",
                "endpoints": {
                    "health": "/health",
                    "hooks": "/hooks",
                    "realtime": f"{self.connections.prefix}/{{service}}",
                    "docs": "/docs",
                },
            }

        # Health check
        @app.get("/health", response_model=HealthResponse)
        async def health() -> HealthResponse:
            return HealthResponse(
                status="healthy",
                hooks=len(self.hooks.list_hooks()),
                services=len(self.services),
                connections=self.connections.connection_count,
            )

        @app.get("/hooks", response_model=list[HookInfo])
        async def list_hooks() -> list[HookInfo]:
            return [HookInfo(**hook) for hook in self.hooks.list_hooks()]

        return app

    def service(self, name: str):
        """Decorator to register a realtime service on this server."""
        return self.services.service(name)

    def add_service(self, name: str, handler: ServiceHandler) -> None:
        self.services.register(name, handler)

    def _setup_builtin_services(self) -> None:
        """Set up the built-in ``system`` service."""

        @self.service("system")
        def system_service(conn: Connection) -> None:
            """Ping and hook calls over the realtime transport."""

            @conn.on("ping")
            async def ping(data: Any) -> None:
                await conn.send("pong", data)

            @conn.on("hooks.call")
            async def call_hook(data: Any) -> None:
                hook = data.get("hook") if isinstance(data, dict) else None
                if not isinstance(hook, str):
                    await conn.send("error", {"message": "Missing hook name"})
                    return

                try:
                    result = await self.invoker.invoke(hook, data.get("data"))
                except HookError as e:
                    await conn.send(
                        "hooks.error",
                        {"hook": hook, "error": e.message, "type": type(e).__name__},
                    )
                    return

                await conn.send("hooks.result", {"hook": hook, "result": result})

    def run(self) -> None:
        """Run the server (blocking)."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level="info",
        )

    async def run_async(self) -> None:
        """Run the server asynchronously."""
        import uvicorn

        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level="info",
        )
        server = uvicorn.Server(config)
        await server.serve()


def create_server(
    config: ServerConfig | None = None,
    **kwargs,
) -> SwitchboardServer:
    """Create a Switchboard server instance.

    Args:
        config: Server configuration
        **kwargs: Additional options (local_hooks, post_processors)

    Returns:
        Configured SwitchboardServer instance
    """
    return SwitchboardServer(config=config, **kwargs)
