"""Server configuration."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Switchboard configuration.

    Can be set via environment variables with SWITCHBOARD_ prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SWITCHBOARD_", env_file=".env")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8420, description="Port to listen on")

    # CORS settings
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Hook settings
    system_id: str = Field(
        default="switchboard",
        description="System identifier sent as 'id' to remote hooks",
    )
    secret: str = Field(
        default="",
        description="Shared secret sent as the Authorization header to remote hooks",
    )
    hooks: dict[str, str] = Field(
        default_factory=dict,
        description="Remote hook URLs by hook name",
    )
    hook_timeout_ms: int = Field(
        default=5000,
        description="Timeout for remote hook calls in milliseconds",
    )

    # Realtime settings
    socket_prefix: str = Field(
        default="/socket",
        description="Path prefix for realtime service connections",
    )

    @field_validator("hook_timeout_ms")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("hook_timeout_ms must be positive")
        return value

    @field_validator("socket_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return "/" + value.strip("/")

    def hook_options(self, local_hooks: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Build the options mapping for HookRegistry.init.

        Local hooks take precedence over configured URLs with the same name.
        """
        hooks: dict[str, Any] = dict(self.hooks)
        hooks.update(local_hooks or {})
        return {"id": self.system_id, "secret": self.secret, "hooks": hooks}


def load_config(config_path: Path | str | None = None) -> ServerConfig:
    """Load server configuration.

    Args:
        config_path: Optional path to a YAML config file

    Returns:
        ServerConfig instance
    """
    if config_path:
        import yaml

        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return ServerConfig(**data)

    return ServerConfig()
