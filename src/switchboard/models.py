"""Pydantic models for wire formats and API responses."""

from typing import Any

from pydantic import BaseModel, Field


class RemoteHookRequest(BaseModel):
    """Body POSTed to a remote hook endpoint."""

    id: str = Field(description="System identifier of the caller")
    data: Any = Field(default=None, description="Hook payload")
    hook: str = Field(description="Name of the hook being called")


class SocketFrame(BaseModel):
    """Outbound realtime frame."""

    method: str = Field(description="Method name, e.g. 'pong' or 'error'")
    data: Any = None


class HookInfo(BaseModel):
    """Information about a registered hook."""

    name: str
    kind: str
    target: str


class HealthResponse(BaseModel):
    """Response from the health endpoint."""

    status: str
    hooks: int
    services: int
    connections: int
