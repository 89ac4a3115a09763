"""Named hooks fulfilled in-process or by a remote HTTP endpoint.

Usage:
    registry = HookRegistry()
    registry.init({
        "id": "box-1",
        "secret": "s3cret",
        "hooks": {
            "users.auth": "https://example.com/hooks/auth",
            "users.greet": lambda data: {"hello": data["name"]},
        },
    })

    invoker = HookInvoker(registry)
    user = await invoker.invoke("users.auth", {"token": "..."})
"""

from switchboard.hooks.base import (
    HandlerKind,
    HookConfig,
    HookRegistration,
    HookRegistry,
)
from switchboard.hooks.errors import (
    ConfigError,
    HookError,
    HookExecutionError,
    HookNotFound,
    HookRemoteError,
    HookTransportError,
    HookValidationError,
)
from switchboard.hooks.invoker import DEFAULT_TIMEOUT_MS, HookInvoker
from switchboard.hooks.postprocess import (
    PostProcessors,
    default_post_processors,
    validate_user_auth,
)

__all__ = [
    "ConfigError",
    "DEFAULT_TIMEOUT_MS",
    "HandlerKind",
    "HookConfig",
    "HookError",
    "HookExecutionError",
    "HookInvoker",
    "HookNotFound",
    "HookRegistration",
    "HookRegistry",
    "HookRemoteError",
    "HookTransportError",
    "HookValidationError",
    "PostProcessors",
    "default_post_processors",
    "validate_user_auth",
]
