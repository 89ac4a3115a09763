"""Hook registrations and the replace-on-init hook registry.

A hook is a named unit of work. It is either fulfilled in-process by a
callable (local) or by an HTTP endpoint (remote).
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

import httpx

from switchboard.hooks.errors import ConfigError, HookNotFound

logger = logging.getLogger(__name__)

# Local handler signature: (payload) -> result, or an awaitable of it
LocalHandler = Callable[[Any], Any]


class HandlerKind(str, Enum):
    """How a hook is fulfilled."""

    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class HookRegistration:
    """A hook name bound to either a local callable or a remote URL.

    Use the ``local`` and ``remote`` constructors; exactly one of
    ``handler``/``url`` is set, matching ``kind``.
    """

    name: str
    kind: HandlerKind
    handler: LocalHandler | None = None
    url: str | None = None

    @classmethod
    def local(cls, name: str, handler: LocalHandler) -> "HookRegistration":
        return cls(name=name, kind=HandlerKind.LOCAL, handler=handler)

    @classmethod
    def remote(cls, name: str, url: str) -> "HookRegistration":
        return cls(name=name, kind=HandlerKind.REMOTE, url=url)

    @property
    def target(self) -> str:
        """Human-readable description of where the hook runs."""
        if self.kind is HandlerKind.REMOTE:
            return self.url or ""
        return getattr(self.handler, "__qualname__", repr(self.handler))


@dataclass(frozen=True)
class HookConfig:
    """Immutable hook configuration built by one ``init`` call.

    Attributes:
        system_id: Identifier sent as ``id`` in remote hook requests
        secret: Shared secret sent as the ``Authorization`` header
        hooks: Read-only mapping of hook name to registration
    """

    system_id: str
    secret: str
    hooks: Mapping[str, HookRegistration] = field(
        default_factory=lambda: MappingProxyType({})
    )


def _build_registration(name: Any, value: Any) -> HookRegistration:
    if not isinstance(name, str):
        raise ConfigError(f"Invalid options: hook name {name!r} must be a string")

    if isinstance(value, HookRegistration):
        if value.name != name:
            raise ConfigError(
                f"Invalid options: hook '{name}' registered under name '{value.name}'"
            )
        return value
    if isinstance(value, str):
        try:
            httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ConfigError(
                f"Invalid URL for hook '{name}': {e}", hook=name
            ) from e
        return HookRegistration.remote(name, value)
    if callable(value):
        return HookRegistration.local(name, value)

    raise ConfigError(
        f"Invalid hook type for '{name}': expected a callable or a URL string",
        hook=name,
    )


class HookRegistry:
    """Process-wide hook table plus system id and shared secret.

    State is replaced wholesale by every successful ``init``. A failed
    ``init`` leaves the previous configuration in place. Races between
    ``init`` and in-flight invocations are not synchronized; each
    invocation works on the snapshot it took when it started.
    """

    def __init__(self, options: Mapping[str, Any] | None = None):
        self._config: HookConfig | None = None
        if options is not None:
            self.init(options)

    def init(self, options: Mapping[str, Any]) -> HookConfig:
        """Validate options and replace the current configuration.

        Args:
            options: Mapping with ``id`` (str), ``secret`` (str) and
                ``hooks`` (mapping of name to callable or URL string)

        Returns:
            The new HookConfig

        Raises:
            ConfigError: If the options are invalid
        """
        logger.info("Initializing hooks")

        if not isinstance(options, Mapping) or not isinstance(options.get("hooks"), Mapping):
            raise ConfigError('Invalid options: "hooks" must be a mapping')

        system_id = options.get("id")
        secret = options.get("secret")
        if not isinstance(system_id, str) or not isinstance(secret, str):
            raise ConfigError('Invalid options: "id" and "secret" must be strings')

        hooks = {
            name: _build_registration(name, value)
            for name, value in options["hooks"].items()
        }

        config = HookConfig(
            system_id=system_id,
            secret=secret,
            hooks=MappingProxyType(hooks),
        )
        self._config = config

        logger.info(f"Hooks initialized with ID: '{system_id}' ({len(hooks)} hooks)")
        return config

    @property
    def initialized(self) -> bool:
        return self._config is not None

    def snapshot(self) -> HookConfig:
        """Return the current configuration.

        Before the first ``init`` this is an empty configuration, so every
        lookup fails with HookNotFound.
        """
        if self._config is None:
            return HookConfig(system_id="", secret="")
        return self._config

    def get(self, name: str) -> HookRegistration:
        """Get a hook registration by name.

        Raises:
            HookNotFound: If the hook is not registered
        """
        registration = self.snapshot().hooks.get(name)
        if registration is None:
            raise HookNotFound(f"Hook '{name}' does not exist", hook=name)
        return registration

    def is_registered(self, name: str) -> bool:
        return name in self.snapshot().hooks

    def list_hooks(self) -> list[dict[str, Any]]:
        """List all registered hooks."""
        return [
            {
                "name": registration.name,
                "kind": registration.kind.value,
                "target": registration.target,
            }
            for registration in sorted(
                self.snapshot().hooks.values(), key=lambda r: r.name
            )
        ]
