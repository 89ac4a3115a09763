"""Post-processors applied to hook results before they are returned.

A post-processor receives the raw result of a hook and returns the
(possibly normalized) result, or raises to reject it.
"""

from collections.abc import Callable, Iterator, Mapping
from typing import Any

PostProcessorFn = Callable[[Any], Any]

USER_AUTH_REQUIRED_KEYS = ("id", "name", "token")


def validate_user_auth(data: Any) -> Any:
    """Check the result of the ``users.auth`` hook.

    The result must carry ``id``, ``name`` and ``token`` keys and a string
    ``email``.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Invalid authentication data")
    if any(key not in data for key in USER_AUTH_REQUIRED_KEYS):
        raise ValueError("Invalid authentication data")
    if not isinstance(data.get("email"), str):
        raise ValueError("Invalid authentication data")
    return data


class PostProcessors(Mapping[str, PostProcessorFn]):
    """Mapping of hook name to post-processor.

    Kept outside HookInvoker so validators can be added without touching
    invocation logic.

    Example:
        processors = default_post_processors()

        @processors.postprocessor("orders.create")
        def check_order(result):
            ...
    """

    def __init__(self, processors: Mapping[str, PostProcessorFn] | None = None):
        self._processors: dict[str, PostProcessorFn] = dict(processors or {})

    def register(self, name: str, fn: PostProcessorFn) -> None:
        """Register (or replace) the post-processor for a hook."""
        self._processors[name] = fn

    def postprocessor(self, name: str) -> Callable[[PostProcessorFn], PostProcessorFn]:
        """Decorator form of ``register``."""

        def decorator(fn: PostProcessorFn) -> PostProcessorFn:
            self.register(name, fn)
            return fn

        return decorator

    def __getitem__(self, name: str) -> PostProcessorFn:
        return self._processors[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._processors)

    def __len__(self) -> int:
        return len(self._processors)


def default_post_processors() -> PostProcessors:
    """Return a fresh PostProcessors with the built-in validators."""
    return PostProcessors({"users.auth": validate_user_auth})
