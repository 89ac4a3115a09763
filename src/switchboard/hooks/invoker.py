"""Hook invocation.

Resolves a hook by name, runs it locally or over HTTP, then applies the
matching post-processor. Invocations only read the registry, so any number
of them may be in flight at once.
"""

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from switchboard.hooks.base import HandlerKind, HookConfig, HookRegistration, HookRegistry
from switchboard.hooks.errors import (
    HookError,
    HookExecutionError,
    HookNotFound,
    HookRemoteError,
    HookTransportError,
    HookValidationError,
)
from switchboard.hooks.postprocess import PostProcessorFn, default_post_processors
from switchboard.models import RemoteHookRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


class HookInvoker:
    """Dispatches hooks registered in a HookRegistry.

    Remote calls are bounded by ``timeout_ms``: on expiry the in-flight
    request is cancelled and HookTransportError is raised. No retries.
    """

    def __init__(
        self,
        registry: HookRegistry,
        post_processors: Mapping[str, PostProcessorFn] | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the invoker.

        Args:
            registry: Registry to resolve hooks from
            post_processors: Hook name -> result validator (defaults to built-ins)
            timeout_ms: Bound for each remote call, in milliseconds
            client: Shared HTTP client (a short-lived one is created per call if None)
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        self.registry = registry
        self.post_processors = (
            post_processors if post_processors is not None else default_post_processors()
        )
        self.timeout_ms = timeout_ms
        self._client = client

    async def invoke(self, hook: str, data: Any = None) -> Any:
        """Call a hook.

        Args:
            hook: Name of the hook
            data: Payload passed to the hook

        Returns:
            The hook result, after post-processing

        Raises:
            HookNotFound: If the hook is not registered
            HookExecutionError: If a local handler raised
            HookTransportError: If a remote hook was unreachable or timed out
            HookRemoteError: If a remote hook answered with an error
            HookValidationError: If the post-processor rejected the result
        """
        logger.info(f"Calling hook: '{hook}'")

        config = self.registry.snapshot()
        registration = config.hooks.get(hook)
        if registration is None:
            raise HookNotFound(f"Hook '{hook}' does not exist", hook=hook)

        if registration.kind is HandlerKind.LOCAL:
            result = await self._call_local(registration, data)
        elif registration.kind is HandlerKind.REMOTE:
            result = await self._call_remote(config, registration, data)
        else:
            raise HookError(f"Invalid hook type for '{hook}'", hook=hook)

        return self._post_process(hook, result)

    async def _call_local(self, registration: HookRegistration, data: Any) -> Any:
        try:
            result = registration.handler(data)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Error in local hook '{registration.name}': {e}")
            raise HookExecutionError(
                f"Error with {registration.name} hook: {e}", hook=registration.name
            ) from e
        return result

    async def _call_remote(
        self,
        config: HookConfig,
        registration: HookRegistration,
        data: Any,
    ) -> Any:
        hook = registration.name
        body = RemoteHookRequest(id=config.system_id, data=data, hook=hook)
        headers = {
            "Content-Type": "application/json",
            "Authorization": config.secret,
        }

        try:
            # wait_for cancels the request task on expiry and disarms its
            # timer on every exit path
            response = await asyncio.wait_for(
                self._post(registration.url, body.model_dump_json(), headers),
                timeout=self.timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Error calling webhook '{hook}': timed out after {self.timeout_ms}ms")
            raise HookTransportError(
                f"Error with {hook} webhook: timed out after {self.timeout_ms}ms",
                hook=hook,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = str(e) or type(e).__name__
            logger.error(f"Error calling webhook '{hook}': {message}")
            raise HookTransportError(f"Error with {hook} webhook: {message}", hook=hook) from e

        if not response.is_success:
            logger.error(
                f"Error calling webhook '{hook}': HTTP {response.status_code}: {response.text}"
            )
            raise HookRemoteError(
                f"Error with {hook} webhook: {response.text}",
                hook=hook,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Error calling webhook '{hook}': invalid JSON response")
            raise HookRemoteError(
                f"Error with {hook} webhook: invalid JSON response",
                hook=hook,
                status_code=response.status_code,
            ) from e

    async def _post(self, url: str, content: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, content=content, headers=headers)

        # The request is bounded by wait_for in _call_remote, not by httpx
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(url, content=content, headers=headers)

    def _post_process(self, hook: str, result: Any) -> Any:
        processor = self.post_processors.get(hook)
        if processor is None:
            return result

        try:
            return processor(result)
        except Exception as e:
            logger.error(f"Error in post-processing for hook '{hook}': {e}")
            raise HookValidationError(
                f"Post-processing error for '{hook}': {e}", hook=hook
            ) from e

    async def aclose(self) -> None:
        """Close the shared HTTP client, if any."""
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "HookInvoker":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
