"""Tests for HookInvoker."""

import asyncio
from unittest.mock import Mock

import httpx
import pytest

from switchboard.hooks import (
    ConfigError,
    HookExecutionError,
    HookInvoker,
    HookNotFound,
    HookRegistration,
    HookRemoteError,
    HookTransportError,
    HookValidationError,
    PostProcessors,
)

REMOTE_URL = "https://hooks.example.com/run"

VALID_USER = {"id": "u1", "name": "Ada", "token": "t0k", "email": "ada@example.com"}


def options(hooks, system_id="box-1", secret="s3cret"):
    return {"id": system_id, "secret": secret, "hooks": hooks}


# =============================================================================
# Lookup
# =============================================================================


class TestNotFound:
    @pytest.mark.asyncio
    async def test_unregistered_hook_raises_without_calling_anything(
        self, registry, recording_transport
    ):
        handler = Mock(return_value="never")
        transport = recording_transport(lambda request: httpx.Response(200, json={}))
        registry.init(options({"other": handler, "remote": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        with pytest.raises(HookNotFound) as exc_info:
            await invoker.invoke("missing", {})

        assert exc_info.value.hook == "missing"
        handler.assert_not_called()
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_before_init(self, registry):
        with pytest.raises(HookNotFound):
            await HookInvoker(registry).invoke("anything")

    def test_rejects_non_positive_timeout(self, registry):
        with pytest.raises(ValueError):
            HookInvoker(registry, timeout_ms=0)


# =============================================================================
# Local hooks
# =============================================================================


class TestLocalHooks:
    @pytest.mark.asyncio
    async def test_sync_handler_result(self, registry):
        registry.init(options({"math.double": lambda data: data["n"] * 2}))
        assert await HookInvoker(registry).invoke("math.double", {"n": 21}) == 42

    @pytest.mark.asyncio
    async def test_async_handler_result(self, registry):
        async def lookup(data):
            await asyncio.sleep(0)
            return {"found": data}

        registry.init(options({"lookup": lookup}))
        assert await HookInvoker(registry).invoke("lookup", "x") == {"found": "x"}

    @pytest.mark.asyncio
    async def test_handler_error_is_wrapped(self, registry):
        def broken(data):
            raise RuntimeError("database is down")

        registry.init(options({"broken": broken}))

        with pytest.raises(HookExecutionError, match="database is down") as exc_info:
            await HookInvoker(registry).invoke("broken", {})

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.hook == "broken"

    @pytest.mark.asyncio
    async def test_async_handler_error_is_wrapped(self, registry):
        async def broken(data):
            raise ValueError("bad input")

        registry.init(options({"broken": broken}))

        with pytest.raises(HookExecutionError, match="bad input"):
            await HookInvoker(registry).invoke("broken", {})

    @pytest.mark.asyncio
    async def test_post_processor_transforms_result(self, registry):
        processors = PostProcessors({"users.name": lambda result: result.upper()})
        registry.init(options({"users.name": lambda data: "ada"}))

        invoker = HookInvoker(registry, post_processors=processors)
        assert await invoker.invoke("users.name", {}) == "ADA"


# =============================================================================
# Remote hooks
# =============================================================================


class TestRemoteHooks:
    @pytest.mark.asyncio
    async def test_sends_exactly_one_signed_request(self, registry, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json={"ok": True}))
        registry.init(options({"orders.create": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        result = await invoker.invoke("orders.create", {"sku": "A-1", "qty": 2})

        assert result == {"ok": True}
        assert len(transport.requests) == 1
        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == REMOTE_URL
        assert request.headers["authorization"] == "s3cret"
        assert request.headers["content-type"] == "application/json"
        assert transport.bodies() == [
            {"id": "box-1", "data": {"sku": "A-1", "qty": 2}, "hook": "orders.create"}
        ]

    @pytest.mark.asyncio
    async def test_timeout_aborts_request(self, registry, recording_transport):
        cancelled = []

        async def slow(request):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return httpx.Response(200, json={"late": True})

        transport = recording_transport(slow)
        registry.init(options({"slow": REMOTE_URL}))
        invoker = HookInvoker(registry, timeout_ms=50, client=transport.client())

        with pytest.raises(HookTransportError, match="timed out after 50ms"):
            await invoker.invoke("slow", {})

        assert len(transport.requests) == 1
        assert cancelled == [True]

    @pytest.mark.asyncio
    async def test_network_error(self, registry, recording_transport):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = recording_transport(refuse)
        registry.init(options({"remote": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        with pytest.raises(HookTransportError, match="connection refused") as exc_info:
            await invoker.invoke("remote", {})

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_error_status_carries_body_text(self, registry, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(403, text="bad secret"))
        registry.init(options({"remote": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        with pytest.raises(HookRemoteError, match="bad secret") as exc_info:
            await invoker.invoke("remote", {})

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, registry, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, text="<html>"))
        registry.init(options({"remote": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        with pytest.raises(HookRemoteError, match="invalid JSON response"):
            await invoker.invoke("remote", {})

    @pytest.mark.asyncio
    async def test_reinit_changes_secret_and_hooks(self, registry, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json=1))
        invoker = HookInvoker(registry, client=transport.client())

        registry.init(options({"first": REMOTE_URL}, system_id="box-1", secret="one"))
        registry.init(options({"second": REMOTE_URL}, system_id="box-2", secret="two"))

        with pytest.raises(HookNotFound):
            await invoker.invoke("first", {})

        await invoker.invoke("second", {"n": 1})

        assert len(transport.requests) == 1
        assert transport.requests[0].headers["authorization"] == "two"
        assert transport.bodies()[0]["id"] == "box-2"

    @pytest.mark.asyncio
    async def test_concurrent_invocations(self, registry, recording_transport):
        async def echo(request):
            await asyncio.sleep(0.01)
            return httpx.Response(200, content=request.content)

        transport = recording_transport(echo)
        registry.init(options({"echo": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        results = await asyncio.gather(*(invoker.invoke("echo", n) for n in range(5)))

        assert [result["data"] for result in results] == [0, 1, 2, 3, 4]
        assert len(transport.requests) == 5

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, registry, recording_transport):
        client = recording_transport(lambda request: httpx.Response(200, json={})).client()
        async with HookInvoker(registry, client=client):
            pass
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_timeout_closes_per_call_client(
        self, registry, recording_transport, monkeypatch
    ):
        cancelled = []
        created = []

        async def slow(request):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return httpx.Response(200, json={"late": True})

        transport = recording_transport(slow)
        real_client = httpx.AsyncClient

        def make_client(**kwargs):
            client = real_client(transport=transport.transport, **kwargs)
            created.append(client)
            return client

        monkeypatch.setattr(httpx, "AsyncClient", make_client)
        registry.init(options({"slow": REMOTE_URL}))
        invoker = HookInvoker(registry, timeout_ms=50)

        with pytest.raises(HookTransportError, match="timed out after 50ms"):
            await invoker.invoke("slow", {})

        assert len(transport.requests) == 1
        assert cancelled == [True]
        assert len(created) == 1
        assert created[0].is_closed


# =============================================================================
# Malformed URLs
# =============================================================================


class TestMalformedUrls:
    def test_init_rejects_unparseable_url(self, registry):
        with pytest.raises(ConfigError, match="Invalid URL for hook 'r'"):
            registry.init(options({"r": "http://[::1"}))
        assert not registry.initialized

    @pytest.mark.asyncio
    async def test_prebuilt_registration_with_bad_url_is_transport_error(self, registry):
        registration = HookRegistration.remote("r", "http://[::1")
        registry.init(options({"r": registration}))

        with pytest.raises(HookTransportError) as exc_info:
            await HookInvoker(registry).invoke("r", {})

        assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)


# =============================================================================
# users.auth post-processing
# =============================================================================


class TestUsersAuth:
    @pytest.mark.asyncio
    async def test_valid_result_passes_through(self, registry, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, json=VALID_USER))
        registry.init(options({"users.auth": REMOTE_URL}))
        invoker = HookInvoker(registry, client=transport.client())

        assert await invoker.invoke("users.auth", {"token": "t0k"}) == VALID_USER

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "result",
        [
            {"name": "Ada", "token": "t0k", "email": "ada@example.com"},
            {"id": "u1", "token": "t0k", "email": "ada@example.com"},
            {"id": "u1", "name": "Ada", "email": "ada@example.com"},
            {"id": "u1", "name": "Ada", "token": "t0k"},
            {"id": "u1", "name": "Ada", "token": "t0k", "email": 42},
            ["u1", "Ada"],
            None,
        ],
    )
    async def test_invalid_result_is_discarded(self, registry, result):
        handler = Mock(return_value=result)
        registry.init(options({"users.auth": handler}))

        with pytest.raises(HookValidationError, match="Invalid authentication data"):
            await HookInvoker(registry).invoke("users.auth", {})

        handler.assert_called_once_with({})

    @pytest.mark.asyncio
    async def test_custom_processors_replace_builtins(self, registry):
        registry.init(options({"users.auth": lambda data: {"partial": True}}))
        invoker = HookInvoker(registry, post_processors=PostProcessors())

        assert await invoker.invoke("users.auth", {}) == {"partial": True}
