"""
Integration tests for the server lifecycle manager.

These tests drive ContextiveServer with an in-memory transport.
"""

import asyncio
import signal
import threading
import time
from typing import Optional

import pytest

from contextive.application.interfaces.i_transport import ITransport
from contextive.application.services.capability_registry import CapabilityRegistry
from contextive.domain.entities.server_session import ServerState
from contextive.domain.entities.tool_descriptor import AccessMode
from contextive.domain.exceptions.domain_exceptions import (
    ConfigError,
    LifecycleError,
    TransportNotSupportedError,
)
from contextive.infrastructure.mcp.transports import create_transport
from contextive.presentation.server import ContextiveServer

from conftest import make_descriptor, wait_until


class InMemoryTransport(ITransport):
    """Transport that serves until stopped, disconnected or failed."""

    mode = "stdio"

    def __init__(self):
        self.catalog = None
        self.handler = None
        self.stopped = False
        self._closed = asyncio.Event()
        self._error: Optional[Exception] = None

    def bind(self, catalog, handler) -> None:
        self.catalog = catalog
        self.handler = handler

    async def serve(self) -> None:
        await self._closed.wait()
        if self._error is not None:
            raise self._error

    async def stop(self) -> None:
        self.stopped = True
        self._closed.set()

    def disconnect(self) -> None:
        self._closed.set()

    def fail(self, error: Exception) -> None:
        self._error = error
        self._closed.set()


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def gate():
    return asyncio.Event()


@pytest.fixture
def make_server(make_config, transport, gate):
    """Factory for a server with a 'slow' tool that waits on the gate."""

    async def slow(arguments, context):
        await gate.wait()
        return {"echo": arguments.text}

    def registry_builder(config):
        return CapabilityRegistry(
            [make_descriptor("slow", slow)],
            {"workbench": AccessMode.READ_ONLY},
        )

    def _make(config=None, **kwargs) -> ContextiveServer:
        config = config or make_config()
        options = dict(
            config_loader=lambda path: config,
            registry_builder=registry_builder,
            transport_factory=lambda server_config: transport,
            setup_logging=False,
        )
        options.update(kwargs)
        return ContextiveServer(**options)

    return _make


@pytest.mark.asyncio
class TestServerStartup:
    """Tests for Created -> Starting -> Running."""

    async def test_start_reaches_running(self, make_server, transport):
        server = make_server()

        await server.start()

        assert server.state == ServerState.RUNNING
        assert transport.catalog is server.registry
        assert transport.handler is server.dispatcher
        assert server.session.transport_mode == "stdio"
        await server.shutdown()

    async def test_default_registry_builder(self, make_config, transport):
        """Test the default tool packs are used when no builder is given."""
        config = make_config()
        server = ContextiveServer(
            config_loader=lambda path: config,
            transport_factory=lambda server_config: transport,
            setup_logging=False,
        )

        await server.start()

        assert [d.name for d in server.registry.list_tools()] == ["health", "server_info"]
        await server.shutdown()

    async def test_config_error_aborts_startup(self, make_server):
        """Test a configuration failure never reaches Running."""

        def failing_loader(path):
            raise ConfigError("Configuration file not found at argument path: x.json")

        server = make_server(config_loader=failing_loader)

        with pytest.raises(ConfigError):
            await server.start()

        assert server.state == ServerState.STOPPED
        assert server.exit_code == 1
        assert server.transport is None

    async def test_unsupported_transport_aborts_startup(self, make_server, make_config):
        config = make_config(server={"mode": "http", "port": 8080})
        server = make_server(config=config, transport_factory=create_transport)

        with pytest.raises(TransportNotSupportedError):
            await server.start()

        assert server.state == ServerState.STOPPED

    async def test_mode_override(self, make_server, make_config):
        """Test --stdio overrides the configured transport mode."""
        config = make_config(server={"mode": "http"})
        server = make_server(config=config, mode_override="stdio")

        await server.start()

        assert server.config.server.mode == "stdio"
        await server.shutdown()

    async def test_cannot_start_twice(self, make_server):
        server = make_server()
        await server.start()

        with pytest.raises(LifecycleError):
            await server.start()

        await server.shutdown()


@pytest.mark.asyncio
class TestServerShutdown:
    """Tests for Running -> ShuttingDown -> Stopped."""

    async def test_clean_shutdown(self, make_server, transport):
        server = make_server()
        await server.start()

        exit_code = await server.shutdown()

        assert exit_code == 0
        assert server.state == ServerState.STOPPED
        assert transport.stopped is True

    async def test_only_first_request_counts(self, make_server):
        """Test a second shutdown request is ignored."""
        server = make_server()
        await server.start()

        assert server.request_shutdown("received SIGINT") is True
        assert server.request_shutdown("received SIGTERM") is False
        assert server.state == ServerState.SHUTTING_DOWN
        assert server.session.is_shutting_down is True

        assert await server.shutdown() == 0
        assert server.request_shutdown("late") is False

    async def test_shutdown_before_start(self, make_server):
        with pytest.raises(LifecycleError):
            await make_server().shutdown()

    async def test_drains_in_flight_invocations(self, make_server, gate):
        """Test in-flight work completes while new work is rejected."""
        server = make_server()
        await server.start()
        in_flight = asyncio.create_task(server.dispatcher.invoke("slow", {"text": "a"}))
        await wait_until(lambda: server.session.in_flight == 1)

        server.request_shutdown("received SIGTERM")
        rejected = await server.dispatcher.invoke("slow", {"text": "b"})
        shutdown = asyncio.create_task(server.shutdown())
        await asyncio.sleep(0.02)
        assert not shutdown.done()

        gate.set()

        assert await shutdown == 0
        assert rejected.code == "ServerShuttingDown"
        assert (await in_flight).content == {"echo": "a"}
        assert server.session.in_flight == 0

    async def test_forced_shutdown_on_timeout(self, make_server, make_config):
        """Test a stuck invocation forces termination with exit status 1."""
        config = make_config(
            server={"shutdownTimeoutSeconds": 0.05, "toolTimeoutSeconds": 30}
        )
        server = make_server(config=config)
        await server.start()
        stuck = asyncio.create_task(server.dispatcher.invoke("slow", {"text": "a"}))
        await wait_until(lambda: server.session.in_flight == 1)

        exit_code = await server.shutdown()

        assert exit_code == 1
        assert server.state == ServerState.STOPPED
        stuck.cancel()
        with pytest.raises(asyncio.CancelledError):
            await stuck

    async def test_forced_shutdown_with_blocking_sync_tool(self, make_server, make_config):
        """Test a sync body blocked past the drain leaves only a daemon thread behind."""
        release = threading.Event()
        threads = []

        def block(arguments, context):
            threads.append(threading.current_thread())
            release.wait(30)
            return {"echo": arguments.text}

        def registry_builder(config):
            return CapabilityRegistry(
                [make_descriptor("block", block)],
                {"workbench": AccessMode.READ_ONLY},
            )

        config = make_config(
            server={"shutdownTimeoutSeconds": 0.05, "toolTimeoutSeconds": 30}
        )
        server = make_server(config=config, registry_builder=registry_builder)
        await server.start()
        stuck = asyncio.create_task(server.dispatcher.invoke("block", {"text": "a"}))
        await wait_until(lambda: len(threads) == 1)

        started = time.monotonic()
        exit_code = await server.shutdown()

        try:
            assert exit_code == 1
            assert time.monotonic() - started < 2
            assert threads[0].daemon is True
        finally:
            stuck.cancel()
            release.set()
        with pytest.raises(asyncio.CancelledError):
            await stuck

    async def test_concurrent_shutdown_calls_share_result(self, make_server):
        server = make_server()
        await server.start()

        results = await asyncio.gather(server.shutdown(), server.shutdown())

        assert results == [0, 0]
        assert await server.shutdown() == 0


@pytest.mark.asyncio
class TestServerRun:
    """Tests for the run loop and its shutdown triggers."""

    async def test_client_disconnect_shuts_down(self, make_server, transport):
        server = make_server()
        run = asyncio.create_task(server.run())
        await wait_until(lambda: server.state == ServerState.RUNNING)

        transport.disconnect()

        assert await run == 0
        assert server.state == ServerState.STOPPED

    async def test_signal_shuts_down(self, make_server, transport):
        """Test the first signal starts shutdown and the second is ignored."""
        server = make_server()
        run = asyncio.create_task(server.run())
        await wait_until(lambda: server.state == ServerState.RUNNING)

        server._on_signal(signal.SIGTERM)
        server._on_signal(signal.SIGINT)

        assert await run == 0
        assert transport.stopped is True

    async def test_transport_failure_exits_with_error(self, make_server, transport):
        server = make_server()
        run = asyncio.create_task(server.run())
        await wait_until(lambda: server.state == ServerState.RUNNING)

        transport.fail(OSError("broken pipe"))

        assert await run == 1
        assert server.state == ServerState.STOPPED

    async def test_startup_failure_propagates_from_run(self, make_server):
        def failing_loader(path):
            raise ConfigError("Invalid configuration", violations=["server.port: bad"])

        server = make_server(config_loader=failing_loader)

        with pytest.raises(ConfigError):
            await server.run()

        assert server.state == ServerState.STOPPED
