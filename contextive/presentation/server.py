"""
Server Lifecycle Manager.

Owns startup sequencing and graceful shutdown:

    Created -> Starting -> Running -> ShuttingDown -> Stopped

Startup loads the configuration, builds the capability registry and binds
the configured transport; any failure aborts before Running. Shutdown is
triggered once (first signal, or the client closing the stream), stops
accepting invocations, drains in-flight ones up to the shutdown timeout and
then stops the transport.
"""

import asyncio
import signal
from typing import Callable, Optional

import structlog

from contextive.application.interfaces.i_transport import ITransport
from contextive.application.services.capability_registry import CapabilityRegistry
from contextive.application.services.tool_dispatcher import ToolDispatcher
from contextive.domain.entities.server_session import ServerSession, ServerState
from contextive.domain.exceptions.domain_exceptions import LifecycleError
from contextive.infrastructure.config.loader import load_config
from contextive.infrastructure.config.schema import ContextiveConfig, ServerConfig
from contextive.infrastructure.config.settings import get_environment_settings
from contextive.infrastructure.logging.setup import configure_logging
from contextive.infrastructure.mcp.transports import create_transport
from contextive.infrastructure.tool_packs import build_registry

logger = structlog.get_logger()

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# How long to wait for the transport to unwind after it was told to stop.
TRANSPORT_CLOSE_TIMEOUT_SECONDS = 2.0


class ContextiveServer:
    """Drives one server process from configuration to exit status."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        *,
        config_loader: Callable[[Optional[str]], ContextiveConfig] = load_config,
        registry_builder: Callable[[ContextiveConfig], CapabilityRegistry] = build_registry,
        transport_factory: Callable[[ServerConfig], ITransport] = create_transport,
        setup_logging: bool = True,
        mode_override: Optional[str] = None,
    ):
        self.config_path = config_path
        self.mode_override = mode_override
        self._config_loader = config_loader
        self._registry_builder = registry_builder
        self._transport_factory = transport_factory
        self._setup_logging = setup_logging

        self.state = ServerState.CREATED
        self.config: Optional[ContextiveConfig] = None
        self.registry: Optional[CapabilityRegistry] = None
        self.session: Optional[ServerSession] = None
        self.dispatcher: Optional[ToolDispatcher] = None
        self.transport: Optional[ITransport] = None
        self.exit_code: Optional[int] = None

        self._serve_task: Optional[asyncio.Task] = None
        self._shutdown_task: Optional[asyncio.Future] = None
        self._shutdown_requested = asyncio.Event()
        self._transport_failed = False
        self._signals_installed = False

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Created -> Starting -> Running.

        Raises:
            LifecycleError: If the server was already started
            DomainError: Any startup failure (configuration, registry,
                transport); the server ends in Stopped, never Running
        """
        if self.state != ServerState.CREATED:
            raise LifecycleError(f"Cannot start a server in state '{self.state.value}'")
        self.state = ServerState.STARTING

        try:
            config = self._config_loader(self.config_path)
            if self.mode_override is not None:
                config = config.with_transport_mode(self.mode_override)
            if self._setup_logging:
                configure_logging(
                    config.server.log_level,
                    json_output=get_environment_settings().is_production,
                )
            registry = self._registry_builder(config)
            session = ServerSession(transport_mode=config.server.mode)
            dispatcher = ToolDispatcher(
                registry,
                session,
                timeout_seconds=config.server.tool_timeout_seconds,
            )
            transport = self._transport_factory(config.server)
            transport.bind(registry, dispatcher)
        except BaseException:
            self.state = ServerState.STOPPED
            self.exit_code = 1
            raise

        self.config = config
        self.registry = registry
        self.session = session
        self.dispatcher = dispatcher
        self.transport = transport

        logger.info(
            "Starting Contextive MCP server",
            mode=config.server.mode,
            tools=len(registry),
            tool_packs=list(registry.enabled_packs()),
        )
        self._serve_task = asyncio.create_task(transport.serve())
        self.state = ServerState.RUNNING

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self, reason: str = "requested") -> bool:
        """Running -> ShuttingDown. Only the first request has an effect.

        Returns:
            True if this call initiated shutdown, False if it was ignored
        """
        if self.state != ServerState.RUNNING:
            logger.info(
                "Shutdown request ignored",
                reason=reason,
                state=self.state.value,
            )
            return False

        self.state = ServerState.SHUTTING_DOWN
        self.session.begin_shutdown()
        self._shutdown_requested.set()
        logger.info("Shutting down", reason=reason, in_flight=self.session.in_flight)
        return True

    async def shutdown(self) -> int:
        """ShuttingDown -> Stopped. Returns the process exit status.

        Waits for in-flight invocations up to the shutdown timeout, then
        stops the transport regardless of outstanding work. Concurrent
        callers share the same drain.
        """
        if self._shutdown_task is None:
            if self.state == ServerState.STOPPED and self.exit_code is not None:
                return self.exit_code
            if self.state == ServerState.RUNNING:
                self.request_shutdown("shutdown")
            if self.state != ServerState.SHUTTING_DOWN:
                raise LifecycleError(
                    f"Cannot shut down a server in state '{self.state.value}'"
                )
            self._shutdown_task = asyncio.ensure_future(self._drain_and_stop())
        return await asyncio.shield(self._shutdown_task)

    async def _drain_and_stop(self) -> int:
        timeout = self.config.server.shutdown_timeout_seconds
        drained = await self.session.wait_idle(timeout)

        exit_code = 0
        if not drained:
            logger.error(
                "ShutdownTimeout: forcing termination",
                abandoned=self.session.in_flight,
                timeout_seconds=timeout,
            )
            exit_code = 1
        if self._transport_failed:
            exit_code = 1

        await self.transport.stop()
        await self._wait_transport_closed()

        self.state = ServerState.STOPPED
        self.exit_code = exit_code
        logger.info("Contextive MCP server stopped", exit_code=exit_code)
        return exit_code

    async def _wait_transport_closed(self) -> None:
        task = self._serve_task
        if task is None:
            return
        if not task.done():
            await asyncio.wait({task}, timeout=TRANSPORT_CLOSE_TIMEOUT_SECONDS)
        if not task.done():
            logger.warning("Transport did not close in time, cancelling")
            task.cancel()
            await asyncio.wait({task}, timeout=TRANSPORT_CLOSE_TIMEOUT_SECONDS)
            return
        if not task.cancelled() and task.exception() is not None and not self._transport_failed:
            logger.error("Transport failed during shutdown", error=str(task.exception()))

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Start, serve until a shutdown trigger, shut down. Returns exit status."""
        await self.start()
        self._install_signal_handlers()
        try:
            await self._wait_for_shutdown_trigger()
            return await self.shutdown()
        finally:
            self._remove_signal_handlers()

    async def _wait_for_shutdown_trigger(self) -> None:
        waiter = asyncio.create_task(self._shutdown_requested.wait())
        try:
            await asyncio.wait(
                {waiter, self._serve_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()

        if self._shutdown_requested.is_set():
            return

        # The transport ended on its own: client went away or it crashed.
        task = self._serve_task
        if not task.cancelled() and task.exception() is not None:
            self._transport_failed = True
            logger.error("Transport failed", error=str(task.exception()))
            self.request_shutdown("transport failed")
        else:
            self.request_shutdown("client disconnected")

    def _on_signal(self, sig: signal.Signals) -> None:
        # A second signal during shutdown is ignored by request_shutdown.
        self.request_shutdown(f"received {sig.name}")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            for sig in SHUTDOWN_SIGNALS:
                loop.add_signal_handler(sig, self._on_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread
            logger.debug("Signal handlers unavailable")
            return
        self._signals_installed = True

    def _remove_signal_handlers(self) -> None:
        if not self._signals_installed:
            return
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        self._signals_installed = False


def create_server(config_path: Optional[str] = None) -> ContextiveServer:
    """Create a server wired with the default loader, tool packs and transports."""
    return ContextiveServer(config_path)
