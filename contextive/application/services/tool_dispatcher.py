"""
Tool Invocation Dispatcher.

Turns a decoded tool call into a ToolResult or a ToolError:

1. Look up the descriptor
2. Validate arguments against the input schema
3. Enforce the owning pack's access mode
4. Run the tool body under a timeout with a cancellation token
5. Validate the output against the output schema

Every failure along the way is raised as an InvocationError and converted to
a ToolError at the boundary of ``invoke``, so one tool's failure never
escapes into the transport or affects other invocations.
"""

import asyncio
import contextvars
import inspect
import threading
import time
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, ValidationError

from contextive.application.services.capability_registry import CapabilityRegistry
from contextive.application.services.validation import format_violations
from contextive.domain.entities.invocation import (
    CancellationToken,
    InvocationContext,
    InvocationOutcome,
    ToolError,
    ToolFailure,
    ToolInvocation,
    ToolResult,
)
from contextive.domain.entities.server_session import ServerSession
from contextive.domain.entities.tool_descriptor import AccessMode, ToolDescriptor
from contextive.domain.exceptions.domain_exceptions import (
    AccessDeniedError,
    InvalidArgumentsError,
    InvalidToolOutputError,
    InvocationError,
    ServerShuttingDownError,
    ToolExecutionFailedError,
    ToolTimeoutError,
)

logger = structlog.get_logger()

DEFAULT_TOOL_TIMEOUT_SECONDS = 30.0


def _discard_result(task: "asyncio.Future[Any]") -> None:
    # Retrieve the exception of an abandoned task so asyncio does not log it.
    if not task.cancelled():
        task.exception()


def _run_in_daemon_thread(
    func: Callable[..., Any], *args: Any, name: str
) -> "asyncio.Future[Any]":
    """Run a blocking callable on its own daemon thread.

    Unlike the loop's default executor, nothing joins these threads when the
    loop or the interpreter shuts down, so a tool body abandoned after a
    timeout cannot keep the process alive.
    """
    loop = asyncio.get_running_loop()
    future: "asyncio.Future[Any]" = loop.create_future()
    log_context = contextvars.copy_context()

    def deliver(outcome: Any, failed: bool) -> None:
        if future.done():
            return
        if failed:
            future.set_exception(outcome)
        else:
            future.set_result(outcome)

    def target() -> None:
        try:
            outcome, failed = log_context.run(func, *args), False
        except Exception as exc:
            outcome, failed = exc, True
        try:
            loop.call_soon_threadsafe(deliver, outcome, failed)
        except RuntimeError:
            # The loop closed while the body was still running.
            logger.debug("Abandoned tool body finished after loop closed", thread=name)

    threading.Thread(target=target, name=name, daemon=True).start()
    return future


class ToolDispatcher:
    """Executes tool invocations against a CapabilityRegistry.

    Safe to call concurrently; the only shared mutable state is the
    session's in-flight counter.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        session: ServerSession,
        timeout_seconds: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
    ):
        self.registry = registry
        self.session = session
        self.timeout_seconds = timeout_seconds

    async def invoke(
        self,
        name: str,
        arguments: Optional[dict],
        correlation_id: Optional[str] = None,
    ) -> InvocationOutcome:
        """Run one tool invocation and report its outcome.

        Never raises for per-invocation failures; only cancellation of the
        caller propagates.
        """
        fields: dict[str, Any] = {"tool_name": name, "arguments": dict(arguments or {})}
        if correlation_id is not None:
            fields["correlation_id"] = correlation_id
        invocation = ToolInvocation(**fields)
        log = logger.bind(tool=name, correlation_id=invocation.correlation_id)
        started = time.monotonic()

        if not self.session.try_acquire():
            log.info("Invocation rejected, server is shutting down")
            return self._to_error(
                ServerShuttingDownError(
                    "Server is shutting down and no longer accepts invocations",
                    tool_name=name,
                ),
                invocation,
                started,
            )

        try:
            log.debug("Tool invocation started", in_flight=self.session.in_flight)
            result = await self._execute(invocation)
        except InvocationError as exc:
            outcome = self._to_error(exc, invocation, started)
            log.warning(
                "Tool invocation failed",
                code=outcome.code,
                error=outcome.message,
                duration_ms=outcome.duration_ms,
            )
            return outcome
        finally:
            self.session.release()

        result = ToolResult(
            tool_name=result.tool_name,
            correlation_id=result.correlation_id,
            content=result.content,
            is_error=result.is_error,
            duration_ms=self._elapsed_ms(started),
        )
        log.info(
            "Tool invocation completed",
            is_error=result.is_error,
            duration_ms=result.duration_ms,
        )
        return result

    async def _execute(self, invocation: ToolInvocation) -> ToolResult:
        descriptor = self.registry.lookup(invocation.tool_name)
        arguments = self._validate_arguments(descriptor, invocation.arguments)
        self._check_access(descriptor)

        output = await self._run_with_timeout(descriptor, arguments, invocation)

        if isinstance(output, ToolFailure):
            content = {"message": output.message}
            if output.details is not None:
                content["details"] = output.details
            return ToolResult(
                tool_name=descriptor.name,
                correlation_id=invocation.correlation_id,
                content=content,
                is_error=True,
            )

        return ToolResult(
            tool_name=descriptor.name,
            correlation_id=invocation.correlation_id,
            content=self._validate_output(descriptor, output),
        )

    def _validate_arguments(self, descriptor: ToolDescriptor, arguments: dict) -> BaseModel:
        try:
            return descriptor.input_model.model_validate(arguments)
        except ValidationError as exc:
            raise InvalidArgumentsError(
                f"Invalid arguments for tool '{descriptor.name}'",
                tool_name=descriptor.name,
                details=format_violations(exc),
            ) from exc

    def _check_access(self, descriptor: ToolDescriptor) -> None:
        # Pack-wide policy: a read-only pack never runs a mutating tool,
        # whatever the tool body itself would do.
        mode = self.registry.pack_mode(descriptor.pack)
        if mode == AccessMode.READ_ONLY and descriptor.is_mutating:
            raise AccessDeniedError(
                f"Tool '{descriptor.name}' modifies state but tool pack "
                f"'{descriptor.pack}' is configured read-only",
                tool_name=descriptor.name,
            )

    async def _run_with_timeout(
        self,
        descriptor: ToolDescriptor,
        arguments: BaseModel,
        invocation: ToolInvocation,
    ) -> Any:
        token = CancellationToken()
        context = InvocationContext(
            invocation=invocation,
            cancellation=token,
            session=self.session,
        )
        task = asyncio.ensure_future(self._call_handler(descriptor, arguments, context))

        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            token.cancel()
            task.cancel()
            task.add_done_callback(_discard_result)
            raise

        if task not in done:
            token.cancel()
            task.cancel()
            task.add_done_callback(_discard_result)
            raise ToolTimeoutError(
                f"Tool '{descriptor.name}' did not complete within "
                f"{self.timeout_seconds:g}s",
                tool_name=descriptor.name,
            )

        try:
            return task.result()
        except asyncio.CancelledError as exc:
            raise ToolExecutionFailedError(
                f"Tool '{descriptor.name}' was cancelled",
                tool_name=descriptor.name,
            ) from exc
        except Exception as exc:
            logger.exception(
                "Tool body raised",
                tool=descriptor.name,
                correlation_id=invocation.correlation_id,
            )
            raise ToolExecutionFailedError(
                f"Tool '{descriptor.name}' failed: {exc}",
                tool_name=descriptor.name,
                details=[type(exc).__name__],
            ) from exc

    async def _call_handler(
        self,
        descriptor: ToolDescriptor,
        arguments: BaseModel,
        context: InvocationContext,
    ) -> Any:
        handler = descriptor.handler
        if inspect.iscoroutinefunction(handler):
            return await handler(arguments, context)
        # Plain functions may block, keep them off the event loop.
        result = await _run_in_daemon_thread(
            handler, arguments, context, name=f"tool-{descriptor.name}"
        )
        if inspect.isawaitable(result):
            return await result
        return result

    def _validate_output(self, descriptor: ToolDescriptor, output: Any) -> dict:
        if isinstance(output, BaseModel):
            output = output.model_dump(by_alias=True)
        try:
            validated = descriptor.output_model.model_validate(output)
        except ValidationError as exc:
            raise InvalidToolOutputError(
                f"Tool '{descriptor.name}' returned output that does not match "
                "its declared schema",
                tool_name=descriptor.name,
                details=format_violations(exc),
            ) from exc
        return validated.model_dump(mode="json", by_alias=True)

    def _to_error(
        self,
        exc: InvocationError,
        invocation: ToolInvocation,
        started: float,
    ) -> ToolError:
        return ToolError(
            code=exc.code,
            message=exc.message,
            tool_name=exc.tool_name or invocation.tool_name,
            correlation_id=invocation.correlation_id,
            details=exc.details,
            duration_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
