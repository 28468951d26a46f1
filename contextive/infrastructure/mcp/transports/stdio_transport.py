"""
stdio transport for MCP.

Binds the low-level MCP server from the SDK to the process's standard input
and output. The SDK owns framing, request correlation and the initialization
handshake; this adapter answers list-tools from the tool catalog and hands
call-tool requests to the invocation handler.

Usage:
    transport = StdioTransport()
    transport.bind(registry, dispatcher)
    await transport.serve()
"""

import json
from typing import Any, List, Optional

import anyio
import mcp.types as types
import structlog
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.stdio import stdio_server

from contextive import SERVER_NAME, __version__
from contextive.application.dtos.invocation_dtos import ToolErrorResponse
from contextive.application.interfaces.i_transport import (
    IInvocationHandler,
    IToolCatalog,
    ITransport,
)
from contextive.domain.entities.invocation import ToolError
from contextive.domain.entities.tool_descriptor import ToolDescriptor

logger = structlog.get_logger()


class ToolCallRejected(Exception):
    """Raised inside the call-tool handler so the SDK answers with ``isError``.

    The message is the JSON error object the client receives as text content.
    """

    pass


def to_mcp_tool(descriptor: ToolDescriptor) -> types.Tool:
    """Convert a ToolDescriptor to its MCP wire representation."""
    annotations = descriptor.annotations
    return types.Tool(
        name=descriptor.name,
        title=descriptor.title,
        description=descriptor.description,
        inputSchema=descriptor.input_schema,
        outputSchema=descriptor.output_schema,
        annotations=types.ToolAnnotations(
            title=descriptor.title,
            readOnlyHint=annotations.read_only,
            destructiveHint=annotations.destructive,
            idempotentHint=annotations.idempotent,
            openWorldHint=annotations.open_world,
        ),
    )


class StdioTransport(ITransport):
    """Single-client transport over standard input/output."""

    mode = "stdio"

    def __init__(self, server_name: str = SERVER_NAME, version: str = __version__):
        self.server = Server(server_name, version=version)
        self._catalog: Optional[IToolCatalog] = None
        self._handler: Optional[IInvocationHandler] = None
        self._cancel_scope: Optional[anyio.CancelScope] = None
        self._stopped = False

    def bind(self, catalog: IToolCatalog, handler: IInvocationHandler) -> None:
        self._catalog = catalog
        self._handler = handler
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register MCP handlers."""

        @self.server.list_tools()
        async def list_tools() -> List[types.Tool]:
            return [to_mcp_tool(descriptor) for descriptor in self._catalog.list_tools()]

        # Argument validation belongs to the dispatcher, which reports
        # violations in its own error format.
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> Any:
            return await self.handle_call(name, arguments)

    def _request_id(self) -> Optional[str]:
        try:
            return str(self.server.request_context.request_id)
        except LookupError:
            return None

    async def handle_call(self, name: str, arguments: Optional[dict]) -> Any:
        """Dispatch one decoded call-tool request.

        Returns (content, structured_content) on success and raises
        ToolCallRejected for dispatcher errors and tool-reported failures.
        """
        outcome = await self._handler.invoke(
            name, arguments or {}, correlation_id=self._request_id()
        )

        if isinstance(outcome, ToolError):
            raise ToolCallRejected(ToolErrorResponse.from_error(outcome).model_dump_json())
        if outcome.is_error:
            raise ToolCallRejected(json.dumps(outcome.content))

        text = json.dumps(outcome.content, indent=2)
        return [types.TextContent(type="text", text=text)], outcome.content

    async def serve(self) -> None:
        """Run the MCP server until stdin closes or stop() is called."""
        if self._handler is None:
            raise RuntimeError("Transport must be bound before serving")
        if self._stopped:
            return

        with anyio.CancelScope() as scope:
            self._cancel_scope = scope
            async with stdio_server() as (read_stream, write_stream):
                logger.info("Contextive MCP server connected via stdio")
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
        logger.info("stdio transport closed")

    async def stop(self) -> None:
        self._stopped = True
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()
