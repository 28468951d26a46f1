from .tool_descriptor import AccessMode, ToolAnnotations, ToolDescriptor, ToolHandler
from .invocation import (
    CancellationToken,
    InvocationContext,
    InvocationOutcome,
    ToolError,
    ToolFailure,
    ToolInvocation,
    ToolResult,
)
from .server_session import ServerSession, ServerState

__all__ = [
    "AccessMode",
    "ToolAnnotations",
    "ToolDescriptor",
    "ToolHandler",
    "CancellationToken",
    "InvocationContext",
    "InvocationOutcome",
    "ToolError",
    "ToolFailure",
    "ToolInvocation",
    "ToolResult",
    "ServerSession",
    "ServerState",
]
