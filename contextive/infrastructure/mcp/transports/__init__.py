from contextive.application.interfaces.i_transport import ITransport
from contextive.domain.exceptions.domain_exceptions import TransportNotSupportedError
from contextive.infrastructure.config.schema import ServerConfig

from .http_transport import HttpTransport
from .stdio_transport import StdioTransport, ToolCallRejected, to_mcp_tool


def create_transport(server_config: ServerConfig) -> ITransport:
    """Create the transport selected by the server configuration."""
    if server_config.mode == "stdio":
        return StdioTransport()
    if server_config.mode == "http":
        return HttpTransport(port=server_config.port)
    raise TransportNotSupportedError(f"Unknown transport mode: {server_config.mode}")


__all__ = [
    "create_transport",
    "HttpTransport",
    "StdioTransport",
    "ToolCallRejected",
    "to_mcp_tool",
]
