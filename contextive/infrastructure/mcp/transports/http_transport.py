"""
Network listener transport for MCP.

Declared so configuration can select it, but not implemented yet: binding it
fails at startup. When implemented it must serve several concurrent client
sessions, each counted in the server session's in-flight invocations.
"""

from typing import Optional

from contextive.application.interfaces.i_transport import (
    IInvocationHandler,
    IToolCatalog,
    ITransport,
)
from contextive.domain.exceptions.domain_exceptions import TransportNotSupportedError


class HttpTransport(ITransport):
    mode = "http"

    def __init__(self, port: Optional[int] = None):
        self.port = port

    def bind(self, catalog: IToolCatalog, handler: IInvocationHandler) -> None:
        raise TransportNotSupportedError("HTTP mode not yet implemented")

    async def serve(self) -> None:
        raise TransportNotSupportedError("HTTP mode not yet implemented")

    async def stop(self) -> None:
        return None
