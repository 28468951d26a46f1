from abc import ABC, abstractmethod
from typing import Optional, Protocol, Sequence

from contextive.domain.entities.invocation import InvocationOutcome
from contextive.domain.entities.tool_descriptor import ToolDescriptor


class IToolCatalog(Protocol):
    """Source of the tool listing a transport advertises."""

    def list_tools(self) -> Sequence[ToolDescriptor]:
        ...


class IInvocationHandler(Protocol):
    """Entry point a transport hands decoded tool calls to."""

    async def invoke(
        self,
        name: str,
        arguments: Optional[dict],
        correlation_id: Optional[str] = None,
    ) -> InvocationOutcome:
        ...


class ITransport(ABC):
    """Interface for the channel carrying protocol messages to one or more clients.

    Implementations own message framing and request correlation (delegated to
    the MCP SDK); they only hand decoded tool calls to the invocation handler
    and send its outcome back to the originating client.
    """

    mode: str

    @abstractmethod
    def bind(self, catalog: IToolCatalog, handler: IInvocationHandler) -> None:
        """Attach the tool catalog and invocation handler."""
        pass

    @abstractmethod
    async def serve(self) -> None:
        """Deliver messages until the client disconnects or stop() is called."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop delivering messages."""
        pass
