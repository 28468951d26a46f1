import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from .server_session import ServerSession


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ToolInvocation:
    """A single request to execute a named tool."""

    tool_name: str
    arguments: dict
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    received_at: datetime = field(default_factory=_utc_now)


class CancellationToken:
    """Cooperative cancellation signal shared between dispatcher and tool body.

    Backed by a threading.Event so synchronous tool bodies running on worker
    threads can observe it as well as coroutines.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError()


@dataclass
class InvocationContext:
    """Everything a tool body may consult while it runs."""

    invocation: ToolInvocation
    cancellation: CancellationToken
    session: "ServerSession"

    @property
    def correlation_id(self) -> str:
        return self.invocation.correlation_id


@dataclass(frozen=True)
class ToolFailure:
    """An application-level failure a tool reports on purpose.

    Returning this from a tool body yields an error result without tripping
    output schema validation.
    """

    message: str
    details: Optional[dict] = None


@dataclass(frozen=True)
class ToolResult:
    """Outcome of an invocation whose tool body ran to completion."""

    tool_name: str
    correlation_id: str
    content: dict
    is_error: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return not self.is_error


@dataclass(frozen=True)
class ToolError:
    """Outcome of an invocation rejected or aborted by the dispatcher."""

    code: str
    message: str
    tool_name: str
    correlation_id: str
    details: List[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return False


InvocationOutcome = Union[ToolResult, ToolError]
