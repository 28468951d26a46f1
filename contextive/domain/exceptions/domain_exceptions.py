from typing import List, Optional


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    pass


# ============================================================================
# Startup errors (fatal)
# ============================================================================


class ConfigError(DomainError):
    """Raised when configuration cannot be located, parsed, resolved or validated."""

    def __init__(self, message: str, violations: Optional[List[str]] = None):
        super().__init__(message)
        self.violations: List[str] = list(violations or [])

    def __str__(self) -> str:
        message = super().__str__()
        if not self.violations:
            return message
        details = "\n".join(f"  - {violation}" for violation in self.violations)
        return f"{message}\n{details}"


class RegistryBuildError(DomainError):
    """Raised when two tools claim the same name while building the registry."""

    pass


class TransportNotSupportedError(DomainError):
    """Raised when the configured transport mode has no implementation."""

    pass


class LifecycleError(DomainError):
    """Raised on an illegal server lifecycle transition."""

    pass


class InvalidToolNameError(DomainError):
    """Raised when a tool name does not follow the MCP naming rules."""

    pass


# ============================================================================
# Per-invocation errors (reported to the client, never fatal)
# ============================================================================


class InvocationError(DomainError):
    """Base exception for failures scoped to a single tool invocation."""

    code = "InvocationError"

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        details: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name
        self.details: List[str] = list(details or [])


class ToolNotFoundError(InvocationError):
    """Raised when a requested tool is not in the registry."""

    code = "ToolNotFound"


class InvalidArgumentsError(InvocationError):
    """Raised when invocation arguments violate the tool's input schema."""

    code = "InvalidArguments"


class AccessDeniedError(InvocationError):
    """Raised when a mutating tool is called through a read-only tool pack."""

    code = "AccessDenied"


class ToolTimeoutError(InvocationError):
    """Raised when a tool body does not finish within the invocation timeout."""

    code = "Timeout"


class InvalidToolOutputError(InvocationError):
    """Raised when a tool returns data that violates its output schema."""

    code = "InvalidToolOutput"


class ToolExecutionFailedError(InvocationError):
    """Raised when a tool body raises an unexpected exception."""

    code = "ToolExecutionFailed"


class ServerShuttingDownError(InvocationError):
    """Raised when an invocation arrives after shutdown has begun."""

    code = "ServerShuttingDown"
