from .domain_exceptions import (
    DomainError,
    ConfigError,
    RegistryBuildError,
    TransportNotSupportedError,
    LifecycleError,
    InvalidToolNameError,
    InvocationError,
    ToolNotFoundError,
    InvalidArgumentsError,
    AccessDeniedError,
    ToolTimeoutError,
    InvalidToolOutputError,
    ToolExecutionFailedError,
    ServerShuttingDownError,
)

__all__ = [
    "DomainError",
    "ConfigError",
    "RegistryBuildError",
    "TransportNotSupportedError",
    "LifecycleError",
    "InvalidToolNameError",
    "InvocationError",
    "ToolNotFoundError",
    "InvalidArgumentsError",
    "AccessDeniedError",
    "ToolTimeoutError",
    "InvalidToolOutputError",
    "ToolExecutionFailedError",
    "ServerShuttingDownError",
]
