from .capability_registry import CapabilityRegistry
from .tool_dispatcher import DEFAULT_TOOL_TIMEOUT_SECONDS, ToolDispatcher
from .validation import format_violations

__all__ = [
    "CapabilityRegistry",
    "DEFAULT_TOOL_TIMEOUT_SECONDS",
    "ToolDispatcher",
    "format_violations",
]
