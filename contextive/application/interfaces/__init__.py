from .i_tool_pack import IToolPack, ToolPackContext
from .i_transport import IInvocationHandler, IToolCatalog, ITransport

__all__ = [
    "IToolPack",
    "ToolPackContext",
    "IInvocationHandler",
    "IToolCatalog",
    "ITransport",
]
