from .invocation_dtos import ToolErrorDTO, ToolErrorResponse

__all__ = [
    "ToolErrorDTO",
    "ToolErrorResponse",
]
