from .tool_name import ToolName

__all__ = ["ToolName"]
