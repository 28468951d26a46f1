from typing import List, Optional

from pydantic import BaseModel

from contextive.domain.entities.invocation import ToolError


class ToolErrorDTO(BaseModel):
    """DTO describing why the dispatcher rejected or aborted an invocation."""

    code: str
    message: str
    tool: str
    details: List[str] = []


class ToolErrorResponse(BaseModel):
    """Error object returned to the client in place of a tool result."""

    error: ToolErrorDTO
    correlation_id: Optional[str] = None

    @classmethod
    def from_error(cls, error: ToolError) -> "ToolErrorResponse":
        return cls(
            error=ToolErrorDTO(
                code=error.code,
                message=error.message,
                tool=error.tool_name,
                details=list(error.details),
            ),
            correlation_id=error.correlation_id,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "error": {
                    "code": "InvalidArguments",
                    "message": "Invalid arguments for tool 'read_file'",
                    "tool": "read_file",
                    "details": ["path: Field required"],
                },
                "correlation_id": "7",
            }
        }
