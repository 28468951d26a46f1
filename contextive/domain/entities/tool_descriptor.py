from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Type

from pydantic import BaseModel

from ..value_objects.tool_name import ToolName


class AccessMode(Enum):
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"


@dataclass(frozen=True)
class ToolAnnotations:
    """Behavioral hints advertised to clients alongside a tool."""

    read_only: bool = True
    idempotent: bool = False
    destructive: bool = False
    open_world: bool = False


# A tool body receives its validated input model and an InvocationContext.
# It may be a coroutine function or a plain function (run on its own daemon thread).
ToolHandler = Callable[..., Any]


@dataclass(frozen=True)
class ToolDescriptor:
    """Static metadata and entry point for one invocable tool."""

    name: str
    pack: str
    description: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    handler: ToolHandler
    access: AccessMode = AccessMode.READ_ONLY
    annotations: ToolAnnotations = field(default_factory=ToolAnnotations)
    title: Optional[str] = None

    def __post_init__(self) -> None:
        ToolName(self.name)

    @property
    def is_mutating(self) -> bool:
        """Whether the tool can change state outside the server."""
        return self.access == AccessMode.READ_WRITE or self.annotations.destructive

    @property
    def input_schema(self) -> dict:
        return self.input_model.model_json_schema(by_alias=True)

    @property
    def output_schema(self) -> dict:
        return self.output_model.model_json_schema(by_alias=True)
