from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from contextive.domain.entities.tool_descriptor import AccessMode, ToolDescriptor


@dataclass(frozen=True)
class ToolPackContext:
    """Read-only view handed to a tool pack while it contributes tools."""

    pack_name: str
    mode: AccessMode
    config: Any
    enabled_packs: Tuple[str, ...] = field(default_factory=tuple)


class IToolPack(ABC):
    """Interface for a named, independently enable-able bundle of tools.

    The set of packs is fixed at build time; adding a pack means adding a
    new implementation of this interface to the known pack list.
    """

    name: str

    @abstractmethod
    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        """Enumerate the descriptors this pack exposes."""
        pass
