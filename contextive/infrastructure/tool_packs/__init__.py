from typing import Sequence, Tuple

from contextive.application.interfaces.i_tool_pack import IToolPack
from contextive.application.services.capability_registry import CapabilityRegistry
from contextive.infrastructure.config.schema import ContextiveConfig

from .introspect import IntrospectToolPack
from .placeholders import FilesystemToolPack, HttpToolPack

# Registration order is also the tool listing order.
DEFAULT_TOOL_PACKS: Tuple[IToolPack, ...] = (
    IntrospectToolPack(),
    FilesystemToolPack(),
    HttpToolPack(),
)


def build_registry(
    config: ContextiveConfig,
    packs: Sequence[IToolPack] = DEFAULT_TOOL_PACKS,
) -> CapabilityRegistry:
    """Build the capability registry from the known tool packs."""
    return CapabilityRegistry.build(config, packs)


__all__ = [
    "DEFAULT_TOOL_PACKS",
    "build_registry",
    "IntrospectToolPack",
    "FilesystemToolPack",
    "HttpToolPack",
]
