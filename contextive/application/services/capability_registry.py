"""
Capability Registry.

The authoritative index of which tools exist and are reachable. Tools of a
disabled tool pack are never inserted, so they can be neither listed nor
looked up.
"""

from typing import Any, Dict, List, Sequence, Tuple

import structlog

from contextive.application.interfaces.i_tool_pack import IToolPack, ToolPackContext
from contextive.domain.entities.tool_descriptor import AccessMode, ToolDescriptor
from contextive.domain.exceptions.domain_exceptions import (
    RegistryBuildError,
    ToolNotFoundError,
)

logger = structlog.get_logger()


class CapabilityRegistry:
    """Immutable registry of tool descriptors contributed by enabled packs."""

    def __init__(
        self,
        descriptors: Sequence[ToolDescriptor],
        pack_modes: Dict[str, AccessMode],
    ):
        self._pack_modes = dict(pack_modes)
        pack_order = {name: index for index, name in enumerate(self._pack_modes)}

        tools: Dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.pack not in pack_order:
                raise RegistryBuildError(
                    f"Tool '{descriptor.name}' belongs to unknown or disabled "
                    f"tool pack '{descriptor.pack}'"
                )
            existing = tools.get(descriptor.name)
            if existing is not None:
                raise RegistryBuildError(
                    f"Tool '{descriptor.name}' is declared by both "
                    f"'{existing.pack}' and '{descriptor.pack}' tool packs"
                )
            tools[descriptor.name] = descriptor

        self._ordered: Tuple[ToolDescriptor, ...] = tuple(
            sorted(tools.values(), key=lambda d: (pack_order[d.pack], d.name))
        )
        self._tools = tools

    @classmethod
    def build(cls, config: Any, packs: Sequence[IToolPack]) -> "CapabilityRegistry":
        """Build the registry from the enabled packs of a configuration.

        Packs are consulted in the order given, which is also the listing
        order. A tool name declared twice is a fatal error.

        Raises:
            RegistryBuildError: On a tool name collision
        """
        enabled: List[Tuple[IToolPack, AccessMode]] = []
        for pack in packs:
            pack_config = config.tool_packs.get(pack.name)
            if pack_config is None or not pack_config.enabled:
                logger.debug("Tool pack disabled", pack=pack.name)
                continue
            enabled.append((pack, AccessMode(pack_config.mode)))

        enabled_names = tuple(pack.name for pack, _ in enabled)
        descriptors: List[ToolDescriptor] = []
        for pack, mode in enabled:
            context = ToolPackContext(
                pack_name=pack.name,
                mode=mode,
                config=config,
                enabled_packs=enabled_names,
            )
            contributed = pack.contribute(context)
            logger.info(
                "Tool pack enabled",
                pack=pack.name,
                mode=mode.value,
                tools=len(contributed),
            )
            descriptors.extend(contributed)

        registry = cls(descriptors, {pack.name: mode for pack, mode in enabled})
        logger.info("Capability registry built", tools=len(registry))
        return registry

    def list_tools(self) -> Tuple[ToolDescriptor, ...]:
        """All reachable tools, in pack registration order then name order."""
        return self._ordered

    def lookup(self, name: str) -> ToolDescriptor:
        """Get a descriptor by tool name.

        Raises:
            ToolNotFoundError: If no enabled pack declares the tool
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            raise ToolNotFoundError(f"Tool '{name}' not found", tool_name=name)
        return descriptor

    def enabled_packs(self) -> Tuple[str, ...]:
        return tuple(self._pack_modes)

    def pack_mode(self, pack: str) -> AccessMode:
        return self._pack_modes[pack]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
