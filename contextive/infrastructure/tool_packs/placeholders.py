"""
Filesystem and HTTP tool packs.

Both packs can be enabled in configuration but do not contribute tools yet.
"""

from typing import List

import structlog

from contextive.application.interfaces.i_tool_pack import IToolPack, ToolPackContext
from contextive.domain.entities.tool_descriptor import ToolDescriptor

logger = structlog.get_logger()


class FilesystemToolPack(IToolPack):
    name = "fs"

    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        logger.info("Filesystem tool pack enabled (not yet implemented)", mode=context.mode.value)
        return []


class HttpToolPack(IToolPack):
    name = "http"

    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        logger.info("HTTP tool pack enabled (not yet implemented)", mode=context.mode.value)
        return []
