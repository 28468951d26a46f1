"""
Introspection tool pack.

Always enabled unless a configuration turns it off explicitly. Both tools are
read-only, idempotent and closed-world.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from contextive import SERVER_NAME, __version__
from contextive.application.interfaces.i_tool_pack import IToolPack, ToolPackContext
from contextive.domain.entities.invocation import InvocationContext
from contextive.domain.entities.tool_descriptor import ToolAnnotations, ToolDescriptor

logger = structlog.get_logger()

INTROSPECTION_ANNOTATIONS = ToolAnnotations(
    read_only=True,
    idempotent=True,
    destructive=False,
    open_world=False,
)


class NoArguments(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ServerInfoOutput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    version: str
    mode: str
    enabled_tool_packs: List[str]
    provider_count: int


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthOutput(BaseModel):
    status: HealthStatus
    timestamp: str


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class IntrospectToolPack(IToolPack):
    """Tools for debugging and discovering the server itself."""

    name = "introspect"

    def contribute(self, context: ToolPackContext) -> List[ToolDescriptor]:
        config = context.config
        enabled_packs = list(context.enabled_packs)

        async def server_info(
            arguments: NoArguments, invocation: InvocationContext
        ) -> ServerInfoOutput:
            logger.debug("server_info called", correlation_id=invocation.correlation_id)
            return ServerInfoOutput(
                name=SERVER_NAME,
                version=__version__,
                mode=config.server.mode,
                enabled_tool_packs=enabled_packs,
                provider_count=len(config.providers),
            )

        async def health(
            arguments: NoArguments, invocation: InvocationContext
        ) -> HealthOutput:
            logger.debug("health called", correlation_id=invocation.correlation_id)
            status = HealthStatus.HEALTHY
            if invocation.session.is_shutting_down:
                status = HealthStatus.DEGRADED
            return HealthOutput(status=status, timestamp=_utc_timestamp())

        return [
            ToolDescriptor(
                name="server_info",
                pack=self.name,
                title="Server Info",
                description=(
                    "Returns information about the Contextive MCP server including "
                    "version, enabled tool packs, and configuration summary."
                ),
                input_model=NoArguments,
                output_model=ServerInfoOutput,
                handler=server_info,
                annotations=INTROSPECTION_ANNOTATIONS,
            ),
            ToolDescriptor(
                name="health",
                pack=self.name,
                title="Health Check",
                description="Returns the health status of the Contextive MCP server.",
                input_model=NoArguments,
                output_model=HealthOutput,
                handler=health,
                annotations=INTROSPECTION_ANNOTATIONS,
            ),
        ]
