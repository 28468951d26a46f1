"""
Configuration schema for the Contextive MCP server.

The file format uses camelCase keys; models expose snake_case attributes and
accept either spelling. Every model is frozen: a configuration is built once
at startup and shared read-only afterwards.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic.alias_generators import to_camel

TransportMode = Literal["stdio", "http"]
LogLevel = Literal["trace", "debug", "info", "warn", "error"]
PackMode = Literal["read-only", "read-write"]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ServerConfig(_ConfigModel):
    """Server section: transport, logging and timeouts."""

    mode: TransportMode = "stdio"
    log_level: LogLevel = "info"
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    tool_timeout_seconds: float = Field(default=30.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=10.0, gt=0)


class ProviderConfig(_ConfigModel):
    """Credentials for one AI provider. ``apiKey`` usually comes from ``$ENV_VAR``."""

    api_key: str = Field(min_length=1)
    default_model: Optional[str] = None
    base_url: Optional[HttpUrl] = None


class ToolPackConfig(_ConfigModel):
    enabled: bool = False
    mode: PackMode = "read-only"


class ToolPacksConfig(_ConfigModel):
    """Known tool packs. Unknown pack names are rejected."""

    model_config = ConfigDict(extra="forbid")

    introspect: ToolPackConfig = ToolPackConfig(enabled=True)
    fs: ToolPackConfig = ToolPackConfig()
    http: ToolPackConfig = ToolPackConfig()

    def get(self, name: str) -> Optional[ToolPackConfig]:
        if name not in type(self).model_fields:
            return None
        return getattr(self, name)


class ContextiveConfig(_ConfigModel):
    """Complete Contextive configuration."""

    server: ServerConfig = ServerConfig()
    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)
    tool_packs: ToolPacksConfig = ToolPacksConfig()
    workflows: Dict[str, Any] = Field(default_factory=dict)

    @property
    def enabled_tool_packs(self) -> list[str]:
        return [
            name
            for name in type(self.tool_packs).model_fields
            if self.tool_packs.get(name).enabled
        ]

    def with_transport_mode(self, mode: TransportMode) -> "ContextiveConfig":
        """Copy of this configuration with another transport mode."""
        return self.model_copy(
            update={"server": self.server.model_copy(update={"mode": mode})}
        )
