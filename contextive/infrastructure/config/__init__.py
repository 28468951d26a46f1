from .loader import DEFAULT_CONFIG_FILENAME, load_config, resolve_env_references
from .schema import (
    ContextiveConfig,
    ProviderConfig,
    ServerConfig,
    ToolPackConfig,
    ToolPacksConfig,
)
from .settings import EnvironmentSettings, get_environment_settings

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "load_config",
    "resolve_env_references",
    "ContextiveConfig",
    "ProviderConfig",
    "ServerConfig",
    "ToolPackConfig",
    "ToolPacksConfig",
    "EnvironmentSettings",
    "get_environment_settings",
]
