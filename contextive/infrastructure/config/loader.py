"""
Configuration loader.

Resolution order, first match wins:

1. Explicit path argument
2. ``CONTEXTIVE_CONFIG`` environment variable
3. ``contextive.config.json`` in the working directory
4. Built-in defaults

An explicit or environment path that does not exist is an error; a missing
default file silently falls through to the built-in defaults. Only JSON
files are accepted.

String values may reference environment variables as ``$NAME`` or
``${NAME}``. References are resolved before validation and an undefined
variable is an error rather than an empty substitution.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional, Set

import structlog
from pydantic import ValidationError

from contextive.application.services.validation import format_violations
from contextive.domain.exceptions.domain_exceptions import ConfigError
from contextive.infrastructure.config.schema import ContextiveConfig
from contextive.infrastructure.config.settings import get_environment_settings

logger = structlog.get_logger()

DEFAULT_CONFIG_FILENAME = "contextive.config.json"

ENV_REFERENCE_PATTERN = re.compile(
    r"\$(?:\{(?P<braced>[A-Z_][A-Z0-9_]*)\}|(?P<bare>[A-Z_][A-Z0-9_]*))"
)


def resolve_env_references(
    value: Any,
    environ: Optional[Mapping[str, str]] = None,
) -> Any:
    """Deep-resolve ``$NAME`` / ``${NAME}`` references in string leaves.

    Mapping keys are left untouched. Every undefined variable in the tree is
    collected before failing.

    Raises:
        ConfigError: If any referenced variable is not defined
    """
    env = os.environ if environ is None else environ
    missing: Set[str] = set()

    def substitute(match: re.Match) -> str:
        name = match.group("braced") or match.group("bare")
        if name not in env:
            missing.add(name)
            return match.group(0)
        return env[name]

    def walk(node: Any) -> Any:
        if isinstance(node, str):
            return ENV_REFERENCE_PATTERN.sub(substitute, node)
        if isinstance(node, list):
            return [walk(item) for item in node]
        if isinstance(node, dict):
            return {key: walk(item) for key, item in node.items()}
        return node

    resolved = walk(value)
    if missing:
        raise ConfigError(
            "Configuration references undefined environment variables",
            violations=[
                f'Environment variable "{name}" is not defined but is '
                "referenced in configuration"
                for name in sorted(missing)
            ],
        )
    return resolved


def _resolve_config_path(explicit_path: Optional[str]) -> Optional[Path]:
    if explicit_path:
        path = Path(explicit_path)
        if not path.is_file():
            raise ConfigError(f"Configuration file not found at argument path: {path}")
        return path

    env_path = get_environment_settings().config_path
    if env_path:
        path = Path(env_path)
        if not path.is_file():
            raise ConfigError(
                f"Configuration file not found at environment path "
                f"(CONTEXTIVE_CONFIG): {path}"
            )
        return path

    default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if default_path.is_file():
        return default_path
    return None


def _read_json(path: Path) -> dict:
    if path.suffix.lower() != ".json":
        raise ConfigError(f"Only JSON configuration files are supported. Got: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Configuration file {path} is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed JSON in configuration file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Configuration file {path} must contain a JSON object at the top level"
        )
    return raw


def load_config(config_path: Optional[str] = None) -> ContextiveConfig:
    """Load, resolve and validate the server configuration.

    Args:
        config_path: Optional explicit path, takes precedence over everything

    Returns:
        Validated, immutable configuration

    Raises:
        ConfigError: On a missing explicit file, unsupported format,
            malformed JSON, undefined environment variable or schema violation
    """
    path = _resolve_config_path(config_path)

    raw: dict = {}
    if path is not None:
        logger.debug("Loading configuration", path=str(path))
        raw = _read_json(path)
    else:
        logger.debug("No configuration file found, using defaults")

    resolved = resolve_env_references(raw)

    try:
        return ContextiveConfig.model_validate(resolved)
    except ValidationError as e:
        raise ConfigError(
            "Invalid configuration", violations=format_violations(e)
        ) from e
