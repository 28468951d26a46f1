from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class EnvironmentSettings(BaseSettings):
    """Process-level settings read from environment variables."""

    # Path to the configuration file, second in the resolution order
    config_path: Optional[str] = Field(
        default=None, validation_alias="CONTEXTIVE_CONFIG"
    )

    # "production" switches logs to JSON lines
    environment: str = Field(default="development", validation_alias="CONTEXTIVE_ENV")

    model_config = {
        "extra": "ignore",
    }

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def get_environment_settings() -> EnvironmentSettings:
    """Read settings from the current environment."""
    return EnvironmentSettings()
