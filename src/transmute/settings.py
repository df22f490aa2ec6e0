"""
settings.py

Configuration management for transmute built on pydantic-settings. Settings can
be set programmatically, through environment variables, or through a .env file.
Nested properties are addressed with a double underscore.

Core Interfaces:
- LoggingSettings: log levels and file sinks.
- EngineSettings: capability snapshot location and path search limits.
- Settings: aggregates all configs, can render itself as a .env file.
- reload_settings: reload settings from the environment.
- print_config: print the current configuration in .env format.

Example Usage:
```python
from transmute.settings import settings

settings.engine.max_hops = 4
settings.engine.snapshot_path = "cache.json"
```

or utilizing environment variables:
```bash
export TRANSMUTE__LOGGING__CONSOLE_LOG_LEVEL=DEBUG
export TRANSMUTE__ENGINE__SNAPSHOT_PATH=cache.json
export TRANSMUTE__ENGINE__MAX_HOPS=4
```
"""

import json
from collections.abc import Sequence
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "EngineSettings",
    "LoggingSettings",
    "Settings",
    "print_config",
    "reload_settings",
    "settings",
]


class LoggingSettings(BaseModel):
    """
    Logging settings for the application
    """

    disabled: bool = Field(
        default=False,
        description="True to disable all logging, False (default) to enable logging.",
    )
    clear_loggers: bool = Field(
        default=True,
        description=(
            "True (default) to remove all handlers previously added to the loguru "
            "logger before adding the transmute sinks."
        ),
    )
    console_log_level: str = Field(
        default="WARNING",
        description=(
            "The log level for the console logger "
            "(DEBUG, INFO, WARNING, ERROR, CRITICAL)."
        ),
    )
    log_file: Optional[str] = Field(
        default=None,
        description=(
            "The path to the log file. If set, records are also written to this file "
            "as JSON lines."
        ),
    )
    log_file_level: Optional[str] = Field(
        default=None,
        description="The log level for the file logger, INFO if not set.",
    )


class EngineSettings(BaseModel):
    """
    Settings controlling engine bootstrap and conversion path search
    """

    snapshot_path: Optional[str] = Field(
        default=None,
        description=(
            "Location of a capability snapshot (JSON list of handler name and format "
            "list pairs). Handlers listed there skip initialization at startup. "
            "A missing or invalid snapshot falls back to live initialization."
        ),
    )
    max_hops: int = Field(
        default=6,
        ge=1,
        description="Maximum number of conversion hops a candidate path may contain.",
    )
    max_paths: Optional[int] = Field(
        default=100,
        ge=1,
        description=(
            "Maximum number of candidate paths a single search yields. "
            "None for no limit."
        ),
    )
    hop_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description=(
            "Seconds a single handler conversion may take before the hop is "
            "treated as failed. None (default) waits indefinitely."
        ),
    )
    escalate_simple_mode: bool = Field(
        default=True,
        description=(
            "True (default) to continue with multi-hop candidates once every "
            "minimal-hop candidate of a simple mode conversion has failed."
        ),
    )


class Settings(BaseSettings):
    """
    All the settings are powered by pydantic_settings and can be set through
    environment variables or .env file. The environment variables are prefixed with
    `TRANSMUTE__` and nested properties are separated by `__`, for example
    `TRANSMUTE__ENGINE__MAX_HOPS=4`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRANSMUTE__",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
        env_file=".env",
    )

    logging: LoggingSettings = LoggingSettings()
    engine: EngineSettings = EngineSettings()

    def generate_env_file(self) -> str:
        """
        Generate the .env file from the current settings
        """
        return Settings._recursive_generate_env(
            self,
            self.model_config["env_prefix"],  # type: ignore  # noqa: PGH003
            self.model_config["env_nested_delimiter"],  # type: ignore  # noqa: PGH003
        )

    @staticmethod
    def _recursive_generate_env(model: BaseModel, prefix: str, delimiter: str) -> str:
        env_file = ""
        nested = []
        for key in type(model).model_fields:
            value = getattr(model, key)
            if isinstance(value, BaseModel):
                nested.append((key, value))
                continue

            tag = f"{prefix}{key.upper()}"
            if isinstance(value, Sequence) and not isinstance(value, str):
                value_str = ",".join(f'"{item}"' for item in value)
                env_file += f"{tag}=[{value_str}]\n"
            elif isinstance(value, dict):
                env_file += f"{tag}={json.dumps(value)}\n"
            elif value is None or value == "":
                env_file += f"{tag}=\n"
            else:
                env_file += f'{tag}="{value}"\n'

        for key, value in nested:
            env_file += Settings._recursive_generate_env(
                value, f"{prefix}{key.upper()}{delimiter}", delimiter
            )
        return env_file


settings = Settings()


def reload_settings():
    """
    Reload the settings from the environment variables
    """
    new_settings = Settings()
    settings.__dict__.update(new_settings.__dict__)


def print_config():
    """
    Print the current configuration settings
    """
    print(f"Settings: \n{settings.generate_env_file()}")  # noqa: T201
