"""Configuration for the fintax engine.

Settings are read from environment variables (prefix ``FINTAX_``) and an
optional ``.env`` file.

Usage:
    from fintax_core.config import EngineSettings, load_constant_table

    settings = EngineSettings()
    constants = load_constant_table(settings)
    calculator = Usn6Calculator(constants)

Environment Variables:
    FINTAX_ENV: Environment name (development, staging, production, test)
    FINTAX_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    FINTAX_LOG_FORMAT: "console" or "json"
    FINTAX_CONSTANTS_FILE: JSON file with extra or overriding year constants
    FINTAX_TOP_N: Length of top-N lists in reports
    FINTAX_DEFAULT_YEAR: Fiscal year used when a caller does not pass one

The constants file holds a JSON array of objects with the same fields as
``TaxConstants``. A year present both in the file and in the built-in table
is taken from the file.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .tax_constants import ConstantTable, TaxConstants, default_constant_table


class LogFormat(str, Enum):
    """Log renderers."""

    CONSOLE = "console"
    JSON = "json"


class EngineSettings(BaseSettings):
    """Root settings of the engine."""

    model_config = SettingsConfigDict(
        env_prefix="FINTAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production, test)",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.CONSOLE, description="Log renderer")
    constants_file: Optional[Path] = Field(
        default=None,
        description="JSON file with additional tax constants",
    )
    top_n: int = Field(default=5, ge=1, le=50, description="Length of top-N report lists")
    default_year: Optional[int] = Field(default=None, ge=2000, le=2100)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        return self.env == "production"


_constants_list = TypeAdapter(list[TaxConstants])


def load_constant_table(settings: Optional[EngineSettings] = None) -> ConstantTable:
    """
    Build the constant table for the given settings.

    Without a constants file this is the built-in table.

    Raises:
        ConfigurationError: The file is missing, unreadable, or invalid
    """
    settings = settings or EngineSettings()
    builtin = default_constant_table()
    path = settings.constants_file
    if path is None:
        return builtin

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read constants file {path}: {exc}",
            config_key="constants_file",
            expected="readable JSON file",
            actual=str(path),
        ) from exc

    try:
        overrides = _constants_list.validate_json(raw)
    except PydanticValidationError as exc:
        raise ConfigurationError(
            f"Invalid constants file {path}: {exc.error_count()} error(s)",
            config_key="constants_file",
            expected="JSON array of tax constant objects",
            actual=str(path),
        ) from exc

    return builtin.merged_with(overrides)
