"""
Configuration and logging setup for sqlmoose.

Settings are read from environment variables prefixed with `SQLMOOSE_`.
Only the composing application and the CLI read settings; the core
components take explicit arguments.

Invariants:
    - All settings have sensible defaults for local development
    - Logging is configured once, by the application, never on import
"""

from __future__ import annotations

import logging
from typing import Literal

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings

from .dialect import Dialect, get_dialect


class Settings(BaseSettings):
    """sqlmoose configuration."""

    # SQLite database used by the bundled executor
    database: str = Field(default=":memory:")

    # SQL flavour of compiled statements
    dialect: Literal["mysql", "sqlite"] = Field(default="mysql")

    # Length of bounded-length text columns
    varchar_length: int = Field(default=255, gt=0)

    # Table name = lowercased entity name + suffix
    table_suffix: str = Field(default="s")

    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text")

    model_config = {"env_prefix": "SQLMOOSE_"}

    def dialect_impl(self) -> Dialect:
        return get_dialect(self.dialect, varchar_length=self.varchar_length)


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    Args:
        settings: sqlmoose settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
