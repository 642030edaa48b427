"""
Configuration management for docshape.

All configuration is done via environment variables with the DOCSHAPE_
prefix; CLI flags override them per invocation.

Invariants:
    - All settings have sensible defaults for local development
    - get_settings() returns the same instance until reset

How to change safely:
    - Add new settings with defaults that keep existing behavior
    - Keep the env prefix stable; deployments depend on it
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """docshape configuration."""

    # Validation
    max_depth: int = Field(default=64, ge=1, description="Value nesting bound for validation")

    # Schema source and generated output
    schema_path: str = Field(default="convex/schema.yaml")
    out_file: str = Field(default="convex_types.py")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="text or json")

    model_config = {"env_prefix": "DOCSHAPE_"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()


def reset_settings() -> None:
    """Forget cached settings (for testing only)."""
    get_settings.cache_clear()


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure logging based on configuration.

    Args:
        settings: Settings to use; defaults to get_settings()
    """
    settings = settings or get_settings()
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
