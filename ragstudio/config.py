"""Configuration loader — reads config.yaml, validates with Pydantic.

Provider model definitions are hardcoded in models/registry.py;
config.yaml only selects the default provider and tunes generation.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_PATH_ENV = "RAGSTUDIO_CONFIG"


class StudioConfig(BaseModel):
    """Top-level service configuration."""

    default_provider: str = "openai"
    temperature: float = 0.7

    # Auth & CORS
    api_key: str | None = None
    allowed_origins: list[str] = ["*"]

    @field_validator("default_provider")
    @classmethod
    def must_be_known_provider(cls, v: str) -> str:
        from ragstudio.models.registry import PROVIDER_REGISTRY

        if v not in PROVIDER_REGISTRY:
            raise ValueError(
                f"Unknown default_provider '{v}'. "
                f"Available: {sorted(PROVIDER_REGISTRY.keys())}"
            )
        return v

    @field_validator("temperature")
    @classmethod
    def temperature_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: StudioConfig | None = None
_config_path: str | None = None


def load_config(path: str | None = None) -> StudioConfig:
    """Read config.yaml from disk, validate, and cache.

    With no explicit path, RAGSTUDIO_CONFIG or ./config.yaml is used and a
    missing file falls back to defaults.
    """
    global _config, _config_path
    _config_path = path

    explicit = path is not None
    config_file = Path(path or os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))
    if not config_file.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")
        logger.warning(f"No config file at {config_file.resolve()}, using defaults")
        _config = StudioConfig()
        return _config

    raw = yaml.safe_load(config_file.read_text()) or {}
    _config = StudioConfig(**raw)

    logger.info(
        f"Loaded config: default_provider={_config.default_provider}, "
        f"auth={'enabled' if _config.api_key else 'disabled'}"
    )
    return _config


def get_config() -> StudioConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded; call load_config() first")
    return _config


def reload_config() -> StudioConfig:
    """Re-read config from disk. Called by /reload endpoint."""
    logger.info(f"Reloading config from {_config_path or 'default location'}")
    return load_config(_config_path)
