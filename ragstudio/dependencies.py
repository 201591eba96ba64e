"""FastAPI dependency injection functions."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from ragstudio.config import StudioConfig
from ragstudio.models.registry import ModelRegistry
from ragstudio.pipelines.manager import PipelineManager

logger = logging.getLogger(__name__)


async def get_settings(request: Request) -> StudioConfig:
    """Config the app is currently running with (swapped by /reload)."""
    return request.app.state.config


async def get_model_registry(request: Request) -> ModelRegistry:
    return request.app.state.models


async def get_pipeline_manager(request: Request) -> PipelineManager:
    return request.app.state.pipelines


async def verify_api_key(request: Request) -> None:
    """Validate X-API-Key header against the configured key.
    If no api_key is set in config, auth is disabled (dev mode).
    """
    config: StudioConfig = request.app.state.config
    if not config.api_key:
        return  # auth disabled

    key = request.headers.get("X-API-Key")
    if key != config.api_key:
        logger.warning(f"Rejected request to {request.url.path}: bad API key")
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
