from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
import os

from askpanel.core.config import (
    save_settings_to_file,
    reload_settings,
    load_settings_from_file,
)
import askpanel.core.config as config_module

router = APIRouter(prefix="/settings", tags=["settings"])

ANSWER_BACKENDS = ("openai", "proxy")


class SettingsUpdate(BaseModel):
    answer_backend: Optional[str] = None
    proxy_base_url: Optional[str] = None
    answer_timeout_seconds: Optional[float] = None
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: Optional[str] = None


class SettingsResponse(BaseModel):
    answer_backend: str
    proxy_base_url: str
    answer_timeout_seconds: float
    openai_api_key: str  # masked
    openai_base_url: str
    openai_model: str


@router.get("", response_model=SettingsResponse)
async def get_settings():
    """Retrieve current settings with masked sensitive values."""
    return config_module.settings.get_effective_settings()


@router.post("", response_model=SettingsResponse)
async def update_settings(update: SettingsUpdate):
    """Update settings and save to local file."""
    # Load existing settings
    current = load_settings_from_file()

    if update.answer_backend is not None:
        if update.answer_backend not in ANSWER_BACKENDS:
            raise HTTPException(
                status_code=400,
                detail="answer_backend must be 'openai' or 'proxy'",
            )
        current["answer_backend"] = update.answer_backend

    if update.proxy_base_url is not None:
        current["proxy_base_url"] = update.proxy_base_url

    if update.answer_timeout_seconds is not None:
        if update.answer_timeout_seconds <= 0:
            raise HTTPException(
                status_code=400,
                detail="answer_timeout_seconds must be positive",
            )
        current["answer_timeout_seconds"] = update.answer_timeout_seconds

    if update.openai_api_key is not None:
        current["openai_api_key"] = update.openai_api_key
        # Also set environment variable for immediate use
        os.environ["OPENAI_API_KEY"] = update.openai_api_key

    if update.openai_base_url is not None:
        current["openai_base_url"] = update.openai_base_url
        os.environ["OPENAI_BASE_URL"] = update.openai_base_url

    if update.openai_model is not None:
        current["openai_model"] = update.openai_model
        os.environ["OPENAI_MODEL"] = update.openai_model

    # Save to file
    save_settings_to_file(current)

    # Reload settings
    new_settings = reload_settings()

    return new_settings.get_effective_settings()
