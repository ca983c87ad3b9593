from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path
import json
import os


BACKEND_DIR = Path(__file__).parent.parent.parent
SETTINGS_FILE = BACKEND_DIR / "settings.json"

DEFAULT_TEXT_SYSTEM_PROMPT = "Answer briefly and clearly."
DEFAULT_IMAGE_SYSTEM_PROMPT = (
    "Describe what you see in the image and answer any implied question. "
    "Be concise, but include key details."
)


def load_settings_from_file() -> dict:
    """Load settings from JSON file if exists."""
    if SETTINGS_FILE.exists():
        try:
            with open(SETTINGS_FILE) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            pass
    return {}


def save_settings_to_file(settings: dict) -> None:
    """Save settings to JSON file."""
    with open(SETTINGS_FILE, "w") as f:
        json.dump(settings, f, indent=2)


class Settings(BaseSettings):
    # Answering backend: "openai" calls the API directly, "proxy" forwards to proxy_base_url
    answer_backend: str = "openai"
    proxy_base_url: str = "http://localhost:8787"
    answer_timeout_seconds: float = 30.0

    # OpenAI
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4.1-mini"
    text_system_prompt: str = DEFAULT_TEXT_SYSTEM_PROMPT
    image_system_prompt: str = DEFAULT_IMAGE_SYSTEM_PROMPT

    # Request guardrails
    text_max_chars: int = 8000
    image_max_bytes: int = 5 * 1024 * 1024

    # Storage
    database_path: str = str(BACKEND_DIR / "askpanel.db")

    # Server
    backend_port: int = 8787
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def __init__(self, **kwargs):
        # Load from settings file first
        file_settings = load_settings_from_file()

        # Merge: kwargs > file_settings > env vars (handled by pydantic)
        merged = {**file_settings, **kwargs}

        super().__init__(**merged)

        # Handle CORS_ORIGINS as JSON string from env
        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            try:
                self.cors_origins = json.loads(cors_env)
            except json.JSONDecodeError:
                pass

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    def get_effective_settings(self) -> dict:
        """Get current effective settings (for API response)."""
        return {
            "answer_backend": self.answer_backend,
            "proxy_base_url": self.proxy_base_url,
            "answer_timeout_seconds": self.answer_timeout_seconds,
            "openai_api_key": self._mask_key(self.openai_api_key),
            "openai_base_url": self.openai_base_url,
            "openai_model": self.openai_model,
        }

    def _mask_key(self, key: str) -> str:
        """Mask a secret key for display."""
        if not key:
            return ""
        if len(key) <= 8:
            return "*" * len(key)
        return key[:4] + "*" * (len(key) - 8) + key[-4:]


def reload_settings() -> "Settings":
    """Reload settings from file and environment."""
    global settings
    settings = Settings()
    return settings


settings = Settings()
