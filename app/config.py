import os
from functools import lru_cache

from pydantic_settings import BaseSettings

_APP_DIR = os.path.dirname(__file__)


class Settings(BaseSettings):
    anthropic_api_key: str = ""

    # LLM defaults
    default_model: str = "claude-sonnet-4-5-20250929"
    llm_max_tokens: int = 1500

    # Template store and generated previews
    template_dir: str = os.path.join(_APP_DIR, "templates")
    preview_dir: str = os.path.join(_APP_DIR, "..", "previews")
    preview_base_url: str = "http://localhost:8000"
    preview_expiry_days: int = 7
    fallback_template_slug: str = "other-clarity"

    # Preview banner
    brand_name: str = "MorningStar.ai"
    cta_url: str = "https://wa.me/971000000000?text=I%20saw%20my%20preview%20and%20I%27m%20interested"

    class Config:
        # On production, env vars are injected directly; .env is optional
        _env_path = os.path.join(_APP_DIR, "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
