# caption_rewriter/settings.py
from __future__ import annotations
from typing import Optional, Dict, Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path
import tomllib
from dotenv import load_dotenv

from caption_rewriter.config import DEFAULT_CONCURRENCY, HISTORY_LIMIT

# Project root: .../caption-rewriter
BASE_DIR = Path(__file__).resolve().parents[1]

# Force-load .env from project root, then fall back to CWD
load_dotenv(BASE_DIR / ".env")
load_dotenv()  # no-op if already loaded

class Settings(BaseSettings):
    # app
    app_storage_dir: str = Field(default="./storage")
    default_model: str = Field(default="gemini-2.5-flash")
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    history_limit: int = Field(default=HISTORY_LIMIT, ge=1)
    request_timeout: float = Field(default=120.0, gt=0)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = None

    # provider creds
    gemini_api_key: Optional[str] = None    # reads GEMINI_API_KEY
    deepseek_api_key: Optional[str] = None  # reads DEEPSEEK_API_KEY
    moonshot_api_key: Optional[str] = None  # reads MOONSHOT_API_KEY

    # pydantic v2 settings config
    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        env_file=[str(BASE_DIR / ".env"), ".env"],  # try both absolute and CWD .env
        env_file_encoding="utf-8",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # init kwargs carry the TOML defaults, so env and .env must win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def api_key_for(self, provider_name: str) -> str:
        """Return the configured key for a provider, or an empty string."""
        return getattr(self, f"{provider_name}_api_key", None) or ""

def load_settings(cfg_path: Path | None = None) -> Settings:
    cfg_path = cfg_path or BASE_DIR / "config" / "app.toml"
    data: Dict[str, Any] = {}
    if cfg_path.exists():
        with cfg_path.open("rb") as f:
            data = tomllib.load(f)
    # TOML defaults + env override
    return Settings(**data.get("app", {}), **data.get("keys", {}))
