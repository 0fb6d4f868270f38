from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "ProjectProof"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/projectproof.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")

    storage_backend: str = "local"
    storage_bucket: str = "project-media"
    public_base_url: str = "http://127.0.0.1:8787/media"
    supabase_url: str = ""
    supabase_service_key: str = ""
    storage_timeout_sec: int = 60

    analysis_provider: str = "gemini"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-pro-preview"
    gemini_temperature: float = 0.7
    gemini_thinking_level: str = "HIGH"
    gemini_timeout_sec: int = 300

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4.1-mini"
    openai_temperature: float = 0.7
    openai_timeout_sec: int = 300

    session_ttl_min: int = 720
    max_upload_mb: int = 200
    default_skill_level: int = 85
    cors_origins: str = "http://127.0.0.1:5173"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, value: str) -> str:
        allowed = {"local", "supabase"}
        if value not in allowed:
            raise ValueError(f"storage_backend must be one of {sorted(allowed)}")
        return value

    @field_validator("analysis_provider")
    @classmethod
    def validate_analysis_provider(cls, value: str) -> str:
        allowed = {"gemini", "openai"}
        if value not in allowed:
            raise ValueError(f"analysis_provider must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
