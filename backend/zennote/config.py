from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # One store instance per key; several stores can share a backend
    store_key: str = "zennote_db"
    gateway: Literal["memory", "sql", "redis"] = "sql"

    database_url: str = "sqlite+aiosqlite:///./zennote.db"
    redis_url: str = "redis://localhost:6379"

    autosave_delay: float = 1.2  # seconds of quiet before an edit is written

    # Summarise / expand (OpenAI-compatible endpoint)
    vllm_base_url: str = "http://host.docker.internal:8000/v1"
    vllm_summary_model: str = "Qwen3-30B-A3B-Thinking-2507"
    vllm_expand_model: str = "Qwen3-30B-A3B-Thinking-2507"
    vllm_api_key: str = ""
    vllm_temperature: float = 0.7
    vllm_max_tokens: int = 4096

    cors_origins: str = "http://localhost,http://localhost:3000"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
