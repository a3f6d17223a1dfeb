from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "edu-portal-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    storage_backend: Literal["postgres", "memory"] = "postgres"
    jwt_secret: str = "dev-change-this-secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    password_hash_rounds: int = 12
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    image_max_bytes: int = 20 * 1024 * 1024
    document_max_bytes: int = 10 * 1024 * 1024
    slug_max_candidates: int = 1000
    slug_write_attempts: int = 5
    cors_allow_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    rate_limit_enabled: bool = True
    rate_limit: str | None = None
    otel_enabled: bool = True
    otel_service_name: str = "edu-portal-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="EP_", extra="ignore")

    @property
    def effective_rate_limit(self) -> str:
        if self.rate_limit:
            return self.rate_limit
        if self.environment == "production":
            return "100 per 15 minutes"
        return "1000 per 15 minutes"


@lru_cache
def get_settings() -> Settings:
    return Settings()
