from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "egisedge-api"
    environment: str = "dev"
    api_prefix: str = "/make-server-d6e2fa79"
    kv_backend: Literal["postgres", "memory"] = "postgres"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    kv_table_name: str = "kv_store_d6e2fa79"
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None
    auth_timeout_seconds: float = 5.0
    cors_max_age_seconds: int = 600
    otel_enabled: bool = True
    otel_service_name: str = "egisedge-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(env_prefix="EG_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
