from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    smtp_base_url: str = "http://smtp-mock:8025"
    storage_base_url: str = "http://storage:5000/storage/v1"
    storage_api_key: str = ""
    storage_bucket: str = "schoolImages"

    # OTP policies
    otp_store_backend: Literal["memory", "redis"] = "memory"
    otp_code_length: int = 6
    otp_ttl_seconds: int = 300
    otp_max_attempts: int = 5
    otp_record_retention_seconds: int = 600
    otp_issue_timeout_seconds: float = 10.0
    otp_verify_timeout_seconds: float = 5.0

    # Gates
    gate_pass_ttl_seconds: int = 900
    gate_idle_seconds: int = 1800
    gate_registry_max_size: int = 10_000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
