from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    auth_jwt_secret: str = Field("", alias="AUTH_JWT_SECRET")
    auth_jwt_audience: str = Field("authenticated", alias="AUTH_JWT_AUDIENCE")

    brand_name: str = Field("Itinerary Desk", alias="BRAND_NAME")
    app_url: str = Field("http://localhost:3000", alias="APP_URL")
    ics_prodid: str = Field("-//Itinerary Desk//Itinerary//EN", alias="ICS_PRODID")
    ics_uid_domain: str = Field("itinerary-desk.local", alias="ICS_UID_DOMAIN")

    resend_api_key: str = Field("", alias="RESEND_API_KEY")
    resend_base_url: str = Field("https://api.resend.com", alias="RESEND_BASE_URL")
    resend_from_email: str = Field("noreply@itinerary-desk.local", alias="RESEND_FROM_EMAIL")
    resend_from_name: str = Field("Itinerary Desk", alias="RESEND_FROM_NAME")

    storage_backend: str = Field("local", alias="STORAGE_BACKEND")
    storage_bucket: str = Field("itinerary-docs", alias="STORAGE_BUCKET")
    local_storage_path: str = Field("/tmp/itinerary-docs", alias="LOCAL_STORAGE_PATH")
    local_storage_base_url: str = Field(
        "http://localhost:8000/files",
        alias="LOCAL_STORAGE_BASE_URL",
    )
    supabase_url: str = Field("", alias="SUPABASE_URL")
    supabase_service_key: str = Field("", alias="SUPABASE_SERVICE_KEY")
    max_upload_bytes: int = Field(25 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    http_trust_env: bool = Field(False, alias="HTTP_TRUST_ENV")
    http_timeout_seconds: float = Field(10.0, alias="HTTP_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
