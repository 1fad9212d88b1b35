from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, EnvSettingsSource, SettingsConfigDict


DEFAULT_ORIGINS = [
    "http://localhost",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Fields that may be given as "a,b,c" instead of a JSON list.
_COMMA_LIST_FIELDS = frozenset({"allow_origins"})


class _CommaListMixin:
    def decode_complex_value(self, field_name, field, value):  # type: ignore[override]
        if field_name in _COMMA_LIST_FIELDS and isinstance(value, str) and not value.lstrip().startswith("["):
            return value
        try:
            return super().decode_complex_value(field_name, field, value)  # type: ignore[misc]
        except json.JSONDecodeError:
            if field_name in _COMMA_LIST_FIELDS:
                return value
            raise


class _EnvSource(_CommaListMixin, EnvSettingsSource):
    pass


class _DotEnvSource(_CommaListMixin, DotEnvSettingsSource):
    pass


class Settings(BaseSettings):
    """Runtime configuration for the invoicing API, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_name: str = "Ledgr API"
    project_version: str = "1.0.0"
    environment: str = Field(default="development", validation_alias=AliasChoices("ENV", "ENVIRONMENT"))
    log_level: str = "INFO"

    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/ledgr"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Access tokens are minted by the identity provider; we only verify them.
    jwt_secret: str = Field(default="change_me", validation_alias=AliasChoices("SUPABASE_JWT_SECRET", "JWT_SECRET"))
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = "authenticated"
    auth_cookie_name: str = "sb_access_token"

    public_share_secret: str | None = Field(
        default=None,
        description="HMAC key for public invoice tokens and signed file URLs",
    )
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("FRONTEND_ORIGIN", "APP_BASE_URL"),
    )
    api_base_url: str = Field(default="http://localhost:8000", description="Prefix for local signed file URLs")
    share_link_ttl_seconds: int = 7 * 24 * 3600

    allow_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ORIGINS))

    blob_backend: str = Field(default="local", description="local | supabase")
    uploads_dir: str = Field(default="./uploads", validation_alias=AliasChoices("UPLOAD_DIR", "UPLOADS_DIR"))
    invoice_bucket: str = "invoices"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    storage_http_timeout_seconds: float = 15.0

    email_provider: str = Field(default="disabled", description="resend | postmark | smtp | disabled")
    email_api_key: str | None = None
    email_from: str | None = Field(default=None, validation_alias=AliasChoices("EMAIL_FROM", "MAIL_FROM_EMAIL"))
    mail_from_name: str = "Ledgr"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = Field(default=None, validation_alias=AliasChoices("SMTP_USERNAME", "SMTP_USER"))
    smtp_password: str | None = Field(default=None, validation_alias=AliasChoices("SMTP_PASSWORD", "SMTP_PASS"))
    smtp_use_tls: bool = True

    @field_validator("allow_origins", mode="before")
    @classmethod
    def split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            origins = [origin.strip() for origin in value.split(",") if origin.strip()]
            return origins or list(DEFAULT_ORIGINS)
        return value

    @field_validator("blob_backend")
    @classmethod
    def known_blob_backend(cls, value: str) -> str:
        backend = (value or "").strip().lower()
        return backend if backend in ("local", "supabase") else "local"

    def ensure_uploads_dir(self) -> Path:
        path = Path(self.uploads_dir).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        return (init_settings, _EnvSource(settings_cls), _DotEnvSource(settings_cls), file_secret_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
