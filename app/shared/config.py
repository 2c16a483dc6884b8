from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _list(name: str, default: str) -> tuple[str, ...]:
    value = _env(name, default) or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    postgres_dsn: str
    auto_create_schema: bool
    api_log_enabled: bool
    jwt_secret: str
    refresh_token_expiry: str
    otp_provider: str
    otp_static_code: str
    otp_country_code: str
    otp_length: int
    otp_timeout_seconds: float
    messagecentral_base_url: str
    messagecentral_customer_id: str
    messagecentral_password: str
    default_client_role: str
    client_roles: tuple[str, ...]

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def get_settings() -> Settings:
    return Settings(
        app_env=(_env("APP_ENV", "production") or "production").strip().lower(),
        log_level=_env("LOG_LEVEL", "INFO"),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        auto_create_schema=_bool("AUTO_CREATE_SCHEMA", False),
        api_log_enabled=_bool("API_LOG_ENABLED", True),
        jwt_secret=_env("JWT_SECRET", ""),
        refresh_token_expiry=_env("REFRESH_TOKEN_EXPIRY", "7d"),
        otp_provider=(_env("OTP_PROVIDER", "messagecentral") or "messagecentral").strip().lower(),
        otp_static_code=_env("OTP_STATIC_CODE", "123456"),
        otp_country_code=_env("OTP_COUNTRY_CODE", "91"),
        otp_length=int(_env("OTP_LENGTH", "6")),
        otp_timeout_seconds=float(_env("OTP_TIMEOUT_SECONDS", "10")),
        messagecentral_base_url=_env("MESSAGECENTRAL_BASE_URL", "https://cpaas.messagecentral.com"),
        messagecentral_customer_id=_env("MESSAGECENTRAL_CUSTOMER_ID", ""),
        messagecentral_password=_env("MESSAGECENTRAL_PASSWORD", ""),
        default_client_role=_env("DEFAULT_CLIENT_ROLE", "Broker"),
        client_roles=_list("CLIENT_ROLES", "Owner,Investor,Broker"),
    )
