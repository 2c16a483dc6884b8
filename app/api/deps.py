from __future__ import annotations

from functools import lru_cache

from app.api.api_log import ApiLogRecorder
from app.api.responses import AuthResponder
from app.application.ports.otp_port import OtpPort
from app.application.use_cases.authenticate_principal import AuthenticatePrincipalUseCase
from app.application.use_cases.login_otp import LoginOtpUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.send_otp import SendOtpUseCase
from app.application.use_cases.signup_user import SignupUserUseCase
from app.application.use_cases.switch_role import SwitchRoleUseCase
from app.application.use_cases.verify_otp import VerifyOtpUseCase
from app.domain.exceptions import ConfigurationError
from app.domain.services.client_roles import ClientRolePolicy
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from app.infrastructure.db.repositories.api_log_repository import SqlApiLogRepository
from app.infrastructure.security.token_service import JwtTokenService
from app.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise ConfigurationError("POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_accounts_repository() -> SqlAccountsRepository:
    return SqlAccountsRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    return JwtTokenService(
        jwt_secret=settings.jwt_secret,
        refresh_token_expiry=settings.refresh_token_expiry,
    )


@lru_cache(maxsize=1)
def _get_otp_client() -> OtpPort:
    settings = get_settings()
    if settings.otp_provider == "static":
        from app.infrastructure.clients.static_otp_client import StaticOtpClient

        return StaticOtpClient(code=settings.otp_static_code)
    if settings.otp_provider != "messagecentral":
        raise ConfigurationError(f"Unsupported OTP_PROVIDER: {settings.otp_provider}.")

    from app.infrastructure.clients.message_central_otp_client import (
        MessageCentralOtpClient,
        MessageCentralSettings,
    )

    return MessageCentralOtpClient(
        MessageCentralSettings(
            base_url=settings.messagecentral_base_url,
            customer_id=settings.messagecentral_customer_id,
            password=settings.messagecentral_password,
            country_code=settings.otp_country_code,
            otp_length=settings.otp_length,
            timeout_seconds=settings.otp_timeout_seconds,
        )
    )


@lru_cache(maxsize=1)
def _get_role_policy() -> ClientRolePolicy:
    settings = get_settings()
    return ClientRolePolicy(
        client_roles=settings.client_roles,
        default_role=settings.default_client_role,
    )


@lru_cache(maxsize=1)
def get_auth_responder() -> AuthResponder:
    settings = get_settings()
    port = None
    if settings.api_log_enabled and settings.postgres_dsn:
        port = SqlApiLogRepository(get_engine(settings.postgres_dsn))
    return AuthResponder(
        recorder=ApiLogRecorder(port=port),
        environment=settings.app_env,
        expose_error_details=settings.is_development,
    )


def get_send_otp_use_case() -> SendOtpUseCase:
    return SendOtpUseCase(otp_port=_get_otp_client())


def get_verify_otp_use_case() -> VerifyOtpUseCase:
    return VerifyOtpUseCase(otp_port=_get_otp_client())


def get_signup_use_case() -> SignupUserUseCase:
    return SignupUserUseCase(
        auth_port=_get_accounts_repository(),
        otp_port=_get_otp_client(),
        token_port=_get_token_service(),
        role_policy=_get_role_policy(),
    )


def get_login_use_case() -> LoginOtpUseCase:
    return LoginOtpUseCase(
        auth_port=_get_accounts_repository(),
        otp_port=_get_otp_client(),
        token_port=_get_token_service(),
        role_policy=_get_role_policy(),
    )


def get_refresh_session_use_case() -> RefreshSessionUseCase:
    return RefreshSessionUseCase(
        auth_port=_get_accounts_repository(),
        token_port=_get_token_service(),
    )


def get_logout_session_use_case() -> LogoutSessionUseCase:
    return LogoutSessionUseCase(
        auth_port=_get_accounts_repository(),
        token_port=_get_token_service(),
    )


def get_authenticate_principal_use_case() -> AuthenticatePrincipalUseCase:
    return AuthenticatePrincipalUseCase(token_port=_get_token_service())


def get_switch_role_use_case() -> SwitchRoleUseCase:
    return SwitchRoleUseCase(
        auth_port=_get_accounts_repository(),
        token_port=_get_token_service(),
        role_policy=_get_role_policy(),
    )
