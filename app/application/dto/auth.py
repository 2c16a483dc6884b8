from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ClientContext:
    user_agent: str | None = None
    ip: str | None = None
    device_id: str | None = None


@dataclass(frozen=True)
class SendOtpInput:
    mobile_number: str


@dataclass(frozen=True)
class OtpChallenge:
    verification_id: str
    timeout_seconds: int | None


@dataclass(frozen=True)
class VerifyOtpInput:
    verification_id: str
    otp: str


@dataclass(frozen=True)
class SignupInput:
    mobile_number: str
    email: str
    first_name: str
    last_name: str
    otp: str
    verification_id: str
    registration_number: str | None = None
    role_name: str | None = None
    context: ClientContext = field(default_factory=ClientContext)


@dataclass(frozen=True)
class SignupOutput:
    user_id: str
    role: str
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginInput:
    mobile_number: str
    otp: str
    verification_id: str
    role_name: str | None = None
    context: ClientContext = field(default_factory=ClientContext)


@dataclass(frozen=True)
class LoginOutput:
    user_id: str
    role: str
    roles: list[str]
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class RefreshAccessTokenInput:
    refresh_token: str | None


@dataclass(frozen=True)
class RefreshAccessTokenOutput:
    user_id: str
    role: str
    roles: list[str]
    access_token: str


@dataclass(frozen=True)
class LogoutInput:
    refresh_token: str | None


@dataclass(frozen=True)
class LogoutOutput:
    user_id: str


@dataclass(frozen=True)
class AuthPrincipal:
    user_id: str
    active_role: str


@dataclass(frozen=True)
class SwitchRoleInput:
    role_name: str
    context: ClientContext = field(default_factory=ClientContext)


@dataclass(frozen=True)
class SwitchRoleOutput:
    user_id: str
    previous_role: str
    role: str
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str
    token_type: str
    issued_at: datetime
    expires_at: datetime
