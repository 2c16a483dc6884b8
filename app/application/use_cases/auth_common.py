from __future__ import annotations

from datetime import datetime, timezone
import re
from uuid import uuid4

from app.application.dto.auth import ClientContext, SessionTokens, TokenClaims
from app.application.ports.auth_port import AuthPort, IdentityPort
from app.application.ports.otp_port import OtpPort
from app.application.ports.token_port import TokenPort
from app.domain.entities.user import RefreshTokenRecord
from app.domain.exceptions import ConflictError, InvalidOtpError, UnauthorizedError, ValidationError


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_NUMBER_PATTERN = re.compile(r"^[6-9]\d{9}$")
_MOBILE_SEPARATORS = re.compile(r"[\s\-().]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_mobile_number(mobile_number: str) -> str:
    value = _MOBILE_SEPARATORS.sub("", mobile_number.strip())
    if value.startswith("+91") and len(value) == 13:
        return value[3:]
    if value.startswith("91") and len(value) == 12:
        return value[2:]
    if value.startswith("0") and len(value) == 11:
        return value[1:]
    return value


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def is_valid_mobile_number(mobile_number: str) -> bool:
    return bool(MOBILE_NUMBER_PATTERN.match(mobile_number))


def require_fields(fields: dict[str, str | None]) -> None:
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def validated_mobile_number(mobile_number: str) -> str:
    normalized = normalize_mobile_number(mobile_number)
    if not is_valid_mobile_number(normalized):
        raise ValidationError("Invalid mobile number. Must be 10 digits starting with 6-9.")
    return normalized


def verify_otp(*, otp_port: OtpPort, verification_id: str, code: str) -> None:
    # Anything other than an explicit True counts as a failed verification.
    if otp_port.verify_otp(verification_id=verification_id.strip(), code=code.strip()) is not True:
        raise InvalidOtpError("OTP verification failed.")


def ensure_identifiers_available(
    *,
    identity_port: IdentityPort,
    mobile_number: str,
    email: str,
    registration_number: str | None,
) -> None:
    existing = identity_port.find_user_by_identifiers(
        mobile_number=mobile_number,
        email=email,
        registration_number=registration_number,
    )
    if existing is None:
        return
    if existing.email.lower() == email:
        raise ConflictError("Email already exists.")
    if existing.mobile_number == mobile_number:
        raise ConflictError("Mobile number already exists.")
    raise ConflictError("Registration number already exists.")


def issue_session_tokens(
    *,
    auth_port: AuthPort,
    token_port: TokenPort,
    user_id: str,
    role: str,
    context: ClientContext,
    now: datetime,
) -> SessionTokens:
    """Mint a token pair and store the refresh token for the caller's device.

    The active refresh-token row of ``(user_id, device_id)`` is rotated in
    place; when no such row exists a new one is created. The user's sessions
    are locked first so concurrent logins on one device serialize here.
    """
    refresh_token = token_port.issue_refresh_token(user_id=user_id, role=role, now=now)
    refresh_expires_at = token_port.refresh_token_expires_at(now=now)

    auth_port.lock_user_sessions(user_id=user_id)

    def _rotate() -> int:
        return auth_port.rotate_refresh_token(
            user_id=user_id,
            device_id=context.device_id,
            refresh_token=refresh_token,
            expires_at=refresh_expires_at,
            user_agent=context.user_agent,
            ip_address=context.ip,
            rotated_at=now,
        )

    if _rotate() == 0:
        try:
            auth_port.create_refresh_token(
                token_id=str(uuid4()),
                user_id=user_id,
                refresh_token=refresh_token,
                expires_at=refresh_expires_at,
                device_id=context.device_id,
                user_agent=context.user_agent,
                ip_address=context.ip,
                created_at=now,
            )
        except ConflictError:
            # The device slot was taken by a session that committed first.
            if _rotate() == 0:
                raise

    access_token = token_port.issue_access_token(user_id=user_id, role=role, now=now)
    return SessionTokens(
        access_token=access_token,
        refresh_token=refresh_token,
        refresh_expires_at=refresh_expires_at,
    )


def verify_refresh_session(
    *,
    auth_port: AuthPort,
    token_port: TokenPort,
    refresh_token: str | None,
    now: datetime,
) -> tuple[TokenClaims, RefreshTokenRecord]:
    token = (refresh_token or "").strip()
    if not token:
        raise UnauthorizedError("Refresh token is required.")

    claims = token_port.verify_refresh_token(token=token)

    record = auth_port.get_refresh_token(refresh_token=token)
    if record is None or record.user_id != claims.user_id:
        raise UnauthorizedError("Refresh token is not recognized.", user_id=claims.user_id)
    if not record.is_live(now):
        message = "Refresh token has expired." if record.is_active else "Refresh token has been revoked."
        raise UnauthorizedError(message, user_id=claims.user_id)
    return claims, record
