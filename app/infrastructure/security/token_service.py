from __future__ import annotations

from datetime import datetime, timedelta, timezone
import re
from uuid import uuid4

import jwt

from app.application.dto.auth import TokenClaims
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ConfigurationError, InvalidTokenError


ACCESS_TOKEN_TTL = timedelta(minutes=15)

_DURATION_PATTERN = re.compile(r"^(\d+)\s*(ms|s|m|h|d|w)?$", re.IGNORECASE)
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def parse_duration(value: str) -> timedelta:
    """Parse ``"7d"``, ``"12h"``, ``"30m"``, ``"45s"``, ``"2w"`` or bare seconds."""
    match = _DURATION_PATTERN.match(value.strip()) if value else None
    if match is None:
        raise ConfigurationError(f"Invalid duration: {value!r}.")
    amount, unit = match.groups()
    duration = int(amount) * _DURATION_UNITS[(unit or "s").lower()]
    if duration <= timedelta(0):
        raise ConfigurationError(f"Duration must be positive: {value!r}.")
    return duration


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        jwt_secret: str,
        refresh_token_expiry: str,
        access_ttl: timedelta = ACCESS_TOKEN_TTL,
    ):
        if not jwt_secret:
            raise ConfigurationError("JWT_SECRET is required.")
        self._jwt_secret = jwt_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = parse_duration(refresh_token_expiry)
        if self._access_ttl >= self._refresh_ttl:
            raise ConfigurationError("Refresh token lifetime must be longer than the access token lifetime.")

    def issue_access_token(self, *, user_id: str, role: str, now: datetime) -> str:
        return self._encode(user_id=user_id, role=role, token_type="access", now=now, ttl=self._access_ttl)

    def issue_refresh_token(self, *, user_id: str, role: str, now: datetime) -> str:
        return self._encode(user_id=user_id, role=role, token_type="refresh", now=now, ttl=self._refresh_ttl)

    def verify_access_token(self, *, token: str) -> TokenClaims:
        return self._decode(token=token, token_type="access")

    def verify_refresh_token(self, *, token: str) -> TokenClaims:
        return self._decode(token=token, token_type="refresh")

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        return now + self._refresh_ttl

    def _encode(self, *, user_id: str, role: str, token_type: str, now: datetime, ttl: timedelta) -> str:
        exp = now + ttl
        payload = {
            "sub": user_id,
            "role": role,
            "type": token_type,
            "jti": str(uuid4()),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._jwt_secret, algorithm="HS256")

    def _decode(self, *, token: str, token_type: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=["HS256"],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError(f"{token_type.capitalize()} token has expired.") from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(f"Invalid {token_type} token.") from exc

        if payload.get("type") != token_type:
            raise InvalidTokenError("Invalid token type.")

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise InvalidTokenError("Invalid token subject.")
        role = payload.get("role")
        if not role or not isinstance(role, str):
            raise InvalidTokenError("Invalid token role.")

        return TokenClaims(
            user_id=user_id,
            role=role,
            token_type=token_type,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
