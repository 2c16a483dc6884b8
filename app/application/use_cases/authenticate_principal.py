from __future__ import annotations

from app.application.dto.auth import AuthPrincipal
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import UnauthorizedError


class AuthenticatePrincipalUseCase:
    def __init__(self, *, token_port: TokenPort):
        self._token_port = token_port

    def execute(self, *, access_token: str | None) -> AuthPrincipal:
        token = (access_token or "").strip()
        if not token:
            raise UnauthorizedError("Access token is required.")
        claims = self._token_port.verify_access_token(token=token)
        return AuthPrincipal(user_id=claims.user_id, active_role=claims.role)
