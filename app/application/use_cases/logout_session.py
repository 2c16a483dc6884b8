from __future__ import annotations

import logging

from app.application.dto.auth import LogoutInput, LogoutOutput
from app.application.ports.auth_port import AuthPort
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ConflictError, UnauthorizedError

from .auth_common import utcnow


logger = logging.getLogger(__name__)


class LogoutSessionUseCase:
    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort):
        self._auth_port = auth_port
        self._token_port = token_port

    def execute(self, command: LogoutInput) -> LogoutOutput:
        token = (command.refresh_token or "").strip()
        if not token:
            raise UnauthorizedError("Refresh token is required.")

        claims = self._token_port.verify_refresh_token(token=token)
        revoked = self._auth_port.revoke_refresh_token(
            refresh_token=token,
            reason="logout",
            revoked_at=utcnow(),
        )
        if not revoked:
            raise ConflictError("Refresh token is already revoked or invalid.", user_id=claims.user_id)

        logger.info("logout_session: revoked user_id=%s", claims.user_id)
        return LogoutOutput(user_id=claims.user_id)
