from __future__ import annotations

from app.application.dto.auth import RefreshAccessTokenInput, RefreshAccessTokenOutput
from app.application.ports.auth_port import AuthPort
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ForbiddenError, UnauthorizedError

from .auth_common import utcnow, verify_refresh_session


class RefreshSessionUseCase:
    """Mint a new access token from a live refresh token.

    The refresh token itself is neither rotated nor returned here.
    """

    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort):
        self._auth_port = auth_port
        self._token_port = token_port

    def execute(self, command: RefreshAccessTokenInput) -> RefreshAccessTokenOutput:
        now = utcnow()
        claims, record = verify_refresh_session(
            auth_port=self._auth_port,
            token_port=self._token_port,
            refresh_token=command.refresh_token,
            now=now,
        )

        user = self._auth_port.get_active_user_by_id(user_id=claims.user_id, with_roles=True)
        if user is None:
            raise UnauthorizedError("User account is inactive or no longer exists.", user_id=claims.user_id)
        if not user.roles:
            raise ForbiddenError("No active role assigned to this account.", user_id=claims.user_id)

        held = user.find_role(claims.role)
        role = held.name if held is not None else user.roles[0].name

        access_token = self._token_port.issue_access_token(user_id=user.id, role=role, now=now)
        self._auth_port.touch_refresh_token(token_id=record.id, used_at=now)
        return RefreshAccessTokenOutput(
            user_id=user.id,
            role=role,
            roles=user.role_names,
            access_token=access_token,
        )
