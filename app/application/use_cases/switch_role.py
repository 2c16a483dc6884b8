from __future__ import annotations

import logging

from app.application.dto.auth import AuthPrincipal, SwitchRoleInput, SwitchRoleOutput
from app.application.ports.auth_port import AuthPort
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from app.domain.services.client_roles import ClientRolePolicy

from .auth_common import issue_session_tokens, require_fields, utcnow


logger = logging.getLogger(__name__)


class SwitchRoleUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        token_port: TokenPort,
        role_policy: ClientRolePolicy,
    ):
        self._auth_port = auth_port
        self._token_port = token_port
        self._role_policy = role_policy

    def execute(self, *, principal: AuthPrincipal, command: SwitchRoleInput) -> SwitchRoleOutput:
        require_fields({"roleName": command.role_name})

        target = self._role_policy.canonical_name(command.role_name)
        if target is None:
            allowed = ", ".join(self._role_policy.client_roles)
            raise ValidationError(
                f"Role '{command.role_name.strip()}' cannot be switched to. Allowed roles: {allowed}.",
                user_id=principal.user_id,
            )

        user = self._auth_port.get_active_user_by_id(user_id=principal.user_id, with_roles=True)
        if user is None:
            raise UnauthorizedError("User account is inactive or no longer exists.", user_id=principal.user_id)

        held = user.find_role(target)
        if held is None:
            raise ForbiddenError(f"You do not have the '{target}' role.", user_id=principal.user_id)
        if held.name.casefold() == principal.active_role.casefold():
            raise ForbiddenError(f"'{held.name}' is already the active role.", user_id=principal.user_id)

        now = utcnow()
        tokens = self._auth_port.execute_in_transaction(
            lambda auth_port: issue_session_tokens(
                auth_port=auth_port,
                token_port=self._token_port,
                user_id=user.id,
                role=held.name,
                context=command.context,
                now=now,
            )
        )
        logger.info(
            "switch_role: switched user_id=%s from=%s to=%s",
            user.id,
            principal.active_role,
            held.name,
        )
        return SwitchRoleOutput(
            user_id=user.id,
            previous_role=principal.active_role,
            role=held.name,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )
