from __future__ import annotations

import logging

from app.application.dto.auth import LoginInput, LoginOutput, SessionTokens
from app.application.ports.auth_port import AuthPort
from app.application.ports.otp_port import OtpPort
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.domain.services.client_roles import ClientRolePolicy

from .auth_common import (
    issue_session_tokens,
    require_fields,
    utcnow,
    validated_mobile_number,
    verify_otp,
)


logger = logging.getLogger(__name__)


class LoginOtpUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        otp_port: OtpPort,
        token_port: TokenPort,
        role_policy: ClientRolePolicy,
    ):
        self._auth_port = auth_port
        self._otp_port = otp_port
        self._token_port = token_port
        self._role_policy = role_policy

    def execute(self, command: LoginInput) -> LoginOutput:
        require_fields(
            {
                "mobileNumber": command.mobile_number,
                "otp": command.otp,
                "verificationId": command.verification_id,
            }
        )
        mobile_number = validated_mobile_number(command.mobile_number)

        verify_otp(
            otp_port=self._otp_port,
            verification_id=command.verification_id,
            code=command.otp,
        )

        existing = self._auth_port.find_user_by_identifiers(mobile_number=mobile_number)
        user = None
        if existing is not None:
            user = self._auth_port.get_active_user_by_id(user_id=existing.id, with_roles=True)
        if user is None:
            raise NotFoundError("Account does not exist, please sign up first")
        if not user.roles:
            raise ForbiddenError("No active role assigned to this account.", user_id=user.id)

        now = utcnow()
        roles = user.role_names
        active_role = user.roles[0].name

        requested = (command.role_name or "").strip()
        if requested:
            held = user.find_role(requested)
            if held is not None:
                active_role = held.name
            else:
                # Login may grant a missing client role; switch-role never does.
                role_name = self._role_policy.resolve(requested)
                role = self._auth_port.get_role(name=role_name, role_type="client", active_only=True)
                if role is None:
                    raise ValidationError(f"Role '{role_name}' is not available.", user_id=user.id)
                self._auth_port.assign_role(
                    user_id=user.id,
                    role_id=role.id,
                    assigned_by=None,
                    assigned_at=now,
                )
                logger.info("login_otp: role_granted user_id=%s role=%s", user.id, role.name)
                active_role = role.name
                roles = [*roles, role.name]

        def _tx(auth_port: AuthPort) -> SessionTokens:
            tokens = issue_session_tokens(
                auth_port=auth_port,
                token_port=self._token_port,
                user_id=user.id,
                role=active_role,
                context=command.context,
                now=now,
            )
            auth_port.update_last_login(user_id=user.id, last_login_at=now)
            return tokens

        tokens = self._auth_port.execute_in_transaction(_tx)
        logger.info(
            "login_otp: logged_in user_id=%s role=%s device_id=%s",
            user.id,
            active_role,
            command.context.device_id,
        )
        return LoginOutput(
            user_id=user.id,
            role=active_role,
            roles=roles,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )
