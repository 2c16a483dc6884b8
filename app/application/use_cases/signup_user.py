from __future__ import annotations

import logging
from uuid import uuid4

from app.application.dto.auth import SignupInput, SignupOutput
from app.application.ports.auth_port import AuthPort
from app.application.ports.otp_port import OtpPort
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ValidationError
from app.domain.services.client_roles import ClientRolePolicy

from .auth_common import (
    ensure_identifiers_available,
    is_valid_email,
    issue_session_tokens,
    normalize_email,
    require_fields,
    utcnow,
    validated_mobile_number,
    verify_otp,
)


logger = logging.getLogger(__name__)


class SignupUserUseCase:
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

    def execute(self, command: SignupInput) -> SignupOutput:
        require_fields(
            {
                "mobileNumber": command.mobile_number,
                "email": command.email,
                "firstName": command.first_name,
                "lastName": command.last_name,
                "otp": command.otp,
                "verificationId": command.verification_id,
            }
        )

        email = normalize_email(command.email)
        if not is_valid_email(email):
            raise ValidationError("Invalid email format.")
        mobile_number = validated_mobile_number(command.mobile_number)
        registration_number = (command.registration_number or "").strip() or None

        verify_otp(
            otp_port=self._otp_port,
            verification_id=command.verification_id,
            code=command.otp,
        )

        def _tx(auth_port: AuthPort) -> SignupOutput:
            ensure_identifiers_available(
                identity_port=auth_port,
                mobile_number=mobile_number,
                email=email,
                registration_number=registration_number,
            )

            role_name = self._role_policy.resolve(command.role_name)
            role = auth_port.get_role(name=role_name, role_type="client", active_only=True)
            if role is None:
                raise ValidationError(f"Role '{role_name}' is not available.")

            now = utcnow()
            user = auth_port.create_user(
                user_id=str(uuid4()),
                mobile_number=mobile_number,
                email=email,
                first_name=command.first_name.strip(),
                last_name=command.last_name.strip(),
                registration_number=registration_number,
                account_type="client",
                created_at=now,
            )
            auth_port.assign_role(
                user_id=user.id,
                role_id=role.id,
                assigned_by=None,
                assigned_at=now,
            )
            tokens = issue_session_tokens(
                auth_port=auth_port,
                token_port=self._token_port,
                user_id=user.id,
                role=role.name,
                context=command.context,
                now=now,
            )
            return SignupOutput(
                user_id=user.id,
                role=role.name,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
            )

        output = self._auth_port.execute_in_transaction(_tx)
        logger.info("signup_user: created user_id=%s role=%s", output.user_id, output.role)
        return output
