from __future__ import annotations

from app.application.dto.auth import VerifyOtpInput
from app.application.ports.otp_port import OtpPort

from .auth_common import require_fields, verify_otp


class VerifyOtpUseCase:
    def __init__(self, *, otp_port: OtpPort):
        self._otp_port = otp_port

    def execute(self, command: VerifyOtpInput) -> bool:
        require_fields({"verificationId": command.verification_id, "otp": command.otp})
        verify_otp(
            otp_port=self._otp_port,
            verification_id=command.verification_id,
            code=command.otp,
        )
        return True
