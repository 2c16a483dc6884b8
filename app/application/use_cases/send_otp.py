from __future__ import annotations

from app.application.dto.auth import OtpChallenge, SendOtpInput
from app.application.ports.otp_port import OtpPort

from .auth_common import require_fields, validated_mobile_number


class SendOtpUseCase:
    def __init__(self, *, otp_port: OtpPort):
        self._otp_port = otp_port

    def execute(self, command: SendOtpInput) -> OtpChallenge:
        require_fields({"mobileNumber": command.mobile_number})
        mobile_number = validated_mobile_number(command.mobile_number)
        return self._otp_port.send_otp(mobile_number=mobile_number)
