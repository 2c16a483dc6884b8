from __future__ import annotations

import hmac
from uuid import uuid4

from app.application.dto.auth import OtpChallenge
from app.application.ports.otp_port import OtpPort
from app.domain.exceptions import InvalidOtpError, ValidationError


class StaticOtpClient(OtpPort):
    """Fixed-code OTP gateway for environments without an SMS provider."""

    def __init__(self, *, code: str, timeout_seconds: int = 60):
        self._code = code
        self._timeout_seconds = timeout_seconds

    def send_otp(self, *, mobile_number: str) -> OtpChallenge:
        if not mobile_number:
            raise ValidationError("Mobile number is required.")
        return OtpChallenge(verification_id=str(uuid4()), timeout_seconds=self._timeout_seconds)

    def verify_otp(self, *, verification_id: str, code: str) -> bool:
        if not verification_id or not code:
            raise ValidationError("Verification id and OTP are required.")
        if not hmac.compare_digest(code.encode("utf-8"), self._code.encode("utf-8")):
            raise InvalidOtpError("Invalid OTP entered.")
        return True
