from __future__ import annotations

from typing import Protocol

from app.application.dto.auth import OtpChallenge


class OtpPort(Protocol):
    def send_otp(self, *, mobile_number: str) -> OtpChallenge:
        ...

    def verify_otp(self, *, verification_id: str, code: str) -> bool:
        ...
