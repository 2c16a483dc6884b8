from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _AuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    def log_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SendOtpRequest(_AuthRequest):
    mobile_number: str = Field(..., alias="mobileNumber", max_length=20)


class VerifyOtpRequest(_AuthRequest):
    verification_id: str = Field(..., alias="verificationId", max_length=128)
    otp: str = Field(..., max_length=12)


class SignupRequest(_AuthRequest):
    mobile_number: str = Field(..., alias="mobileNumber", max_length=20)
    email: str = Field(..., max_length=255)
    first_name: str = Field(..., alias="firstName", max_length=120)
    last_name: str = Field(..., alias="lastName", max_length=120)
    otp: str = Field(..., max_length=12)
    verification_id: str = Field(..., alias="verificationId", max_length=128)
    registration_number: str | None = Field(
        default=None,
        alias="registrationNumber",
        validation_alias=AliasChoices("registrationNumber", "registration_number", "reraNumber"),
        max_length=64,
    )
    role_name: str | None = Field(default=None, alias="roleName", max_length=64)
    device_id: str | None = Field(default=None, alias="deviceId", max_length=255)


class LoginRequest(_AuthRequest):
    mobile_number: str = Field(..., alias="mobileNumber", max_length=20)
    otp: str = Field(..., max_length=12)
    verification_id: str = Field(..., alias="verificationId", max_length=128)
    role_name: str | None = Field(default=None, alias="roleName", max_length=64)
    device_id: str | None = Field(default=None, alias="deviceId", max_length=255)


class SwitchRoleRequest(_AuthRequest):
    role_name: str = Field(..., alias="roleName", max_length=64)
    device_id: str | None = Field(default=None, alias="deviceId", max_length=255)
