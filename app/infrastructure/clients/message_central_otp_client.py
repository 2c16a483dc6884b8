from __future__ import annotations

import base64
from dataclasses import dataclass
import logging
from threading import Lock
import time
from typing import Any, Callable

import httpx

from app.application.dto.auth import OtpChallenge
from app.application.ports.otp_port import OtpPort
from app.domain.exceptions import (
    ConfigurationError,
    InvalidOtpError,
    OtpExpiredError,
    RateLimitedError,
    UpstreamError,
    ValidationError,
)


logger = logging.getLogger(__name__)


RESPONSE_CODE_SUCCESS = 200
RESPONSE_CODE_INVALID_OTP = 702
RESPONSE_CODE_OTP_EXPIRED = 705
RESPONSE_CODE_MAX_ATTEMPTS = 800
VERIFICATION_COMPLETED = "VERIFICATION_COMPLETED"


@dataclass(frozen=True)
class MessageCentralSettings:
    base_url: str
    customer_id: str
    password: str
    country_code: str = "91"
    otp_length: int = 6
    timeout_seconds: float = 10
    auth_token_ttl_seconds: float = 20 * 60
    auth_token_refresh_margin_seconds: float = 5 * 60


class MessageCentralOtpClient(OtpPort):
    """OTP gateway backed by the MessageCentral verification API.

    The provider auth token is owned by this instance. It is reused until a
    refresh margin before its expiry and dropped whenever the provider
    answers 401, so the next call re-authenticates.
    """

    def __init__(
        self,
        settings: MessageCentralSettings,
        *,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._transport = transport
        self._clock = clock
        self._lock = Lock()
        self._auth_token: str | None = None
        self._auth_token_expires_at: float | None = None

    def send_otp(self, *, mobile_number: str) -> OtpChallenge:
        if not mobile_number:
            raise ValidationError("Mobile number is required.")

        response, payload = self._request(
            "POST",
            "/verification/v3/send",
            params={
                "countryCode": self._settings.country_code,
                "customerId": self._settings.customer_id,
                "flowType": "SMS",
                "mobileNumber": mobile_number,
                "otpLength": self._settings.otp_length,
            },
        )

        data = payload.get("data") or {}
        verification_id = data.get("verificationId")
        if payload.get("responseCode") != RESPONSE_CODE_SUCCESS or not verification_id:
            logger.warning(
                "message_central_otp_client: send_failed status=%s response_code=%s",
                response.status_code,
                payload.get("responseCode"),
            )
            raise UpstreamError(payload.get("message") or "Failed to send OTP. Please try again.")

        return OtpChallenge(
            verification_id=str(verification_id),
            timeout_seconds=_timeout_seconds(data.get("timeout")),
        )

    def verify_otp(self, *, verification_id: str, code: str) -> bool:
        if not verification_id or not code:
            raise ValidationError("Verification id and OTP are required.")

        _, payload = self._request(
            "GET",
            "/verification/v3/validateOtp",
            params={
                "verificationId": verification_id,
                "code": code,
                "flowType": "SMS",
            },
        )

        response_code = payload.get("responseCode")
        if response_code == RESPONSE_CODE_INVALID_OTP:
            raise InvalidOtpError("Invalid OTP entered.")
        if response_code == RESPONSE_CODE_OTP_EXPIRED:
            raise OtpExpiredError("OTP has expired. Please request a new one.")
        if response_code == RESPONSE_CODE_MAX_ATTEMPTS:
            raise RateLimitedError("Maximum verification attempts reached. Please request a new OTP.")

        status = (payload.get("data") or {}).get("verificationStatus")
        if response_code != RESPONSE_CODE_SUCCESS or status != VERIFICATION_COMPLETED:
            logger.warning(
                "message_central_otp_client: verify_failed response_code=%s status=%s",
                response_code,
                status,
            )
            raise UpstreamError(payload.get("message") or "OTP verification failed. Please try again.")
        return True

    def invalidate_auth_token(self) -> None:
        with self._lock:
            self._auth_token = None
            self._auth_token_expires_at = None

    def _get_auth_token(self) -> str:
        with self._lock:
            now = self._clock()
            if (
                self._auth_token
                and self._auth_token_expires_at is not None
                and now < self._auth_token_expires_at - self._settings.auth_token_refresh_margin_seconds
            ):
                return self._auth_token

            if not self._settings.customer_id or not self._settings.password:
                raise ConfigurationError("MessageCentral credentials not configured.")

            key = base64.b64encode(self._settings.password.encode("utf-8")).decode("ascii")
            try:
                with self._client() as client:
                    response = client.get(
                        f"{self._base_url}/auth/v1/authentication/token",
                        params={
                            "customerId": self._settings.customer_id,
                            "key": key,
                            "scope": "NEW",
                            "country": self._settings.country_code,
                        },
                    )
                payload = _json_body(response)
            except httpx.HTTPError as exc:
                raise UpstreamError("MessageCentral authentication request failed.") from exc

            token = payload.get("token")
            if not response.is_success or not token:
                logger.warning(
                    "message_central_otp_client: auth_failed status=%s",
                    response.status_code,
                )
                raise UpstreamError("Failed to get MessageCentral auth token.")

            self._auth_token = str(token)
            self._auth_token_expires_at = now + self._settings.auth_token_ttl_seconds
            return self._auth_token

    def _request(self, method: str, path: str, *, params: dict[str, Any]) -> tuple[httpx.Response, dict]:
        token = self._get_auth_token()
        try:
            with self._client() as client:
                response = client.request(
                    method,
                    f"{self._base_url}{path}",
                    params=params,
                    headers={"authToken": token},
                )
        except httpx.HTTPError as exc:
            raise UpstreamError("OTP provider request failed.") from exc

        if response.status_code == 401:
            logger.info("message_central_otp_client: auth_token_rejected path=%s", path)
            self.invalidate_auth_token()
            raise UpstreamError("OTP provider rejected the credentials. Please try again.")

        return response, _json_body(response)

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._settings.timeout_seconds, transport=self._transport)


def _json_body(response: httpx.Response) -> dict:
    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamError("OTP provider returned an invalid response.") from exc
    if not isinstance(payload, dict):
        raise UpstreamError("OTP provider returned an invalid response.")
    return payload


def _timeout_seconds(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        logger.warning("message_central_otp_client: invalid_timeout value=%r", value)
        return None
