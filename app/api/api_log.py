from __future__ import annotations

import logging
from typing import Any, Mapping

from app.application.dto.api_log import ApiLogEntry
from app.application.ports.api_log_port import ApiLogPort


logger = logging.getLogger(__name__)


REDACTED = "[REDACTED]"
SUCCESS_MARKER = "[VERIFIED]"

_SECRET_KEYS = {"otp", "code", "accesstoken", "refreshtoken", "token", "password"}
_IDENTITY_KEYS = {"mobilenumber", "email"}
_SECRET_HEADERS = {"authorization", "cookie"}


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()


def redact_payload(payload: Any, *, success: bool) -> Any:
    """Mask OTP codes and tokens; on success also mask the caller's identity fields."""
    if isinstance(payload, Mapping):
        redacted = {}
        for key, value in payload.items():
            normalized = _normalize_key(str(key))
            if normalized in _SECRET_KEYS and value is not None:
                redacted[key] = REDACTED
            elif success and normalized in _IDENTITY_KEYS and value is not None:
                redacted[key] = SUCCESS_MARKER
            else:
                redacted[key] = redact_payload(value, success=success)
        return redacted
    if isinstance(payload, list):
        return [redact_payload(item, success=success) for item in payload]
    return payload


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        key: REDACTED if key.lower() in _SECRET_HEADERS else value
        for key, value in headers.items()
    }


class ApiLogRecorder:
    """Fire-and-forget sink for per-request audit records.

    A failing sink is logged and swallowed; it never changes the response.
    """

    def __init__(self, *, port: ApiLogPort | None):
        self._port = port

    def record(self, entry: ApiLogEntry) -> None:
        logger.info(
            "api_log: %s %s status=%s user_id=%s elapsed_ms=%s error=%s",
            entry.http_method,
            entry.endpoint,
            entry.response_status,
            entry.user_id,
            entry.response_time_ms,
            entry.error_message,
        )
        if self._port is None:
            return
        try:
            self._port.record(entry)
        except Exception:  # noqa: BLE001
            logger.exception(
                "api_log: record_failed endpoint=%s status=%s",
                entry.endpoint,
                entry.response_status,
            )
