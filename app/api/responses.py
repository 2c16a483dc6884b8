from __future__ import annotations

from dataclasses import dataclass
import logging
import time
import traceback
from typing import Any, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask

from app.api.api_log import ApiLogRecorder, redact_headers, redact_payload
from app.api.auth import client_ip
from app.application.dto.api_log import ApiLogEntry
from app.application.use_cases.auth_common import utcnow
from app.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)


logger = logging.getLogger(__name__)


INTERNAL_ERROR_MESSAGE = "Internal server error."

ERROR_STATUS_CODES: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (UnauthorizedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (RateLimitedError, 429),
    (UpstreamError, 500),
    (InternalError, 500),
)


@dataclass(frozen=True)
class ApiResult:
    message: str
    data: dict[str, Any] | None = None
    user_id: str | None = None
    status_code: int = 200


def envelope(*, success: bool, message: str, data: dict[str, Any] | None) -> dict[str, Any]:
    return {"success": success, "message": message, "data": data}


def error_status(exc: Exception) -> tuple[int, str]:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            if isinstance(exc, InternalError):
                return status_code, INTERNAL_ERROR_MESSAGE
            return status_code, str(exc) or INTERNAL_ERROR_MESSAGE
    return 500, INTERNAL_ERROR_MESSAGE


class AuthResponder:
    """Runs one auth action and turns its outcome into a JSON envelope.

    Every outcome, success or failure, also produces one redacted
    ``ApiLogEntry`` that is written after the response is sent.
    """

    def __init__(self, *, recorder: ApiLogRecorder, environment: str, expose_error_details: bool = False):
        self._recorder = recorder
        self._environment = environment
        self._expose_error_details = expose_error_details

    def run(
        self,
        *,
        request: Request,
        request_body: dict[str, Any] | None,
        action: Callable[[], ApiResult],
    ) -> JSONResponse:
        request_timestamp = utcnow()
        started = time.perf_counter()
        user_id = None
        error_message = None
        stack_trace = None

        try:
            result = action()
        except Exception as exc:  # noqa: BLE001
            status_code, message = error_status(exc)
            user_id = getattr(exc, "user_id", None)
            error_message = str(exc) or exc.__class__.__name__
            stack_trace = traceback.format_exc()
            if status_code >= 500:
                logger.exception(
                    "auth_responder: failed endpoint=%s status=%s",
                    request.url.path,
                    status_code,
                )
            else:
                logger.warning(
                    "auth_responder: rejected endpoint=%s status=%s detail=%s",
                    request.url.path,
                    status_code,
                    error_message,
                )
            data = None
            if self._expose_error_details:
                data = {"error": exc.__class__.__name__, "stackTrace": stack_trace}
            success = False
        else:
            status_code = result.status_code
            message = result.message
            data = result.data
            user_id = result.user_id
            success = True

        body = envelope(success=success, message=message, data=data)
        response = JSONResponse(status_code=status_code, content=body)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        entry = ApiLogEntry(
            user_id=user_id,
            http_method=request.method,
            endpoint=request.url.path,
            request_headers=redact_headers(request.headers),
            request_body=redact_payload(request_body, success=success),
            query_params=dict(request.query_params),
            response_status=status_code,
            response_body=redact_payload(body, success=success),
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            request_timestamp=request_timestamp,
            response_timestamp=utcnow(),
            response_time_ms=elapsed_ms,
            error_message=error_message,
            stack_trace=stack_trace,
            environment=self._environment,
        )
        response.background = BackgroundTask(self._recorder.record, entry)
        return response
