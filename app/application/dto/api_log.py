from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ApiLogEntry:
    user_id: str | None
    http_method: str
    endpoint: str
    request_headers: dict[str, Any]
    request_body: dict[str, Any] | None
    query_params: dict[str, Any]
    response_status: int
    response_body: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    request_timestamp: datetime
    response_timestamp: datetime
    response_time_ms: int
    error_message: str | None
    stack_trace: str | None
    environment: str
