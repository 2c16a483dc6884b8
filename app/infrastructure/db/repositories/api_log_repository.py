from __future__ import annotations

from sqlalchemy import insert

from app.application.dto.api_log import ApiLogEntry
from app.application.ports.api_log_port import ApiLogPort
from app.infrastructure.db.models.accounts import ApiLogModel


class SqlApiLogRepository(ApiLogPort):
    def __init__(self, engine):
        self._engine = engine

    def record(self, entry: ApiLogEntry) -> None:
        stmt = insert(ApiLogModel).values(
            user_id=entry.user_id,
            http_method=entry.http_method,
            endpoint=entry.endpoint,
            request_headers=entry.request_headers,
            request_body=entry.request_body,
            query_params=entry.query_params,
            response_status=entry.response_status,
            response_body=entry.response_body,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            request_timestamp=entry.request_timestamp,
            response_timestamp=entry.response_timestamp,
            response_time_ms=entry.response_time_ms,
            error_message=entry.error_message,
            stack_trace=entry.stack_trace,
            environment=entry.environment,
        )
        with self._engine.begin() as conn:
            conn.execute(stmt)
