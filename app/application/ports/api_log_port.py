from __future__ import annotations

from typing import Protocol

from app.application.dto.api_log import ApiLogEntry


class ApiLogPort(Protocol):
    def record(self, entry: ApiLogEntry) -> None:
        ...
