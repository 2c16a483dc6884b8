from __future__ import annotations

from datetime import datetime
from typing import Protocol

from app.application.dto.auth import TokenClaims


class TokenPort(Protocol):
    def issue_access_token(self, *, user_id: str, role: str, now: datetime) -> str:
        ...

    def issue_refresh_token(self, *, user_id: str, role: str, now: datetime) -> str:
        ...

    def verify_access_token(self, *, token: str) -> TokenClaims:
        ...

    def verify_refresh_token(self, *, token: str) -> TokenClaims:
        ...

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        ...
