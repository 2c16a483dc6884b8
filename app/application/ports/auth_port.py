from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from app.domain.entities.user import AccountType, RefreshTokenRecord, Role, RoleType, User, UserRoleAssignment


TAuthResult = TypeVar("TAuthResult")


class IdentityPort(Protocol):
    def find_user_by_identifiers(
        self,
        *,
        mobile_number: str | None = None,
        email: str | None = None,
        registration_number: str | None = None,
    ) -> User | None:
        ...

    def get_active_user_by_id(self, *, user_id: str, with_roles: bool) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        mobile_number: str,
        email: str,
        first_name: str,
        last_name: str,
        registration_number: str | None,
        account_type: AccountType,
        created_at: datetime,
    ) -> User:
        ...

    def assign_role(
        self,
        *,
        user_id: str,
        role_id: str,
        assigned_by: str | None,
        assigned_at: datetime,
    ) -> UserRoleAssignment:
        ...

    def get_role(self, *, name: str, role_type: RoleType, active_only: bool = True) -> Role | None:
        ...

    def update_last_login(self, *, user_id: str, last_login_at: datetime) -> None:
        ...


class RefreshTokenStorePort(Protocol):
    def lock_user_sessions(self, *, user_id: str) -> None:
        ...

    def get_refresh_token(self, *, refresh_token: str) -> RefreshTokenRecord | None:
        ...

    def rotate_refresh_token(
        self,
        *,
        user_id: str,
        device_id: str | None,
        refresh_token: str,
        expires_at: datetime,
        user_agent: str | None,
        ip_address: str | None,
        rotated_at: datetime,
    ) -> int:
        ...

    def create_refresh_token(
        self,
        *,
        token_id: str,
        user_id: str,
        refresh_token: str,
        expires_at: datetime,
        device_id: str | None,
        user_agent: str | None,
        ip_address: str | None,
        created_at: datetime,
    ) -> RefreshTokenRecord:
        ...

    def revoke_refresh_token(self, *, refresh_token: str, reason: str, revoked_at: datetime) -> bool:
        ...

    def touch_refresh_token(self, *, token_id: str, used_at: datetime) -> None:
        ...


class AuthPort(IdentityPort, RefreshTokenStorePort, Protocol):
    def execute_in_transaction(self, fn: Callable[[AuthPort], TAuthResult]) -> TAuthResult:
        ...
