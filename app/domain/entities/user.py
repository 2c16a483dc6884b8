from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


AccountType = Literal["client", "internal"]
RoleType = Literal["client", "internal"]


@dataclass(frozen=True)
class Role:
    id: str
    name: str
    type: RoleType
    is_active: bool


@dataclass(frozen=True)
class User:
    id: str
    mobile_number: str
    email: str
    first_name: str
    last_name: str
    registration_number: str | None
    account_type: AccountType
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime
    roles: tuple[Role, ...] = ()

    @property
    def role_names(self) -> list[str]:
        return [role.name for role in self.roles]

    def find_role(self, name: str) -> Role | None:
        key = name.strip().casefold()
        for role in self.roles:
            if role.name.casefold() == key:
                return role
        return None


@dataclass(frozen=True)
class UserRoleAssignment:
    user_id: str
    role_id: str
    assigned_by: str | None
    assigned_at: datetime


@dataclass(frozen=True)
class RefreshTokenRecord:
    id: str
    user_id: str
    refresh_token: str
    expires_at: datetime
    device_id: str | None
    user_agent: str | None
    ip_address: str | None
    is_active: bool
    last_used_at: datetime | None
    revoked_reason: str | None
    created_at: datetime

    def is_live(self, now: datetime) -> bool:
        return self.is_active and self.expires_at > now
