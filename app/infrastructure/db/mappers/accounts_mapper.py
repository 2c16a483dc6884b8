from __future__ import annotations

from typing import Any, Mapping

from app.domain.entities.user import RefreshTokenRecord, Role, User, UserRoleAssignment


def _as_str(value: Any) -> str:
    return str(value)


def _as_str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def map_row_to_user(row: Mapping[str, Any], roles: tuple[Role, ...] = ()) -> User:
    return User(
        id=_as_str(row["id"]),
        mobile_number=row["mobile_number"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        registration_number=row.get("registration_number"),
        account_type=row["account_type"],
        is_active=bool(row["is_active"]),
        last_login_at=row.get("last_login_at"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        roles=roles,
    )


def map_row_to_role(row: Mapping[str, Any]) -> Role:
    return Role(
        id=_as_str(row["id"]),
        name=row["name"],
        type=row["type"],
        is_active=bool(row["is_active"]),
    )


def map_row_to_user_role_assignment(row: Mapping[str, Any]) -> UserRoleAssignment:
    return UserRoleAssignment(
        user_id=_as_str(row["user_id"]),
        role_id=_as_str(row["role_id"]),
        assigned_by=_as_str_or_none(row.get("assigned_by")),
        assigned_at=row["assigned_at"],
    )


def map_row_to_refresh_token(row: Mapping[str, Any]) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        refresh_token=row["refresh_token"],
        expires_at=row["expires_at"],
        device_id=row.get("device_id"),
        user_agent=row.get("user_agent"),
        ip_address=row.get("ip_address"),
        is_active=bool(row["is_active"]),
        last_used_at=row.get("last_used_at"),
        revoked_reason=row.get("revoked_reason"),
        created_at=row["created_at"],
    )
