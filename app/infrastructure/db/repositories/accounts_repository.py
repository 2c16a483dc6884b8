from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.application.ports.auth_port import AuthPort
from app.domain.exceptions import ConflictError
from app.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_refresh_token,
    map_row_to_role,
    map_row_to_user,
    map_row_to_user_role_assignment,
)


TResult = TypeVar("TResult")

_USER_COLUMNS = """
    id, mobile_number, email, first_name, last_name, registration_number, account_type,
    is_active, last_login_at, created_at, updated_at
"""

_REFRESH_TOKEN_COLUMNS = """
    id, user_id, refresh_token, expires_at, device_id, user_agent, ip_address,
    is_active, last_used_at, revoked_reason, created_at
"""


class SqlAccountsRepository(AuthPort):
    """Users, role assignments and refresh tokens.

    Outside a transaction every method runs on its own connection. Inside
    ``execute_in_transaction`` the callback gets a repository bound to a
    single transactional connection, so all of its writes commit or roll
    back together.
    """

    def __init__(self, engine, *, connection=None):
        self._engine = engine
        self._connection = connection

    def execute_in_transaction(self, fn: Callable[[AuthPort], TResult]) -> TResult:
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlAccountsRepository(self._engine, connection=conn))

    def _connect(self):
        if self._connection is not None:
            return nullcontext(self._connection)
        return self._engine.connect()

    def _begin(self):
        if self._connection is not None:
            return nullcontext(self._connection)
        return self._engine.begin()

    def find_user_by_identifiers(
        self,
        *,
        mobile_number: str | None = None,
        email: str | None = None,
        registration_number: str | None = None,
    ):
        if not (mobile_number or email or registration_number):
            return None
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE is_active = true
              AND (
                (CAST(:mobile_number AS text) IS NOT NULL AND mobile_number = :mobile_number)
                OR (CAST(:email AS text) IS NOT NULL AND lower(email) = :email)
                OR (CAST(:registration_number AS text) IS NOT NULL AND registration_number = :registration_number)
              )
            ORDER BY created_at
            LIMIT 1
        """
        params = {
            "mobile_number": mobile_number,
            "email": email.lower() if email else None,
            "registration_number": registration_number,
        }
        with self._connect() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def get_active_user_by_id(self, *, user_id: str, with_roles: bool):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
              AND is_active = true
            LIMIT 1
        """
        roles_sql = """
            SELECT r.id, r.name, r.type, r.is_active
            FROM public.user_roles ur
            JOIN public.roles r
              ON r.id = ur.role_id
            WHERE ur.user_id = :user_id
              AND r.is_active = true
            ORDER BY ur.assigned_at, r.name
        """
        with self._connect() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
            if row is None:
                return None
            roles: tuple = ()
            if with_roles:
                role_rows = conn.execute(text(roles_sql), {"user_id": user_id}).mappings().all()
                roles = tuple(map_row_to_role(role_row) for role_row in role_rows)
        return map_row_to_user(row, roles=roles)

    def create_user(
        self,
        *,
        user_id: str,
        mobile_number: str,
        email: str,
        first_name: str,
        last_name: str,
        registration_number: str | None,
        account_type: str,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.users (
                id, mobile_number, email, first_name, last_name, registration_number, account_type,
                is_active, created_at, updated_at
            ) VALUES (
                :id, :mobile_number, :email, :first_name, :last_name, :registration_number, :account_type,
                true, :created_at, :created_at
            )
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "mobile_number": mobile_number,
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "registration_number": registration_number,
            "account_type": account_type,
            "created_at": created_at,
        }
        try:
            with self._begin() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            raise ConflictError("Account already exists.") from exc
        return map_row_to_user(row)

    def assign_role(
        self,
        *,
        user_id: str,
        role_id: str,
        assigned_by: str | None,
        assigned_at: datetime,
    ):
        sql = """
            INSERT INTO public.user_roles (user_id, role_id, assigned_by, assigned_at)
            VALUES (:user_id, :role_id, :assigned_by, :assigned_at)
            ON CONFLICT (user_id, role_id) DO UPDATE
            SET user_id = EXCLUDED.user_id
            RETURNING user_id, role_id, assigned_by, assigned_at
        """
        with self._begin() as conn:
            row = conn.execute(
                text(sql),
                {
                    "user_id": user_id,
                    "role_id": role_id,
                    "assigned_by": assigned_by,
                    "assigned_at": assigned_at,
                },
            ).mappings().one()
        return map_row_to_user_role_assignment(row)

    def get_role(self, *, name: str, role_type: str, active_only: bool = True):
        sql = """
            SELECT id, name, type, is_active
            FROM public.roles
            WHERE lower(name) = :name
              AND type = :role_type
              AND (is_active = true OR :active_only = false)
            LIMIT 1
        """
        with self._connect() as conn:
            row = conn.execute(
                text(sql),
                {
                    "name": name.strip().lower(),
                    "role_type": role_type,
                    "active_only": active_only,
                },
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_role(row)

    def update_last_login(self, *, user_id: str, last_login_at: datetime) -> None:
        sql = """
            UPDATE public.users
            SET last_login_at = :last_login_at,
                updated_at = :last_login_at
            WHERE id = :user_id
        """
        with self._begin() as conn:
            conn.execute(text(sql), {"user_id": user_id, "last_login_at": last_login_at})

    def lock_user_sessions(self, *, user_id: str) -> None:
        # Held until the surrounding transaction ends.
        sql = """
            SELECT id
            FROM public.users
            WHERE id = :user_id
            FOR UPDATE
        """
        with self._begin() as conn:
            conn.execute(text(sql), {"user_id": user_id})

    def get_refresh_token(self, *, refresh_token: str):
        sql = f"""
            SELECT {_REFRESH_TOKEN_COLUMNS}
            FROM public.refresh_tokens
            WHERE refresh_token = :refresh_token
            LIMIT 1
        """
        with self._connect() as conn:
            row = conn.execute(text(sql), {"refresh_token": refresh_token}).mappings().first()
        if row is None:
            return None
        return map_row_to_refresh_token(row)

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
        # Only the newest active row for the device is rotated; the row lock
        # makes a concurrent rotation wait and then see the committed state.
        sql = """
            UPDATE public.refresh_tokens
            SET refresh_token = :refresh_token,
                expires_at = :expires_at,
                user_agent = :user_agent,
                ip_address = :ip_address,
                last_used_at = :rotated_at,
                updated_at = :rotated_at
            WHERE id = (
                SELECT id
                FROM public.refresh_tokens
                WHERE user_id = :user_id
                  AND device_id IS NOT DISTINCT FROM CAST(:device_id AS text)
                  AND is_active = true
                ORDER BY created_at DESC
                LIMIT 1
                FOR UPDATE
            )
              AND is_active = true
        """
        with self._begin() as conn:
            result = conn.execute(
                text(sql),
                {
                    "user_id": user_id,
                    "device_id": device_id,
                    "refresh_token": refresh_token,
                    "expires_at": expires_at,
                    "user_agent": user_agent,
                    "ip_address": ip_address,
                    "rotated_at": rotated_at,
                },
            )
        return result.rowcount

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
    ):
        supersede_sql = """
            UPDATE public.refresh_tokens
            SET is_active = false,
                revoked_reason = 'superseded',
                updated_at = :created_at
            WHERE user_id = :user_id
              AND device_id IS NOT DISTINCT FROM CAST(:device_id AS text)
              AND is_active = true
        """
        insert_sql = f"""
            INSERT INTO public.refresh_tokens (
                id, user_id, refresh_token, expires_at, device_id, user_agent, ip_address,
                is_active, created_at, updated_at
            ) VALUES (
                :id, :user_id, :refresh_token, :expires_at, :device_id, :user_agent, :ip_address,
                true, :created_at, :created_at
            )
            RETURNING {_REFRESH_TOKEN_COLUMNS}
        """
        with self._begin() as conn:
            conn.execute(
                text(supersede_sql),
                {"user_id": user_id, "device_id": device_id, "created_at": created_at},
            )
            try:
                with conn.begin_nested():
                    row = conn.execute(
                        text(insert_sql),
                        {
                            "id": token_id,
                            "user_id": user_id,
                            "refresh_token": refresh_token,
                            "expires_at": expires_at,
                            "device_id": device_id,
                            "user_agent": user_agent,
                            "ip_address": ip_address,
                            "created_at": created_at,
                        },
                    ).mappings().one()
            except IntegrityError as exc:
                raise ConflictError("Refresh token slot is already taken.") from exc
        return map_row_to_refresh_token(row)

    def revoke_refresh_token(self, *, refresh_token: str, reason: str, revoked_at: datetime) -> bool:
        sql = """
            UPDATE public.refresh_tokens
            SET is_active = false,
                revoked_reason = :reason,
                updated_at = :revoked_at
            WHERE refresh_token = :refresh_token
              AND is_active = true
        """
        with self._begin() as conn:
            result = conn.execute(
                text(sql),
                {
                    "refresh_token": refresh_token,
                    "reason": reason,
                    "revoked_at": revoked_at,
                },
            )
        return result.rowcount > 0

    def touch_refresh_token(self, *, token_id: str, used_at: datetime) -> None:
        sql = """
            UPDATE public.refresh_tokens
            SET last_used_at = :used_at
            WHERE id = :token_id
        """
        with self._begin() as conn:
            conn.execute(text(sql), {"token_id": token_id, "used_at": used_at})
