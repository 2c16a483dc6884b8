from __future__ import annotations

import copy
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.application.dto.auth import OtpChallenge
from app.domain.entities.user import RefreshTokenRecord, Role, User, UserRoleAssignment
from app.domain.exceptions import InvalidOtpError
from app.domain.services.client_roles import ClientRolePolicy
from app.infrastructure.security.token_service import JwtTokenService


VALID_OTP = "123456"


class FakeAuthPort:
    """In-memory users, roles and refresh tokens with all-or-nothing transactions."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.roles: dict[str, Role] = {}
        self.user_roles: list[UserRoleAssignment] = []
        self.refresh_tokens: dict[str, RefreshTokenRecord] = {}
        self.fail_on_create_refresh_token = False
        self.transactions = 0
        self.calls: list[tuple[str, str]] = []
        for name in ("Owner", "Investor", "Broker"):
            self.add_role(name, "client")
        self.add_role("Admin", "internal")

    def add_role(self, name: str, role_type: str, *, is_active: bool = True) -> Role:
        role = Role(id=str(uuid4()), name=name, type=role_type, is_active=is_active)
        self.roles[role.id] = role
        return role

    def add_user(self, *, mobile_number: str, email: str, roles: tuple[str, ...] = ("Broker",)) -> User:
        now = datetime.now(timezone.utc)
        user = self.create_user(
            user_id=str(uuid4()),
            mobile_number=mobile_number,
            email=email,
            first_name="Test",
            last_name="User",
            registration_number=None,
            account_type="client",
            created_at=now,
        )
        for name in roles:
            role = self.get_role(name=name, role_type="client")
            self.assign_role(user_id=user.id, role_id=role.id, assigned_by=None, assigned_at=now)
        return user

    def active_tokens(self, *, user_id: str, device_id: str | None = None) -> list[RefreshTokenRecord]:
        return [
            record
            for record in self.refresh_tokens.values()
            if record.user_id == user_id and record.device_id == device_id and record.is_active
        ]

    def execute_in_transaction(self, fn):
        snapshot = copy.deepcopy((self.users, self.roles, self.user_roles, self.refresh_tokens))
        self.transactions += 1
        try:
            return fn(self)
        except Exception:
            self.users, self.roles, self.user_roles, self.refresh_tokens = snapshot
            raise

    def find_user_by_identifiers(self, *, mobile_number=None, email=None, registration_number=None):
        for user in self.users.values():
            if not user.is_active:
                continue
            if mobile_number and user.mobile_number == mobile_number:
                return user
            if email and user.email.lower() == email.lower():
                return user
            if registration_number and user.registration_number == registration_number:
                return user
        return None

    def get_active_user_by_id(self, *, user_id: str, with_roles: bool):
        user = self.users.get(user_id)
        if user is None or not user.is_active:
            return None
        if not with_roles:
            return user
        roles = tuple(
            self.roles[assignment.role_id]
            for assignment in self.user_roles
            if assignment.user_id == user_id and self.roles[assignment.role_id].is_active
        )
        return replace(user, roles=roles)

    def create_user(
        self,
        *,
        user_id,
        mobile_number,
        email,
        first_name,
        last_name,
        registration_number,
        account_type,
        created_at,
    ):
        user = User(
            id=user_id,
            mobile_number=mobile_number,
            email=email,
            first_name=first_name,
            last_name=last_name,
            registration_number=registration_number,
            account_type=account_type,
            is_active=True,
            last_login_at=None,
            created_at=created_at,
            updated_at=created_at,
        )
        self.users[user.id] = user
        return user

    def assign_role(self, *, user_id, role_id, assigned_by, assigned_at):
        for assignment in self.user_roles:
            if assignment.user_id == user_id and assignment.role_id == role_id:
                return assignment
        assignment = UserRoleAssignment(
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
            assigned_at=assigned_at,
        )
        self.user_roles.append(assignment)
        return assignment

    def get_role(self, *, name, role_type, active_only=True):
        for role in self.roles.values():
            if role.name.lower() != name.strip().lower() or role.type != role_type:
                continue
            if active_only and not role.is_active:
                continue
            return role
        return None

    def update_last_login(self, *, user_id, last_login_at):
        user = self.users[user_id]
        self.users[user_id] = replace(user, last_login_at=last_login_at, updated_at=last_login_at)

    def lock_user_sessions(self, *, user_id):
        self.calls.append(("lock", user_id))

    def _newest_active_token(self, *, user_id, device_id):
        active = self.active_tokens(user_id=user_id, device_id=device_id)
        if not active:
            return None
        return max(active, key=lambda record: record.created_at)

    def get_refresh_token(self, *, refresh_token):
        for record in self.refresh_tokens.values():
            if record.refresh_token == refresh_token:
                return record
        return None

    def rotate_refresh_token(
        self,
        *,
        user_id,
        device_id,
        refresh_token,
        expires_at,
        user_agent,
        ip_address,
        rotated_at,
    ):
        self.calls.append(("rotate", user_id))
        current = self._newest_active_token(user_id=user_id, device_id=device_id)
        if current is None:
            return 0
        self.refresh_tokens[current.id] = replace(
            current,
            refresh_token=refresh_token,
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=ip_address,
            last_used_at=rotated_at,
        )
        return 1

    def create_refresh_token(
        self,
        *,
        token_id,
        user_id,
        refresh_token,
        expires_at,
        device_id,
        user_agent,
        ip_address,
        created_at,
    ):
        if self.fail_on_create_refresh_token:
            raise RuntimeError("refresh token insert failed")
        for record in self.active_tokens(user_id=user_id, device_id=device_id):
            self.refresh_tokens[record.id] = replace(record, is_active=False, revoked_reason="superseded")
        record = RefreshTokenRecord(
            id=token_id,
            user_id=user_id,
            refresh_token=refresh_token,
            expires_at=expires_at,
            device_id=device_id,
            user_agent=user_agent,
            ip_address=ip_address,
            is_active=True,
            last_used_at=None,
            revoked_reason=None,
            created_at=created_at,
        )
        self.refresh_tokens[record.id] = record
        return record

    def revoke_refresh_token(self, *, refresh_token, reason, revoked_at):
        _ = revoked_at
        record = self.get_refresh_token(refresh_token=refresh_token)
        if record is None or not record.is_active:
            return False
        self.refresh_tokens[record.id] = replace(record, is_active=False, revoked_reason=reason)
        return True

    def touch_refresh_token(self, *, token_id, used_at):
        record = self.refresh_tokens[token_id]
        self.refresh_tokens[token_id] = replace(record, last_used_at=used_at)


class FakeOtpPort:
    def __init__(self, *, code: str = VALID_OTP, verify_result=True):
        self._code = code
        self._verify_result = verify_result
        self.sent: list[str] = []
        self.verified: list[tuple[str, str]] = []

    def send_otp(self, *, mobile_number: str) -> OtpChallenge:
        self.sent.append(mobile_number)
        return OtpChallenge(verification_id="verification-1", timeout_seconds=60)

    def verify_otp(self, *, verification_id: str, code: str):
        self.verified.append((verification_id, code))
        if code != self._code:
            raise InvalidOtpError("Invalid OTP entered.")
        return self._verify_result


@pytest.fixture
def auth_port() -> FakeAuthPort:
    return FakeAuthPort()


@pytest.fixture
def otp_port() -> FakeOtpPort:
    return FakeOtpPort()


@pytest.fixture
def token_service() -> JwtTokenService:
    return JwtTokenService(jwt_secret="test-secret", refresh_token_expiry="7d")


@pytest.fixture
def role_policy() -> ClientRolePolicy:
    return ClientRolePolicy(client_roles=("Owner", "Investor", "Broker"), default_role="Broker")
