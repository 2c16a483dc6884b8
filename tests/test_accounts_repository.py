from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
import unittest

from sqlalchemy.exc import IntegrityError

from app.domain.exceptions import ConflictError
from app.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_refresh_token,
    map_row_to_role,
    map_row_to_user,
)
from app.infrastructure.db.models.accounts import RefreshTokenModel
from app.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository


NOW = datetime(2026, 2, 1, 10, 0, 0, tzinfo=timezone.utc)


class FakeResult:
    def __init__(self, *, rowcount: int = 0, error: Exception | None = None):
        self.rowcount = rowcount
        self._error = error

    def mappings(self):
        return self

    def one(self):
        raise AssertionError("no row configured")


class FakeConnection:
    def __init__(self, results: list[FakeResult]):
        self._results = results
        self.statements: list[str] = []
        self.savepoints = 0

    def execute(self, statement, params=None):
        _ = params
        self.statements.append(str(statement))
        result = self._results.pop(0)
        if result._error is not None:
            raise result._error
        return result

    @contextmanager
    def begin_nested(self):
        self.savepoints += 1
        yield self


class FakeEngine:
    def __init__(self, results: list[FakeResult]):
        self.connection = FakeConnection(results)
        self.begins = 0

    @contextmanager
    def begin(self):
        self.begins += 1
        yield self.connection

    @contextmanager
    def connect(self):
        yield self.connection


class AccountsRepositoryTests(unittest.TestCase):
    def test_mapper_maps_user_with_roles(self):
        role = map_row_to_role({"id": "r-1", "name": "Owner", "type": "client", "is_active": True})
        user = map_row_to_user(
            {
                "id": "u-1",
                "mobile_number": "9876543210",
                "email": "a@x.com",
                "first_name": "A",
                "last_name": "B",
                "registration_number": None,
                "account_type": "client",
                "is_active": True,
                "last_login_at": None,
                "created_at": NOW,
                "updated_at": NOW,
            },
            roles=(role,),
        )
        self.assertEqual(user.role_names, ["Owner"])
        self.assertEqual(user.find_role("OWNER"), role)

    def test_mapper_maps_refresh_token_liveness(self):
        record = map_row_to_refresh_token(
            {
                "id": "t-1",
                "user_id": "u-1",
                "refresh_token": "token",
                "expires_at": NOW,
                "device_id": None,
                "user_agent": None,
                "ip_address": None,
                "is_active": True,
                "last_used_at": None,
                "revoked_reason": None,
                "created_at": NOW,
            }
        )
        self.assertTrue(record.is_live(datetime(2026, 1, 31, tzinfo=timezone.utc)))
        self.assertFalse(record.is_live(NOW))

    def test_transaction_binds_every_call_to_one_connection(self):
        engine = FakeEngine([FakeResult(rowcount=1), FakeResult(rowcount=1)])
        repo = SqlAccountsRepository(engine)

        def _tx(tx_repo):
            rotated = tx_repo.rotate_refresh_token(
                user_id="u-1",
                device_id="d-1",
                refresh_token="new",
                expires_at=NOW,
                user_agent=None,
                ip_address=None,
                rotated_at=NOW,
            )
            tx_repo.update_last_login(user_id="u-1", last_login_at=NOW)
            return rotated

        self.assertEqual(repo.execute_in_transaction(_tx), 1)
        self.assertEqual(engine.begins, 1)
        self.assertEqual(len(engine.connection.statements), 2)

    def test_revoke_reports_whether_an_active_row_changed(self):
        repo = SqlAccountsRepository(FakeEngine([FakeResult(rowcount=1), FakeResult(rowcount=0)]))

        self.assertTrue(repo.revoke_refresh_token(refresh_token="t", reason="logout", revoked_at=NOW))
        self.assertFalse(repo.revoke_refresh_token(refresh_token="t", reason="logout", revoked_at=NOW))

    def test_create_user_integrity_error_is_conflict(self):
        error = IntegrityError("INSERT", {}, Exception("duplicate key"))
        repo = SqlAccountsRepository(FakeEngine([FakeResult(error=error)]))

        with self.assertRaises(ConflictError):
            repo.create_user(
                user_id="u-1",
                mobile_number="9876543210",
                email="a@x.com",
                first_name="A",
                last_name="B",
                registration_number=None,
                account_type="client",
                created_at=NOW,
            )

    def test_create_refresh_token_on_taken_device_slot_is_conflict(self):
        error = IntegrityError("INSERT", {}, Exception("duplicate key uq_refresh_tokens_active_device"))
        engine = FakeEngine([FakeResult(rowcount=0), FakeResult(error=error)])
        repo = SqlAccountsRepository(engine)

        with self.assertRaises(ConflictError):
            repo.create_refresh_token(
                token_id="t-1",
                user_id="u-1",
                refresh_token="token",
                expires_at=NOW,
                device_id="d-1",
                user_agent=None,
                ip_address=None,
                created_at=NOW,
            )
        self.assertEqual(engine.connection.savepoints, 1)
        self.assertIn("revoked_reason = 'superseded'", engine.connection.statements[0])
        self.assertIn("INSERT INTO public.refresh_tokens", engine.connection.statements[1])

    def test_lock_user_sessions_locks_the_user_row(self):
        engine = FakeEngine([FakeResult()])
        repo = SqlAccountsRepository(engine)

        repo.lock_user_sessions(user_id="u-1")

        statement = engine.connection.statements[0]
        self.assertIn("FROM public.users", statement)
        self.assertIn("FOR UPDATE", statement)

    def test_active_device_slot_is_unique(self):
        indexes = {index.name: index for index in RefreshTokenModel.__table__.indexes}
        index = indexes["uq_refresh_tokens_active_device"]

        self.assertTrue(index.unique)
        self.assertEqual(str(index.dialect_options["postgresql"]["where"]), "is_active")
        self.assertEqual([str(expr) for expr in index.expressions][1], "coalesce(device_id, '')")

    def test_refresh_token_queries_are_scoped_to_device(self):
        source = Path("app/infrastructure/db/repositories/accounts_repository.py").read_text(encoding="utf-8")
        self.assertIn("device_id IS NOT DISTINCT FROM CAST(:device_id AS text)", source)
        self.assertIn("FOR UPDATE", source)
        self.assertIn("revoked_reason = 'superseded'", source)
        self.assertIn("WHERE refresh_token = :refresh_token\n              AND is_active = true", source)


if __name__ == "__main__":
    unittest.main()
