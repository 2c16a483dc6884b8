from __future__ import annotations

from uuid import uuid4

from sqlalchemy import text


CLIENT_ROLE_NAMES = ("Owner", "Investor", "Broker")
INTERNAL_ROLE_NAMES = ("SuperAdmin", "Admin", "SalesManager")


def seed_roles(engine, *, client_roles: tuple[str, ...] = CLIENT_ROLE_NAMES) -> None:
    rows = [(name, "client") for name in client_roles]
    rows.extend((name, "internal") for name in INTERNAL_ROLE_NAMES)
    with engine.begin() as conn:
        for name, role_type in rows:
            conn.execute(
                text(
                    """
                    INSERT INTO public.roles (id, name, type, is_active)
                    VALUES (:id, :name, :type, true)
                    ON CONFLICT (name, type) DO NOTHING
                    """
                ),
                {
                    "id": str(uuid4()),
                    "name": name,
                    "type": role_type,
                },
            )
