from __future__ import annotations

from dataclasses import dataclass

from app.domain.exceptions import ValidationError


@dataclass(frozen=True)
class ClientRolePolicy:
    """Switchable client roles and the role given when a signup names none.

    Role names are matched case-insensitively and always returned in their
    configured spelling.
    """

    client_roles: tuple[str, ...]
    default_role: str

    def __post_init__(self) -> None:
        if not self.client_roles:
            raise ValueError("At least one client role must be configured.")
        canonical_default = self.canonical_name(self.default_role)
        if canonical_default is None:
            raise ValueError(f"Default client role '{self.default_role}' is not a client role.")
        object.__setattr__(self, "default_role", canonical_default)

    def canonical_name(self, role_name: str | None) -> str | None:
        if not role_name:
            return None
        key = role_name.strip().casefold()
        for name in self.client_roles:
            if name.casefold() == key:
                return name
        return None

    def resolve(self, role_name: str | None) -> str:
        if role_name is None or not role_name.strip():
            return self.default_role
        canonical = self.canonical_name(role_name)
        if canonical is None:
            allowed = ", ".join(self.client_roles)
            raise ValidationError(f"Invalid role '{role_name.strip()}'. Allowed roles: {allowed}.")
        return canonical
