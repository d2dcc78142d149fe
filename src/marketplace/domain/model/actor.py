"""The authenticated identity a use case runs on behalf of.

Authentication itself happens upstream; the core trusts what it is given
and only checks roles and ownership.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from marketplace.domain.exceptions import PermissionDeniedError, ValidationError


class Role(Enum):
    CUSTOMER = "customer"
    FARMER = "farmer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    def __post_init__(self) -> None:
        if not self.user_id or not str(self.user_id).strip():
            raise ValidationError("Actor user id is required")

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def require_role(self, *roles: Role) -> None:
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise PermissionDeniedError(
                f"Role '{self.role.value}' may not perform this action (requires {allowed})"
            )

    @staticmethod
    def of(user_id: str, role: str) -> Actor:
        try:
            return Actor(user_id=user_id, role=Role(role))
        except ValueError as exc:
            raise ValidationError(f"Unknown role: {role!r}") from exc
