"""Caller identity passed explicitly into every lifecycle operation."""

import uuid
from dataclasses import dataclass

from app.errors import NotAuthorized
from app.models.user import UserRole


@dataclass(frozen=True)
class Principal:
    user_id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR

    def require_role(self, *roles: UserRole) -> None:
        if self.role not in roles:
            raise NotAuthorized(f"Role '{self.role.value}' may not perform this operation")
