# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authenticated principal passed from the API layer into services."""

from dataclasses import dataclass

from src.infrastructure.database.models.user import UserRole


@dataclass(frozen=True)
class Principal:
    """Identity of the caller of a domain operation.

    Attributes:
        id: User identifier.
        role: Role claim of the user.
    """

    id: str
    role: str

    def has_any_role(self, *roles: str) -> bool:
        """Check if the principal holds any of the roles."""
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        """Check if the principal is an administrator."""
        return self.role == UserRole.ADMIN.value

    @property
    def is_manager(self) -> bool:
        """Check if the principal is a manager."""
        return self.role == UserRole.MANAGER.value

    @property
    def is_teacher(self) -> bool:
        """Check if the principal is a teacher."""
        return self.role == UserRole.TEACHER.value

    @property
    def is_receptionist(self) -> bool:
        """Check if the principal is a receptionist."""
        return self.role == UserRole.RECEPTIONIST.value
