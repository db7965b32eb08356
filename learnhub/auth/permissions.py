"""Role-based access control for LearnHub.

Two roles, ordered by permission level:
- ADMIN (level 1): manages courses, resources and every enrollment
- STUDENT (level 0): enrolls in courses and tracks its own progress
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    STUDENT = "student"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.ADMIN: 1,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (0 for unknown roles)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.STUDENT)
        True
        >>> has_permission("student", "admin")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN


@dataclass(frozen=True)
class Actor:
    """The authenticated user a service call is made on behalf of."""

    id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    def can_access_student(self, student_id: UUID) -> bool:
        """Admins act on any student; students only on themselves."""
        return self.is_admin or str(self.id) == str(student_id)
