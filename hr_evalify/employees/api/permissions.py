"""Role resolution and permission classes shared by the evaluation APIs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import BasePermission

ROLE_ADMIN = "Admin"
ROLE_HR = "HR"
ROLE_MANAGER = "Manager"
ROLE_REVIEWER = "Reviewer"
ROLE_EVALUATOR = "Evaluator"
ROLE_EMPLOYEE = "Employee"

# Highest first; a user in several groups resolves to the first match.
ALL_ROLES = (
    ROLE_ADMIN,
    ROLE_HR,
    ROLE_MANAGER,
    ROLE_REVIEWER,
    ROLE_EVALUATOR,
    ROLE_EMPLOYEE,
)
ELEVATED_ROLES = (ROLE_ADMIN, ROLE_HR)
CREATOR_ROLES = (ROLE_ADMIN, ROLE_HR, ROLE_EVALUATOR)


def _user_in_groups(user, names: Iterable[str]) -> bool:
    groups = getattr(user, "groups", None)
    names_list = list(names)
    if not groups or not names_list:
        return False
    return groups.filter(name__in=names_list).exists()


def resolve_role(user) -> str:
    """Return the single effective role name for ``user``."""

    if getattr(user, "is_superuser", False) or getattr(user, "is_staff", False):
        return ROLE_ADMIN
    groups = getattr(user, "groups", None)
    if groups is None:
        return ROLE_EMPLOYEE
    names = set(groups.values_list("name", flat=True))
    for role in ALL_ROLES:
        if role in names:
            return role
    return ROLE_EMPLOYEE


@dataclass(frozen=True)
class Caller:
    user: Any
    employee: Any
    role: str

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def employee_id(self) -> int | None:
        return getattr(self.employee, "pk", None)


def resolve_caller(user) -> Caller:
    """Resolve an authenticated user to a ``Caller``.

    Raises ``NotAuthenticated`` for anonymous users. ``employee`` is ``None``
    when the user has no employee profile; such callers can only act
    through Admin/HR powers.
    """

    if not (user and getattr(user, "is_authenticated", False)):
        raise NotAuthenticated
    employee = getattr(user, "employee", None)
    # Reverse one-to-one raises when missing; getattr default covers it.
    return Caller(user=user, employee=employee, role=resolve_role(user))


class _RolePermission(BasePermission):
    """Base helper to gate access by role names."""

    allowed_roles: tuple[str, ...] = ()
    allow_staff: bool = True

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not (user and getattr(user, "is_authenticated", False)):
            return False
        if self.allow_staff and (user.is_staff or user.is_superuser):
            return True
        return _user_in_groups(user, self.allowed_roles)


class IsAdminOrHR(_RolePermission):
    """Allow access only to Admin/HR/Staff users."""

    allowed_roles = ELEVATED_ROLES

