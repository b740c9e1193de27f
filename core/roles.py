"""
Roles and permissions.

Roles are a closed set. Each role maps to a fixed set of permission names,
and every access check goes through can().
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class Role(Enum):
    """Who the signed-in user is to the shop."""

    ADMIN = "Admin"
    """Full control, including users, settings and display screens."""

    STAFF = "Staff"
    """Front desk and production staff."""

    SYSTEM_USER = "System User"
    """Operators who move jobs through production."""

    CUSTOMER = "Customer"
    """Self-service customers; sees only their own records."""

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Map a stored role name to a Role; unknown names become CUSTOMER."""
        for role in cls:
            if value and role.value.lower() == value.strip().lower():
                return role
        return cls.CUSTOMER

    @property
    def is_internal(self) -> bool:
        return self is not Role.CUSTOMER


ROLE_PERMISSIONS: Dict[Role, FrozenSet[str]] = {
    Role.ADMIN: frozenset({
        "manage_users",
        "manage_roles",
        "manage_services",
        "manage_jobs",
        "manage_customers",
        "manage_invoices",
        "manage_quotes",
        "manage_settings",
        "view_analytics",
        "manage_notifications",
        "manage_displays",
        "manage_payroll",
        "delete_jobs",
    }),
    Role.STAFF: frozenset({
        "manage_jobs",
        "manage_customers",
        "manage_invoices",
        "manage_quotes",
        "view_analytics",
        "manage_notifications",
    }),
    Role.SYSTEM_USER: frozenset({
        "manage_jobs",
        "view_customers",
        "create_invoices",
        "view_quotes",
    }),
    Role.CUSTOMER: frozenset({
        "create_jobs",
        "view_own_jobs",
        "view_own_invoices",
        "create_quotes",
        "view_own_quotes",
        "update_profile",
    }),
}


def can(role: Optional[Union[Role, str]], permission: str) -> bool:
    """True if ``role`` holds ``permission``. No role holds nothing."""
    if role is None:
        return False
    if not isinstance(role, Role):
        role = Role.parse(role)
    return permission in ROLE_PERMISSIONS[role]
