"""
Signed-in user session.

The session is an explicit object: created at login, stored in the Flask
session cookie as a dict, and passed to services that need to know who is
acting. The role is resolved once per login and cached here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Optional

from core.roles import Role, can


@dataclass(frozen=True)
class UserSession:
    """Who is signed in and what they may do."""

    user_id: str
    """Platform auth user id."""

    email: str
    """Login email."""

    access_token: str
    """JWT sent with every data call so row-level security applies."""

    role: Role
    """Resolved once at login."""

    customer_id: Optional[str] = None
    """Customer row id when the user is a customer."""

    internal_user_id: Optional[str] = None
    """internal_users row id for staff accounts."""

    display_name: Optional[str] = None

    def can(self, permission: str) -> bool:
        return can(self.role, permission)

    def to_dict(self) -> Dict[str, Any]:
        """Cookie-safe representation."""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "access_token": self.access_token,
            "role": self.role.value,
            "customer_id": self.customer_id,
            "internal_user_id": self.internal_user_id,
            "display_name": self.display_name,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Same as to_dict() without the token, for API responses."""
        data = self.to_dict()
        data.pop("access_token")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
        return cls(
            user_id=data["user_id"],
            email=data.get("email", ""),
            access_token=data.get("access_token", ""),
            role=Role.parse(data.get("role")),
            customer_id=data.get("customer_id"),
            internal_user_id=data.get("internal_user_id"),
            display_name=data.get("display_name"),
        )
