"""
Sign-in, role resolution and sessions.

The platform owns the credentials; this service exchanges them for a
token, then decides once who the user is to the shop:

    internal_users row (with roles.name)  -> that role
    customers row                          -> Customer
    neither                                -> Customer (new sign-up)

The result is a UserSession, stored in the Flask session by the routes.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional, Tuple

from core.exceptions import AuthenticationError, RateLimitedError, RemoteCallError
from core.gateway import DataGateway
from core.roles import Role
from models.session import UserSession
from modules.validation import RateLimiter, validate_email
from services.offline_sync import OfflineSync
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class LoginRateLimiter(RateLimiter):
    """
    Login throttle: ``max_attempts`` per window, then a fixed cool-down.

    During the cool-down every attempt is refused, whatever the window
    says. A successful login clears the identifier. Lock-outs share the
    attempt table's lock and are dropped once they have run out.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: float = 900,
                 cooldown_seconds: float = 900, clock: Callable[[], float] = time.monotonic):
        super().__init__(max_attempts=max_attempts, window_seconds=window_seconds, clock=clock)
        self.cooldown_seconds = cooldown_seconds
        self._locked_until: Dict[str, float] = {}

    def tracked_identifiers(self) -> int:
        with self._lock:
            return len(set(self._attempts) | set(self._locked_until))

    def _hit_locked(self, key: str, identifier: str, now: float) -> None:
        locked_until = self._locked_until.get(key)
        if locked_until is not None:
            if now < locked_until:
                raise RateLimitedError(identifier, retry_after_seconds=int(locked_until - now) + 1)
            self._forget_locked(key)

        try:
            super()._hit_locked(key, identifier, now)
        except RateLimitedError:
            self._locked_until[key] = now + self.cooldown_seconds
            logger.warning(f"Login locked for {key} ({self.cooldown_seconds:.0f}s cool-down)")
            raise RateLimitedError(identifier, retry_after_seconds=int(self.cooldown_seconds))

    def _forget_locked(self, key: str) -> None:
        self._locked_until.pop(key, None)
        super()._forget_locked(key)

    def _sweep_locked(self, now: float) -> None:
        if now - self._last_sweep >= self.window_seconds:
            for key in [k for k, until in self._locked_until.items() if until <= now]:
                self._forget_locked(key)
        super()._sweep_locked(now)


def resolve_role(internal_user: Optional[Dict[str, Any]], customer: Optional[Dict[str, Any]]) -> Role:
    """Role for a user given their profile rows."""
    if internal_user:
        return Role.parse((internal_user.get("roles") or {}).get("name"))
    return Role.CUSTOMER


def fetch_profile(gateway: DataGateway, user_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """(internal_user row, customer row) for an auth user; either may be None."""
    internal_user = (gateway.table("internal_users")
                     .select("*, roles(name)")
                     .eq("auth_user_id", user_id)
                     .maybe_single()
                     .execute())
    if internal_user:
        return internal_user, None
    customer = (gateway.table("customers")
                .select("*")
                .eq("auth_user_id", user_id)
                .maybe_single()
                .execute())
    return None, customer


class AuthService:
    """
    Password login for staff and customers.

    Args:
        gateway: Anonymous gateway (API key only)
        limiter: Login throttle shared by all requests
        offline: Optional offline store; profiles are mirrored there so a
            returning user can be recognised while the platform is down
    """

    def __init__(self, gateway: DataGateway, limiter: LoginRateLimiter,
                 offline: Optional[OfflineSync] = None):
        self._gateway = gateway
        self._limiter = limiter
        self._offline = offline

    def login(self, email: str, password: str) -> UserSession:
        """
        Raises:
            AuthenticationError: Bad credentials or malformed email
            RateLimitedError: Too many attempts for this email
            RemoteCallError: Platform unreachable
        """
        email = (email or "").strip().lower()
        if not validate_email(email) or not password:
            raise AuthenticationError()

        self._limiter.hit(email)
        result = self._gateway.sign_in_with_password(email, password)
        self._limiter.reset(email)

        user = result.get("user") or {}
        session = self.build_session(user.get("id"), user.get("email") or email, result["access_token"])
        logger.info(f"User {session.user_id} signed in as {session.role.value}")
        return session

    def build_session(self, user_id: str, email: str, access_token: str) -> UserSession:
        """Resolve the role for a signed-in user and wrap it in a session."""
        user_gateway = self._gateway.with_token(access_token)
        try:
            internal_user, customer = fetch_profile(user_gateway, user_id)
        except RemoteCallError as e:
            logger.error(f"Profile lookup failed for {user_id}: {e}")
            raise

        role = resolve_role(internal_user, customer)
        profile = internal_user or customer
        if self._offline is not None and profile:
            self._offline.sync_user_profile(user_id, {"role": role.value, **profile})

        return UserSession(
            user_id=user_id,
            email=email,
            access_token=access_token,
            role=role,
            customer_id=customer.get("id") if customer else None,
            internal_user_id=internal_user.get("id") if internal_user else None,
            display_name=(profile or {}).get("name") or (profile or {}).get("full_name"),
        )

    def logout(self, session: UserSession) -> None:
        """Revoke the token. Failures are logged; the local session ends regardless."""
        try:
            self._gateway.with_token(session.access_token).sign_out()
        except RemoteCallError as e:
            logger.warning(f"Remote sign-out failed for {session.user_id}: {e}")
        logger.info(f"User {session.user_id} signed out")

    def verify(self, session: UserSession) -> Dict[str, Any]:
        """Check the token is still valid; raises AuthenticationError (code JWT) if not."""
        return self._gateway.with_token(session.access_token).get_user()
