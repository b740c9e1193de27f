"""
Core module for PrintShopWeb.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy and user-facing messages
- gateway: REST client for the hosted data platform
- cache_store: sqlite mirror used for offline reads
- roles: Role enumeration and permission checks
"""

from .exceptions import (
    PrintShopError,
    ConfigurationError,
    ValidationError,
    AuthenticationError,
    RateLimitedError,
    AuthorizationError,
    RemoteCallError,
    NotFoundError,
    NotificationDispatchError,
    DocumentGenerationError,
    user_message,
)
from .gateway import DataGateway, TableQuery, StorageBucket
from .cache_store import CacheStore
from .roles import Role, ROLE_PERMISSIONS, can

__all__ = [
    "PrintShopError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "RateLimitedError",
    "AuthorizationError",
    "RemoteCallError",
    "NotFoundError",
    "NotificationDispatchError",
    "DocumentGenerationError",
    "user_message",
    "DataGateway",
    "TableQuery",
    "StorageBucket",
    "CacheStore",
    "Role",
    "ROLE_PERMISSIONS",
    "can",
]
