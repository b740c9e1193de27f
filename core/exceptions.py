"""
Custom exceptions for PrintShopWeb.

Exception Hierarchy:
    PrintShopError (base)
    ├── ConfigurationError       - Missing platform credentials (startup failure)
    ├── ValidationError          - Bad form input (runtime, 400)
    ├── AuthenticationError      - Credentials rejected (runtime, 401)
    │   └── RateLimitedError     - Too many login attempts (runtime, 429)
    ├── AuthorizationError       - Role lacks permission (runtime, 403)
    ├── RemoteCallError          - Platform call failed (runtime, 502)
    │   └── NotFoundError        - Single-row fetch matched nothing (404)
    ├── NotificationDispatchError - Notification function could not be invoked
    └── DocumentGenerationError  - PDF data missing a required field

Usage:
    Startup errors (ConfigurationError) cause the app to fail fast.
    Runtime errors are caught at the call site, logged, and turned into a
    short user-facing message with user_message().
"""

from typing import Optional, Dict, Any, List


class PrintShopError(Exception):
    """
    Base exception for all PrintShopWeb errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(PrintShopError):
    """
    A required setting is missing from the environment.

    Raised by create_app() when the platform URL or API key is absent.
    """

    def __init__(self, setting: str):
        message = f"Missing required setting: {setting}"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in .env or the process environment"
        }
        super().__init__(message, details)
        self.setting = setting


# =============================================================================
# RUNTIME ERRORS - Application continues, but operation fails gracefully
# =============================================================================

class ValidationError(PrintShopError):
    """
    Form input failed a length/format check before submission.

    Carries every failing field so the caller can show them together.
    """

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None, field: Optional[str] = None):
        details: Dict[str, Any] = {}
        if errors:
            details["errors"] = list(errors)
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.errors = list(errors or [message])
        self.field = field


class AuthenticationError(PrintShopError):
    """The platform rejected the supplied credentials or session token."""

    status_code = 401

    def __init__(self, message: str = "Invalid login credentials", code: str = "INVALID_CREDENTIALS"):
        super().__init__(message, {"code": code})
        self.code = code


class RateLimitedError(AuthenticationError):
    """
    Login blocked because of repeated failed attempts.

    Further attempts are refused until the cool-down window elapses.
    """

    status_code = 429

    def __init__(self, identifier: str, retry_after_seconds: int):
        super().__init__(
            f"Too many login attempts for {identifier}",
            code="TOO_MANY_REQUESTS",
        )
        self.details["retry_after_seconds"] = retry_after_seconds
        self.identifier = identifier
        self.retry_after_seconds = retry_after_seconds


class AuthorizationError(PrintShopError):
    """The signed-in role does not hold the permission a view requires."""

    status_code = 403

    def __init__(self, role: Optional[str], permission: str):
        message = f"Role {role or 'anonymous'} may not {permission}"
        details = {
            "role": role,
            "permission": permission,
            "resolution": "Sign in with an account that has the required role"
        }
        super().__init__(message, details)
        self.role = role
        self.permission = permission


class RemoteCallError(PrintShopError):
    """
    A call to the hosted data platform failed.

    Covers transport failures (no connectivity) and non-2xx responses.
    ``status_code`` is the HTTP status returned by the platform, or None
    when the request never got a response.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        error_details["operation"] = operation
        if status_code is not None:
            error_details["status_code"] = status_code
        if code:
            error_details["code"] = code
        super().__init__(message, error_details)
        self.operation = operation
        self.remote_status = status_code
        self.code = code

    @property
    def status_code(self) -> int:
        return 502

    @property
    def is_connectivity_error(self) -> bool:
        """True when the platform could not be reached at all."""
        return self.remote_status is None


class NotFoundError(RemoteCallError):
    """A single-row fetch matched no rows."""

    @property
    def status_code(self) -> int:
        return 404


class NotificationDispatchError(PrintShopError):
    """
    The remote send-notification function could not be invoked.

    Partial channel failures are reported in NotificationResult.errors and
    never raise; this error means no attempt was recorded at all.
    """

    status_code = 502

    def __init__(self, message: str, customer_id: Optional[str] = None, event: Optional[str] = None):
        details: Dict[str, Any] = {}
        if customer_id:
            details["customer_id"] = customer_id
        if event:
            details["event"] = event
        super().__init__(message, details)
        self.customer_id = customer_id
        self.event = event


class DocumentGenerationError(PrintShopError):
    """PDF generation was given data missing a required field."""

    status_code = 400

    def __init__(self, document: str, missing_field: str):
        message = f"Cannot generate {document}: missing {missing_field}"
        super().__init__(message, {"document": document, "field": missing_field})
        self.document = document
        self.missing_field = missing_field


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."


def user_message(error: BaseException) -> str:
    """
    Map an exception to a short message safe to show in the UI.

    Platform error details are never shown verbatim for auth failures;
    validation and document errors carry their own readable message.
    """
    if isinstance(error, RateLimitedError):
        return "Too many attempts. Please try again later."
    if isinstance(error, AuthenticationError):
        if error.code == "JWT":
            return "Session expired. Please sign in again."
        return "Invalid email or password."
    if isinstance(error, AuthorizationError):
        return "Access denied."
    if isinstance(error, (ValidationError, DocumentGenerationError)):
        return error.message
    if isinstance(error, NotFoundError):
        return "The requested record was not found."
    if isinstance(error, RemoteCallError):
        text = f"{error.code or ''} {error.message}"
        if "JWT" in text:
            return "Session expired. Please sign in again."
        if "row-level security" in text or error.code == "42501":
            return "Access denied."
        return GENERIC_ERROR_MESSAGE
    if isinstance(error, NotificationDispatchError):
        return "Notification could not be sent."
    return GENERIC_ERROR_MESSAGE
