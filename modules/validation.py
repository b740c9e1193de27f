"""
Form input validation and sanitization.

Everything a user types is passed through sanitize_text() before it is
stored. Validators return an error string (or None) so a form can collect
all problems at once; collect() turns the list into a ValidationError.
"""

from __future__ import annotations

import re
import threading
import time
from collections import deque
from pathlib import PurePath
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional

import bleach
from werkzeug.utils import secure_filename

from core.exceptions import RateLimitedError, ValidationError


MAX_TEXT_LENGTH = 1000
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+]?[1-9]\d{0,15}$")
PHONE_STRIP_RE = re.compile(r"[\s\-()]")

WEAK_PASSWORD_PATTERNS = (
    re.compile(r"(.)\1{3,}"),
    re.compile(r"123456|654321"),
    re.compile(r"abcdef|fedcba"),
    re.compile(r"password|admin|user|test", re.IGNORECASE),
)

ALLOWED_UPLOAD_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
})

DANGEROUS_EXTENSIONS = frozenset({
    "exe", "bat", "cmd", "com", "pif", "scr", "vbs", "js", "jar", "php", "asp",
    "jsp", "ps1", "sh", "py", "rb", "pl", "go", "bin", "app", "deb", "rpm",
    "msi", "dmg", "pkg",
})

SCRIPT_EXTENSIONS = frozenset({"php", "asp", "jsp", "py", "rb", "pl", "go", "sh", "ps1"})


def sanitize_text(text: Any, max_length: Optional[int] = MAX_TEXT_LENGTH) -> str:
    """
    Strip markup from user input.

    Args:
        text: Raw input (non-strings become "")
        max_length: Truncate to this many characters (None for no limit)

    Returns:
        Plain text safe to store and display
    """
    if not text or not isinstance(text, str):
        return ""
    cleaned = bleach.clean(text.strip(), tags=[], strip=True)
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def sanitize_form(data: Dict[str, Any], max_length: Optional[int] = MAX_TEXT_LENGTH) -> Dict[str, Any]:
    """Copy of ``data`` with every string value sanitized."""
    return {
        key: sanitize_text(value, max_length) if isinstance(value, str) else value
        for key, value in data.items()
    }


# =============================================================================
# FIELD VALIDATORS
# =============================================================================

def validate_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def validate_phone(phone: Optional[str]) -> bool:
    """International formats; spaces, dashes and parentheses are ignored."""
    if not phone:
        return False
    return bool(PHONE_RE.match(PHONE_STRIP_RE.sub("", phone)))


def validate_password(password: Optional[str]) -> List[str]:
    """Every rule the password breaks; empty list means acceptable."""
    if not password or not isinstance(password, str):
        return ["Password is required"]

    errors = []
    if len(password) < 12:
        errors.append("Password must be at least 12 characters long")
    if len(password) > 128:
        errors.append("Password must be no more than 128 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not re.search(r"[^A-Za-z0-9]", password):
        errors.append("Password must contain at least one special character")
    if any(pattern.search(password) for pattern in WEAK_PASSWORD_PATTERNS):
        errors.append("Password contains weak patterns")
    return errors


def validate_required(value: Any, field_name: str) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return f"{field_name} is required"
    return None


def validate_length(value: Any, minimum: int, maximum: int, field_name: str) -> Optional[str]:
    if not isinstance(value, str):
        return f"{field_name} must be a valid string"
    if len(value) < minimum:
        return f"{field_name} must be at least {minimum} characters long"
    if len(value) > maximum:
        return f"{field_name} must be no more than {maximum} characters long"
    return None


def validate_number(value: Any, field_name: str, minimum: Optional[float] = None,
                    maximum: Optional[float] = None) -> Optional[str]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return f"{field_name} must be a valid number"
    if minimum is not None and number < minimum:
        return f"{field_name} must be at least {minimum:g}"
    if maximum is not None and number > maximum:
        return f"{field_name} must be no more than {maximum:g}"
    return None


def validate_upload(filename: Optional[str], content_type: Optional[str], size: int) -> Optional[str]:
    """
    Check an artwork upload before it is sent to storage.

    Returns:
        Error message, or None if the file is acceptable
    """
    if not filename:
        return "Invalid file object"
    if size <= 0:
        return "File is empty"
    if size > MAX_UPLOAD_BYTES:
        return "File size exceeds maximum limit of 25MB"
    if content_type not in ALLOWED_UPLOAD_TYPES:
        return "File type not allowed. Allowed types: PDF, Images, Word documents, Text files"
    if sanitize_text(filename, max_length=None) != filename:
        return "File name contains invalid characters"

    parts = filename.lower().split(".")
    if len(parts) > 1 and parts[-1] in DANGEROUS_EXTENSIONS:
        return "Potentially dangerous file type detected"
    if filename.startswith(".") or re.search(r'[<>:"|?*]', filename):
        return "File name contains suspicious patterns"
    if any(part in SCRIPT_EXTENSIONS for part in parts[1:-1]):
        return "File name contains suspicious patterns"
    return None


def storage_filename(filename: str, prefix: str) -> str:
    """Safe storage object path: ``<prefix>/<timestamp>_<secure name>``."""
    safe = secure_filename(PurePath(filename).name) or "upload"
    return f"{prefix}/{int(time.time() * 1000)}_{safe}"


def collect(errors: Iterable[Optional[str]], message: str = "Please correct the highlighted fields") -> None:
    """Raise ValidationError if any validator returned a message."""
    problems = [e for e in errors if e]
    if problems:
        raise ValidationError(message if len(problems) > 1 else problems[0], errors=problems)


# =============================================================================
# RATE LIMITING
# =============================================================================

class RateLimiter:
    """
    Sliding-window attempt counter per identifier.

    After ``max_attempts`` attempts inside ``window_seconds`` further
    attempts are refused until the oldest one leaves the window.

    Thread Safety:
        A lock guards the attempt table; one instance serves all requests.
        Identifiers with no attempts left in the window are dropped.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: float = 900,
                 clock: Callable[[], float] = time.monotonic):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    @staticmethod
    def _key(identifier: str) -> str:
        return identifier.strip().lower()

    def hit(self, identifier: str) -> None:
        """
        Record an attempt.

        Raises:
            RateLimitedError: The identifier is in its cool-down window
        """
        now = self._clock()
        with self._lock:
            self._hit_locked(self._key(identifier), identifier, now)

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._forget_locked(self._key(identifier))

    def tracked_identifiers(self) -> int:
        """Number of identifiers currently holding state."""
        with self._lock:
            return len(self._attempts)

    # Callers below must hold self._lock

    def _hit_locked(self, key: str, identifier: str, now: float) -> None:
        self._sweep_locked(now)
        attempts = self._attempts.setdefault(key, deque())
        self._trim(attempts, now)
        if len(attempts) >= self.max_attempts:
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            raise RateLimitedError(identifier, retry_after_seconds=retry_after)
        attempts.append(now)

    def _forget_locked(self, key: str) -> None:
        self._attempts.pop(key, None)

    def _trim(self, attempts: Deque[float], now: float) -> None:
        while attempts and attempts[0] <= now - self.window_seconds:
            attempts.popleft()

    def _sweep_locked(self, now: float) -> None:
        """Drop idle identifiers, at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._attempts):
            attempts = self._attempts[key]
            self._trim(attempts, now)
            if not attempts:
                del self._attempts[key]
