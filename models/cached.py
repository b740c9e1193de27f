"""
Cached read results.

A CachedResult is what every offline-capable read returns: the rows, and
whether they came live from the platform or from the local mirror.

Thread Safety:
    - CachedResult is a frozen dataclass (immutable)
    - The rows list is copied on construction and must not be mutated
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CachedResult:
    """Rows plus freshness information."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    """The rows, live or cached."""

    is_stale: bool = False
    """True when the platform was unreachable and the mirror was used."""

    cached_at: Optional[float] = None
    """Epoch seconds of the newest cached write, for stale results."""

    error: Optional[str] = None
    """Why the live read failed, for stale results."""

    @property
    def age_seconds(self) -> float:
        """Seconds since the cached rows were written (0 for live data)."""
        if not self.is_stale or self.cached_at is None:
            return 0.0
        return max(0.0, time.time() - self.cached_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": list(self.items),
            "stale": self.is_stale,
            "age_seconds": round(self.age_seconds, 1),
            "warning": "Showing saved data while offline." if self.is_stale else None,
        }

    @classmethod
    def live(cls, items: List[Dict[str, Any]]) -> "CachedResult":
        return cls(items=list(items), is_stale=False)

    @classmethod
    def stale(cls, items: List[Dict[str, Any]], cached_at: Optional[float], error: str) -> "CachedResult":
        return cls(items=list(items), is_stale=True, cached_at=cached_at, error=error)
