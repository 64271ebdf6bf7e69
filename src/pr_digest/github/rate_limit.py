"""Rate limit telemetry parsed from GitHub response headers.

GitHub includes rate limit info in headers on every response:
- x-ratelimit-limit
- x-ratelimit-remaining
- x-ratelimit-used
- x-ratelimit-reset (epoch seconds)
- x-ratelimit-resource (pool name)
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Self

from pydantic import BaseModel, Field


class RateLimitInfo(BaseModel):
    """Quota state reported alongside one response."""

    limit: int | None = Field(default=None, description="Requests allowed per window")
    remaining: int | None = Field(default=None, description="Requests left in the window")
    used: int | None = Field(default=None, description="Requests used in the window")
    reset_at: datetime | None = Field(default=None, description="When the window resets")
    resource: str = Field(default="core", description="Rate limit pool")

    @classmethod
    def from_headers(cls, headers: Mapping[str, Any] | None) -> Self:
        """Parse rate limit headers, leaving missing or malformed values as None.

        Args:
            headers: Response headers (httpx.Headers or a dict)

        Returns:
            RateLimitInfo for the response
        """
        if headers is None:
            return cls()

        lowered = {str(k).lower(): str(v) for k, v in headers.items()}

        def _int(name: str) -> int | None:
            try:
                return int(lowered[name])
            except (KeyError, ValueError):
                return None

        reset_ts = _int("x-ratelimit-reset")
        reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None

        return cls(
            limit=_int("x-ratelimit-limit"),
            remaining=_int("x-ratelimit-remaining"),
            used=_int("x-ratelimit-used"),
            reset_at=reset_at,
            resource=lowered.get("x-ratelimit-resource", "core"),
        )

    def is_low(self, threshold: int) -> bool:
        """Whether fewer than ``threshold`` requests remain (unknown counts as not low)."""
        return self.remaining is not None and self.remaining < threshold

    def seconds_until_reset(self, now: datetime | None = None) -> float:
        if self.reset_at is None:
            return 0.0
        now = now or datetime.now(UTC)
        return max(0.0, (self.reset_at - now).total_seconds())
