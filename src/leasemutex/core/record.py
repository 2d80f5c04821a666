"""Lock record model.

A lock record is the only persisted entity: one document per lock name,
seeded once as unheld and then mutated in place by acquire and release.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Final

from leasemutex.core.errors import InvalidArgumentError

EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FRACTION_RE: Final[re.Pattern[str]] = re.compile(r"\.(\d+)")


def validate_name(value: Any, field: str) -> str:
    """Return ``value`` if it is a non-blank string.

    Raises:
        InvalidArgumentError: If the value is missing, not a string or blank
    """
    if value is None:
        raise InvalidArgumentError(field, "must not be None")
    if not isinstance(value, str):
        raise InvalidArgumentError(field, f"must be a string, got {type(value).__name__}")
    if not value.strip():
        raise InvalidArgumentError(field, "must not be empty or whitespace")
    return value


def validate_lease(duration: timedelta | float | int) -> timedelta:
    """Normalize a lease duration to a positive ``timedelta``.

    Plain numbers are interpreted as seconds.
    """
    if isinstance(duration, bool):
        raise InvalidArgumentError("lease_duration", "must be a duration, not a bool")
    if isinstance(duration, (int, float)):
        if not math.isfinite(duration):
            raise InvalidArgumentError("lease_duration", f"must be finite, got {duration}")
        try:
            duration = timedelta(seconds=duration)
        except OverflowError as exc:
            raise InvalidArgumentError("lease_duration", "is out of range") from exc
    if not isinstance(duration, timedelta):
        raise InvalidArgumentError(
            "lease_duration", f"must be a timedelta or seconds, got {type(duration).__name__}"
        )
    if duration <= timedelta(0):
        raise InvalidArgumentError("lease_duration", "must be positive")
    # The expiry is now + lease and must stay a representable datetime
    try:
        datetime.now(timezone.utc) + duration
    except OverflowError as exc:
        raise InvalidArgumentError("lease_duration", "expiry would be out of range") from exc
    return duration


def format_timestamp(value: datetime) -> str:
    """Format a UTC datetime the way Cosmos ``GetCurrentDateTime()`` does.

    Seven fractional digits and a ``Z`` suffix, so stored values and the
    server clock compare correctly as strings.
    """
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond:06d}0Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Cosmos emits seven fractional digits; keep microseconds only
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidArgumentError("lease_expiry", f"unparseable timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class LockRecord:
    """Persisted state of one named lock."""

    id: str
    owner: str = ""
    lease_expiry: datetime = EPOCH

    def __post_init__(self) -> None:
        validate_name(self.id, "lock_name")
        if not isinstance(self.owner, str):
            raise InvalidArgumentError("owner", "must be a string")
        if self.lease_expiry.tzinfo is None:
            raise InvalidArgumentError("lease_expiry", "must be timezone-aware")

    @classmethod
    def unheld(cls, lock_name: str) -> LockRecord:
        """Record as seeded by initialization: no owner, lease long elapsed."""
        return cls(id=lock_name, owner="", lease_expiry=EPOCH)

    def is_held(self, now: datetime) -> bool:
        """Whether the lock is held at ``now``.

        An owner whose lease has elapsed does not hold the lock.
        """
        return self.owner != "" and self.lease_expiry > now

    @property
    def holder(self) -> str | None:
        """Last recorded owner, for display only. ``None`` if never set."""
        return self.owner or None

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored document shape."""
        return {
            "id": self.id,
            "owner": self.owner,
            "leaseExpiry": format_timestamp(self.lease_expiry),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> LockRecord:
        """Deserialize from the stored document shape."""
        expiry = data.get("leaseExpiry")
        return cls(
            id=data["id"],
            owner=data.get("owner") or "",
            lease_expiry=parse_timestamp(expiry) if expiry else EPOCH,
        )
