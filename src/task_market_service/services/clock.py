"""Wall-clock source and the timestamp format used in storage and responses."""

from __future__ import annotations

from datetime import UTC, datetime


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO 8601 UTC with microseconds and a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp produced by format_timestamp (or any offset-aware ISO 8601 string)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class Clock:
    """Supplies the current UTC time. Replace in tests to move time."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def now_iso(self) -> str:
        return format_timestamp(self.now())
