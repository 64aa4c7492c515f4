"""
Clock and identifier helpers.

Cards, sessions and backlink tasks are keyed by ULIDs: 26 Crockford base32
characters whose first ten encode the creation millisecond, so ids sort in
creation order. Revision entries carry calendar dates; edges and cards carry
timezone-aware UTC timestamps, stored as ISO 8601 text.
"""

import secrets
from datetime import UTC, date, datetime

_CROCKFORD = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_today() -> date:
    """Today's date in UTC; the default revision-entry date."""
    return utc_now().date()


def _base32(value: int, width: int) -> str:
    digits = []
    for _ in range(width):
        value, rem = divmod(value, 32)
        digits.append(_CROCKFORD[rem])
    return "".join(reversed(digits))


def generate_ulid(at: datetime | None = None) -> str:
    """
    Time-sortable identifier: 48-bit millisecond timestamp + 80 random bits.

    Args:
        at: Creation instant; now when omitted
    """
    millis = int((at or utc_now()).timestamp() * 1000)
    return _base32(millis, 10) + _base32(secrets.randbits(80), 16)


def to_iso8601(value: datetime | date) -> str:
    return value.isoformat()


def from_iso8601(text: str) -> datetime:
    """Parse a stored timestamp; naive values are taken to be UTC."""
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(text: str) -> date:
    return date.fromisoformat(text)
