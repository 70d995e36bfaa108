"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in UTC.

    Naive values are assumed to already be UTC, which is how they are stored
    in the notification table.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_naive_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC but without ``tzinfo``.

    SQLite and several other backends drop timezone information on
    ``DATETIME`` columns, so values are stored naive and re-attached to UTC on
    the way out.
    """

    normalized = ensure_utc(value)
    if normalized is None:
        return None
    return normalized.replace(tzinfo=None)


def now_naive_utc() -> datetime:
    """Return the current UTC time without attaching ``tzinfo``."""

    return now_utc().replace(tzinfo=None)


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
