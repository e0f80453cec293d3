# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for SonoReview.

All timestamps are stored in UTC (TIMESTAMPTZ) and every Python datetime
handled by the package is timezone-aware.

Usage:
------
    from sonoreview.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    submitted_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return the datetime as timezone-aware UTC.

    SQLite drops timezone information on round-trip, so naive values read
    back from it are interpreted as UTC.

    Args:
        value: Naive or aware datetime.

    Returns:
        Timezone-aware UTC datetime.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
