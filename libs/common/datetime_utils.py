"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

import random
import string
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Use this instead of the deprecated ``datetime.utcnow()`` for every stored timestamp.
    """
    return datetime.now(timezone.utc)


def dated_reference(prefix: str, length: int = 5) -> str:
    """Human-readable reference like ``KM-20260104-A1B2C``."""
    date_part = utc_now().strftime("%Y%m%d")
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=length))
    return f"{prefix}-{date_part}-{random_part}"
