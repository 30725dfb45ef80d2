from __future__ import annotations

import re
from datetime import datetime, timezone

_STAMP_SEPARATORS = re.compile(r"[-.:TZ]")


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_iso(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision: 2026-01-02T03:04:05.678Z"""
    dt = as_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def sortable_stamp(dt: datetime) -> str:
    # 17 digits; lexical order equals chronological order.
    return _STAMP_SEPARATORS.sub("", utc_iso(dt))
