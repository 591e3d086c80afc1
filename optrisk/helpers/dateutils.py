from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional, Union

from optrisk.config import get as cfg_get

DateLike = Union[str, date, datetime]

DAYS_PER_YEAR = 365.0
MIN_TIME_TO_EXPIRY = 1.0 / DAYS_PER_YEAR

_MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
# 28-Mar-2024, 28MAR24, 28 Mar 2024
_DMY_RE = re.compile(r"^(\d{1,2})[- ]?([A-Za-z]{3})[- ]?(\d{2,4})$")


def expiry_cutoff() -> time:
    """Return the configured time of day at which a dated expiry settles."""
    raw = str(cfg_get("EXPIRY_CUTOFF", "15:30") or "15:30")
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except ValueError:
        return time(15, 30)


def _parse_dmy(text: str) -> Optional[date]:
    match = _DMY_RE.match(text)
    if not match:
        return None
    day, mon, year = match.groups()
    try:
        month = _MONTHS.index(mon.upper()) + 1
    except ValueError:
        return None
    yr = int(year)
    if len(year) == 2:
        yr += 2000
    try:
        return date(yr, month, int(day))
    except ValueError:
        return None


def _naive_local(moment: datetime) -> datetime:
    """Return ``moment`` as naive local time, converting aware values first."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def parse_expiry(value: DateLike | None) -> Optional[datetime]:
    """Return ``value`` as the :class:`datetime` at which the option expires.

    Accepts ``datetime``/``date`` objects, ISO strings, ``YYYYMMDD`` and the
    exchange style ``DD-MMM-YYYY``/``DDMMMYY`` formats. Bare dates expire at
    :func:`expiry_cutoff`. Aware values are converted to naive local time.
    Unparseable input returns ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, date):
        return datetime.combine(value, expiry_cutoff())
    text = str(value).strip()
    if not text:
        return None

    parsed = _parse_dmy(text)
    if parsed is not None:
        return datetime.combine(parsed, expiry_cutoff())

    for fmt in ("%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.combine(datetime.strptime(text, fmt).date(), expiry_cutoff())
        except ValueError:
            continue
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _naive_local(moment)


def year_fraction(expiry: DateLike | None, as_of: datetime) -> float:
    """Return ACT/365 years from ``as_of`` until ``expiry``.

    The result is never below :data:`MIN_TIME_TO_EXPIRY`: expired, same-day
    and unknown expiries all get one day of time value. An aware ``as_of``
    is compared in local time, like aware expiries.
    """
    moment = parse_expiry(expiry)
    if moment is None:
        return MIN_TIME_TO_EXPIRY
    seconds = (moment - _naive_local(as_of)).total_seconds()
    years = seconds / (DAYS_PER_YEAR * 86400.0)
    return max(years, MIN_TIME_TO_EXPIRY)


def latest_expiry(values) -> Optional[datetime]:
    """Return the latest parseable expiry in ``values``."""
    parsed = [p for p in (parse_expiry(v) for v in values) if p is not None]
    return max(parsed) if parsed else None


__all__ = [
    "DAYS_PER_YEAR",
    "MIN_TIME_TO_EXPIRY",
    "expiry_cutoff",
    "latest_expiry",
    "parse_expiry",
    "year_fraction",
]
