from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo


UTC = ZoneInfo("UTC")


def now_utc() -> datetime:
    return datetime.now(tz=UTC)


def _to_int(raw: str) -> int | None:
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def _resolve_local(naive: datetime, tz: ZoneInfo) -> datetime | None:
    """
    Attach `tz` to a wall-clock time.

    - Ambiguous times (DST fall-back) resolve to the earlier instant (fold=0).
    - Times inside a DST gap don't exist and return None.
    """
    local = naive.replace(tzinfo=tz, fold=0)
    try:
        roundtrip = local.astimezone(UTC).astimezone(tz)
    except OverflowError:
        # Valid wall time, but the instant falls outside datetime's range.
        return None
    if roundtrip.replace(tzinfo=None) != naive:
        return None
    return local


def parse_flexible_datetime(text: str, *, tz: ZoneInfo | str, now: datetime | None = None) -> datetime | None:
    """
    Parse `<date> <time>` typed by a user.

    Accepted dates (`-` and `.` work as separators too):
    - M/D        => current year in `tz`
    - Y/M/D      => a year of 0..99 means 2000+Y
    Time is H:M, 24h clock; seconds are always 0.
    Returns an aware datetime in `tz`, or None when the input is malformed or
    names a local time that doesn't exist.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    normalized = (text or "").strip().replace("-", "/").replace(".", "/")
    parts = normalized.split()
    if len(parts) != 2:
        return None
    date_part, time_part = parts

    date_fields = date_part.split("/")
    if len(date_fields) not in (2, 3):
        return None
    time_fields = time_part.split(":")
    if len(time_fields) != 2:
        return None

    hour = _to_int(time_fields[0])
    minute = _to_int(time_fields[1])
    if hour is None or minute is None or hour > 23 or minute > 59:
        return None

    numbers = [_to_int(f) for f in date_fields]
    if any(n is None for n in numbers):
        return None
    if len(numbers) == 2:
        current = (now or now_utc()).astimezone(zone)
        year = current.year
        month, day = numbers
    else:
        year, month, day = numbers
        if 0 <= year <= 99:
            year += 2000

    try:
        day_value = date(year, month, day)
    except ValueError:
        return None
    return _resolve_local(datetime.combine(day_value, time(hour, minute)), zone)
