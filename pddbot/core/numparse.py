from __future__ import annotations

import math


def parse_decimal(text: str) -> float | None:
    """
    Parse a user-typed number, accepting either `,` or `.` as decimal separator.

    Returns None for anything that isn't a finite float. Digit-group
    underscores and non-ASCII digits are rejected.
    """
    normalized = (text or "").strip().replace(",", ".")
    if not normalized or not normalized.isascii() or "_" in normalized:
        return None
    try:
        value = float(normalized)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value
