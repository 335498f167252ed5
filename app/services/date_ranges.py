# app/services/date_ranges.py
#
# Date Range Utilities
# Turns a 'YYYY-MM' month string into the half-open datetime range used by
# the summary endpoint.

from datetime import MAXYEAR, datetime

from app.errors import ValidationError


def get_month_range(month_str: str):
    """
    month_str: 'YYYY-MM'.
    Returns (start, end_exclusive, normalized_month_str) as datetimes.
    A malformed or out-of-range month is a ValidationError.
    """
    try:
        year_str, month_only_str = str(month_str).strip().split("-")
        year = int(year_str)
        month = int(month_only_str)
    except ValueError:
        raise ValidationError("month", f"expected YYYY-MM, got {month_str!r}") from None
    # The exclusive end must still be a valid datetime
    if not (1 <= month <= 12) or not (1 <= year < MAXYEAR):
        raise ValidationError("month", f"expected YYYY-MM, got {month_str!r}")

    start = datetime(year, month, 1)
    if month == 12:
        end_exclusive = datetime(year + 1, 1, 1)
    else:
        end_exclusive = datetime(year, month + 1, 1)

    return start, end_exclusive, f"{year:04d}-{month:02d}"
