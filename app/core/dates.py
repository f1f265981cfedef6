from datetime import date

from app.core.exceptions import ValidationException

# Years 0001-9999, months 01-12
MONTH_PATTERN = r"^(000[1-9]|00[1-9]\d|0[1-9]\d{2}|[1-9]\d{3})-(0[1-9]|1[0-2])$"


def month_bounds(month: str) -> tuple[date, date]:
    """
    Convert 'YYYY-MM' into a half-open [start, end) date range.

    Filtering with a range instead of strftime keeps the query portable
    and lets the (tenant_id, date) indexes be used.

    Raises:
        ValidationException: If the month is malformed or its range falls
            outside the supported calendar (e.g. 9999-12)
    """
    try:
        year, mon = (int(part) for part in month.split("-"))
        start = date(year, mon, 1)
        end = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    except ValueError:
        raise ValidationException(f"Month out of range: {month}")
    return start, end


def shift_months(day: date, months: int) -> date:
    """First day of the month `months` away from `day` (negative goes back)."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)
