import calendar
from datetime import date, datetime, timedelta

from pennywise.models import DateRange

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y/%m/%d",
    "%m/%d/%Y",
)

PRESET_LABELS = ("This Month", "Last Month", "Last 30 Days", "This Year")


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    text = value.strip().strip('"').strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_date(value: str | None, today: date | None = None) -> str:
    """ISO date for `value`, or today's date when it cannot be parsed."""
    parsed = parse_date(value)
    if parsed is None:
        parsed = today or date.today()
    return parsed.isoformat()


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def date_range_preset(label: str, today: date | None = None) -> DateRange:
    today = today or date.today()
    if label == "This Month":
        start = today.replace(day=1)
        end = last_day_of_month(today.year, today.month)
    elif label == "Last Month":
        year, month = shift_month(today.year, today.month, -1)
        start = date(year, month, 1)
        end = last_day_of_month(year, month)
    elif label == "Last 30 Days":
        start = today - timedelta(days=30)
        end = today
    elif label == "This Year":
        start = date(today.year, 1, 1)
        end = date(today.year, 12, 31)
    else:
        raise ValueError(f"Unknown date range preset: {label}")
    return DateRange(start=start.isoformat(), end=end.isoformat(), label=label)


def default_date_range(today: date | None = None) -> DateRange:
    return date_range_preset("This Year", today)


def inclusive_days(date_range: DateRange) -> int:
    start = date.fromisoformat(date_range.start)
    end = date.fromisoformat(date_range.end)
    return max(1, (end - start).days + 1)
