import calendar
from datetime import date, timedelta

_month_calendar = calendar.Calendar(firstweekday=calendar.MONDAY)

def month_grid(year: int, month: int) -> list[list[str | None]]:
    """Monday-first weeks of ``YYYY-MM-DD`` strings for a month (1-12).

    Days outside the month are ``None``; only weeks containing at least one
    day of the month are returned, so a month spans four to six rows.
    """
    return [
        [date(year, month, d).isoformat() if d else None for d in week]
        for week in _month_calendar.monthdayscalendar(year, month)
    ]

def time_to_minutes(t: str) -> int:
    h, m = t.split(":")
    return int(h) * 60 + int(m)

def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return time_to_minutes(start_a) < time_to_minutes(end_b) and time_to_minutes(end_a) > time_to_minutes(start_b)

def _add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year, month = d.year + month_index // 12, month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)

DEFAULT_RECURRING_COUNT = 52

def recurring_dates(start: str, frequency: str, count: int | None = None, until: str | None = None) -> list[str]:
    """Dates of the occurrences after ``start`` (which is not included).

    ``count`` is the total number of occurrences including the first one.
    Monthly repeats keep the starting day, clamped to shorter months.
    """
    first = date.fromisoformat(start)
    last = date.fromisoformat(until) if until else None
    total = count or DEFAULT_RECURRING_COUNT
    step = {"daily": 1, "weekly": 7, "biweekly": 14}.get(frequency)
    if step is None and frequency != "monthly":
        return []

    dates: list[str] = []
    for i in range(1, total):
        d = _add_months(first, i) if frequency == "monthly" else first + timedelta(days=step * i)
        if last and d > last:
            break
        dates.append(d.isoformat())
    return dates
