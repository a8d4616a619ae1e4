import calendar
from datetime import date, datetime, timedelta

MONTHS_ES = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]


def parse_date(value) -> date:
    """Strict YYYY-MM-DD; raises ValueError otherwise."""
    if not isinstance(value, str):
        raise ValueError("date must be a string")
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def parse_hour(value) -> str:
    """Normalises "8:00"/"08:00" to "08:00"; raises ValueError otherwise."""
    if not isinstance(value, str):
        raise ValueError("hour must be a string")
    return datetime.strptime(value.strip(), "%H:%M").strftime("%H:%M")


def week_start(day: date) -> date:
    # weeks run Monday..Sunday
    return day - timedelta(days=day.weekday())


def week_days(day: date) -> list:
    monday = week_start(day)
    return [monday + timedelta(days=i) for i in range(7)]


def month_bounds(year: int, month: int):
    """First and last calendar day of the month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def next_month(year: int, month: int):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def month_label(year: int, month: int) -> str:
    return f"{MONTHS_ES[month - 1]} {year}"
