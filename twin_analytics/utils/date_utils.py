"""Date manipulation utilities"""

from datetime import date


def month_key(day: date) -> str:
    """Calendar month of a date as YYYY-MM"""
    return f"{day.year:04d}-{day.month:02d}"


def add_months(key: str, months: int) -> str:
    """Shift a YYYY-MM key by a number of months (may be negative)"""
    year, month = (int(part) for part in key.split("-"))
    index = year * 12 + (month - 1) + months
    return f"{index // 12:04d}-{index % 12 + 1:02d}"
