from __future__ import annotations

import calendar
from datetime import date


def _birthday_in_year(date_of_birth: date, year: int) -> date:
    if date_of_birth.month == 2 and date_of_birth.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return date(year, date_of_birth.month, date_of_birth.day)


def birthday_matches(date_of_birth: date, target: date) -> bool:
    """True when ``date_of_birth`` is celebrated on ``target``.

    Leap-day birthdays are celebrated on 28 February in common years.
    """

    return _birthday_in_year(date_of_birth, target.year) == target


def next_birthday(date_of_birth: date, today: date) -> date:
    upcoming = _birthday_in_year(date_of_birth, today.year)
    if upcoming < today:
        upcoming = _birthday_in_year(date_of_birth, today.year + 1)
    return upcoming


def days_until_birthday(date_of_birth: date, today: date) -> int:
    return (next_birthday(date_of_birth, today) - today).days
