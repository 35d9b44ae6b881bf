"""
Helpers for the partial calendar dates stored on people

Stored form is ``YYYY-MM-DD`` where ``00`` marks an unknown month or day.
The GEDCOM parser produces ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``; both
forms are understood by every helper here.
"""

import re


MONTH_ABBREVIATIONS = ['JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN',
                       'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC']

_DATE_PATTERN = re.compile(r'^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?$')


def date_parts(value: str | None) -> tuple[int | None, int | None, int | None]:
    """
    Split a stored or normalized date into (year, month, day)

    Unknown components (missing or ``00``) come back as None. Anything that
    does not look like a date gives (None, None, None).
    """
    if not value or not isinstance(value, str):
        return None, None, None

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        return None, None, None

    year, month, day = (int(part) if part else 0 for part in match.groups())
    if year == 0:
        return None, None, None
    if month == 0:
        return year, None, None
    return year, month, day or None


def birth_year(value: str | None) -> int | None:
    return date_parts(value)[0]


def to_storage_date(value: str | None) -> str | None:
    """Convert parser output (YYYY, YYYY-MM, YYYY-MM-DD) into the stored YYYY-MM-DD form"""
    year, month, day = date_parts(value)
    if year is None:
        return None
    return f"{year:04d}-{month or 0:02d}-{day or 0:02d}"


def date_specificity(value: str | None) -> int:
    """0 = no date, 1 = year, 2 = month, 3 = full date"""
    return sum(1 for part in date_parts(value) if part is not None)
