"""Display formatting and lenient parsing helpers shared by the pipeline."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from backend.app.core.time import as_utc
from backend.app.services.rates import round_money, to_decimal

INVOICE_NUMBER_PAD = 5

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
_CURRENCY_STRIP_RE = re.compile(r"[$,\s]")


def format_currency(amount) -> str:
    value = round_money(to_decimal(amount) or Decimal("0"))
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _as_date(value: date | datetime) -> date:
    return as_utc(value).date() if isinstance(value, datetime) else value


def format_date(value: date | datetime) -> str:
    """MM/DD/YYYY."""
    return _as_date(value).strftime("%m/%d/%Y")


def format_date_long(value: date | datetime) -> str:
    """e.g. ``January 15, 2024``."""
    d = _as_date(value)
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def format_short_date(value: date | datetime) -> str:
    """e.g. ``1/5/24``."""
    d = _as_date(value)
    return f"{d.month}/{d.day}/{d.strftime('%y')}"


def format_duration(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_hours_decimal(total_minutes: int) -> str:
    return f"{Decimal(total_minutes) / Decimal(60):.2f}"


def parse_time_string(value: str | None) -> str | None:
    """``H:MM AM/PM`` to 24h ``HH:MM``; None when blank or unparseable."""
    if not value or not value.strip():
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = match.group(2)
    period = match.group(3).upper()
    if hours > 12 or int(minutes) > 59:
        return None
    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0
    return f"{hours:02d}:{minutes}"


def format_time_12h(value: str | None) -> str:
    if not value:
        return ""
    hours_str, minutes = value.split(":")
    hours = int(hours_str)
    period = "PM" if hours >= 12 else "AM"
    if hours == 0:
        hours = 12
    elif hours > 12:
        hours -= 12
    return f"{hours}:{minutes} {period}"


def parse_date_string(value: str | None) -> date | None:
    """``MM/DD/YY`` to a date. Two-digit years below 50 are 20xx, others 19xx."""
    if not value or not value.strip():
        return None
    match = _DATE_RE.match(value.strip())
    if not match:
        return None
    month, day, year = (int(part) for part in match.groups())
    year = 2000 + year if year < 50 else 1900 + year
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_currency(value: str | None) -> Decimal:
    """``$1,234.50`` to Decimal; blank or garbage is zero."""
    if not value or not value.strip():
        return Decimal("0")
    cleaned = _CURRENCY_STRIP_RE.sub("", value)
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not parsed.is_finite():
        return Decimal("0")
    return parsed


def generate_invoice_number(prefix: str, sequence: int) -> str:
    return f"{prefix}{sequence:0{INVOICE_NUMBER_PAD}d}"
