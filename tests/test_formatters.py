from datetime import date, datetime
from decimal import Decimal

from backend.app.services.formatters import (
    format_currency,
    format_date,
    format_date_long,
    format_duration,
    format_hours_decimal,
    format_short_date,
    format_time_12h,
    generate_invoice_number,
    parse_currency,
    parse_date_string,
    parse_time_string,
)


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("0")) == "$0.00"
    assert format_currency(Decimal("-1")) == "-$1.00"
    assert format_currency("162") == "$162.00"


def test_date_formats():
    assert format_date(date(2024, 1, 5)) == "01/05/2024"
    assert format_date_long(date(2024, 1, 15)) == "January 15, 2024"
    assert format_date_long(datetime(2024, 3, 2, 10, 30)) == "March 2, 2024"
    assert format_short_date(date(2024, 1, 5)) == "1/5/24"


def test_format_duration():
    assert format_duration(0) == "0m"
    assert format_duration(45) == "45m"
    assert format_duration(60) == "1h"
    assert format_duration(90) == "1h 30m"
    assert format_hours_decimal(90) == "1.50"


def test_parse_time_string():
    assert parse_time_string("1:30 PM") == "13:30"
    assert parse_time_string("12:05 AM") == "00:05"
    assert parse_time_string("12:00 PM") == "12:00"
    assert parse_time_string("9:15 am") == "09:15"
    assert parse_time_string("13:00 PM") is None
    assert parse_time_string("10:75 AM") is None
    assert parse_time_string("noon") is None
    assert parse_time_string("") is None


def test_format_time_12h():
    assert format_time_12h("13:30") == "1:30 PM"
    assert format_time_12h("00:05") == "12:05 AM"
    assert format_time_12h(None) == ""


def test_parse_date_string():
    assert parse_date_string("1/15/24") == date(2024, 1, 15)
    assert parse_date_string("12/31/99") == date(1999, 12, 31)
    assert parse_date_string("2/30/24") is None
    assert parse_date_string("2024-01-15") is None
    assert parse_date_string("") is None


def test_parse_currency():
    assert parse_currency("$1,234.50") == Decimal("1234.50")
    assert parse_currency("") == Decimal("0")
    assert parse_currency("n/a") == Decimal("0")


def test_generate_invoice_number():
    assert generate_invoice_number("INV-", 7) == "INV-00007"
    assert generate_invoice_number("ACME-", 123456) == "ACME-123456"
