"""Money formatting and duration labels shared by bookings and conversions."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .models import ensure_aware

DEFAULT_CURRENCY = "USD"
DEFAULT_LOCALE = "en-US"
CONTACT_FOR_PRICING = "Contact for pricing"

# (code, name, symbol) offered by the currency converter
POPULAR_CURRENCIES: tuple[tuple[str, str, str], ...] = (
    ("USD", "US Dollar", "$"),
    ("VND", "Vietnamese Dong", "₫"),
    ("EUR", "Euro", "€"),
    ("GBP", "British Pound", "£"),
    ("JPY", "Japanese Yen", "¥"),
    ("KRW", "South Korean Won", "₩"),
    ("CNY", "Chinese Yuan", "¥"),
    ("SGD", "Singapore Dollar", "S$"),
    ("THB", "Thai Baht", "฿"),
    ("AUD", "Australian Dollar", "A$"),
    ("CAD", "Canadian Dollar", "C$"),
)

ZERO_DECIMAL_CURRENCIES = frozenset({"VND", "JPY", "KRW"})

_NBSP = "\u00a0"

# Prefix symbols; codes missing here are written as "CODE 1.00".
_EN_US_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "VND": "₫",
    "KRW": "₩",
    "CNY": "CN¥",
    "AUD": "A$",
    "CAD": "CA$",
}

# Suffix symbols; codes missing here are written as "1,00 CODE".
_VI_VN_SYMBOLS = {
    "VND": "₫",
    "USD": "US$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "JP¥",
    "KRW": "₩",
    "CNY": "CN¥",
    "AUD": "AU$",
    "CAD": "CA$",
}

Number = Union[Decimal, int, float]


def fraction_digits(currency_code: str) -> int:
    return 0 if currency_code.upper() in ZERO_DECIMAL_CURRENCIES else 2


def _grouped(value: Decimal, digits: int) -> str:
    quantum = Decimal(1).scaleb(-digits)
    rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{rounded:,.{digits}f}"


def format_money(
    amount: Optional[Number],
    currency_code: Optional[str] = None,
    locale: Optional[str] = None,
) -> str:
    """Format ``amount`` as a currency string.

    Supports ``en-US`` (default, symbol first) and ``vi-VN`` (dot grouping,
    comma decimals, symbol last). A missing amount means the guide has no
    hourly rate and renders as "Contact for pricing".
    """
    if amount is None:
        return CONTACT_FOR_PRICING

    code = (currency_code or DEFAULT_CURRENCY).strip().upper() or DEFAULT_CURRENCY
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    sign = "-" if value < 0 else ""
    digits = fraction_digits(code)
    number = _grouped(abs(value), digits)

    if (locale or DEFAULT_LOCALE).lower() == "vi-vn":
        number = number.translate(str.maketrans({",": ".", ".": ","}))
        symbol = _VI_VN_SYMBOLS.get(code, code)
        return f"{sign}{number}{_NBSP}{symbol}"

    symbol = _EN_US_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code}{_NBSP}{number}"
    return f"{sign}{symbol}{number}"


def duration_label(start: datetime, end: datetime) -> str:
    """Human-readable length of a booking window.

    Elapsed time is rounded half-up to whole hours. A day or more reads as
    "2d 3h", "1 day" or "3 days"; anything shorter reads as "1 hour" or
    "5 hours".
    """
    seconds = abs((ensure_aware(end) - ensure_aware(start)).total_seconds())
    hours = int(
        (Decimal(str(seconds)) / Decimal(3600)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )

    if hours >= 24:
        days, remaining = divmod(hours, 24)
        if remaining:
            return f"{days}d {remaining}h"
        return f"{days} day" if days == 1 else f"{days} days"
    return f"{hours} hour" if hours == 1 else f"{hours} hours"
