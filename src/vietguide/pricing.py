"""
Booking price computation.

Prices are computed in ``Decimal`` from the exact elapsed time between start
and end; nothing is rounded during computation. The upfront deposit is half
the total and the remainder is whatever is left, so the two always add back
up to the total.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from .models import PriceQuote, TourGuide, ensure_aware

DEPOSIT_RATIO = Decimal("0.5")
_SECONDS_PER_HOUR = Decimal(3600)


def elapsed_seconds(start: datetime, end: datetime) -> Decimal:
    """Exact seconds from ``start`` to ``end``."""
    delta = ensure_aware(end) - ensure_aware(start)
    # timedelta keeps microseconds exactly; avoid float total_seconds()
    return Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds).scaleb(-6)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Fractional hours from ``start`` to ``end``, for display."""
    return elapsed_seconds(start, end) / _SECONDS_PER_HOUR


def split_deposit(total_price: Decimal) -> tuple[Decimal, Decimal]:
    """Split a total into (deposit, remainder)."""
    deposit = total_price * DEPOSIT_RATIO
    return deposit, total_price - deposit


def quote_price(
    start: datetime,
    end: datetime,
    tour_guide: TourGuide,
    default_currency: str = "USD",
) -> PriceQuote:
    """Price a booking window at the guide's hourly rate.

    A guide without an hourly rate yields a quote with no amounts, which
    callers display as "contact for pricing".
    """
    hours = hours_between(start, end)
    currency = (tour_guide.currency or default_currency).upper()
    rate: Optional[Decimal] = tour_guide.hourly_rate
    if rate is None:
        return PriceQuote(hours=hours, currency=currency)

    # one division, after the multiplication
    total = elapsed_seconds(start, end) * rate / _SECONDS_PER_HOUR
    deposit, remainder = split_deposit(total)
    return PriceQuote(
        hours=hours,
        hourly_rate=rate,
        total_price=total,
        deposit=deposit,
        remainder=remainder,
        currency=currency,
    )
