from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from vietguide.models import TourGuide
from vietguide.pricing import hours_between, quote_price, split_deposit

START = datetime(2026, 11, 2, 8, 0, tzinfo=timezone.utc)


def test_hours_between_is_exact():
    assert hours_between(START, START + timedelta(hours=3)) == Decimal(3)
    assert hours_between(START, START + timedelta(minutes=90)) == Decimal("1.5")
    assert hours_between(START, START + timedelta(days=1, minutes=15)) == Decimal("24.25")


def test_quote_three_hours_at_twenty():
    guide = TourGuide(id=7, name="Linh", hourly_rate=20)

    quote = quote_price(START, START + timedelta(hours=3), guide)

    assert quote.total_price == Decimal("60")
    assert quote.deposit == Decimal("30")
    assert quote.remainder == Decimal("30")
    assert quote.currency == "USD"
    assert not quote.contact_for_pricing


def test_quote_fractional_hours_is_not_rounded():
    guide = TourGuide(id=7, hourly_rate=Decimal("33.33"))

    quote = quote_price(START, START + timedelta(hours=1, minutes=45), guide)

    assert quote.hours == Decimal("1.75")
    assert quote.total_price == Decimal("58.3275")
    assert quote.deposit == Decimal("29.16375")
    assert quote.deposit + quote.remainder == quote.total_price


@pytest.mark.parametrize(
    ("minutes", "expected_total"),
    [(20, Decimal("10")), (80, Decimal("40")), (50, Decimal("25"))],
)
def test_quote_for_partial_hours_is_exact(minutes, expected_total):
    guide = TourGuide(id=7, hourly_rate=30)

    quote = quote_price(START, START + timedelta(minutes=minutes), guide)

    assert quote.total_price == expected_total
    assert quote.deposit == quote.remainder == expected_total / 2


def test_quote_without_rate_has_no_amounts():
    guide = TourGuide(id=7, name="Linh")

    quote = quote_price(START, START + timedelta(hours=2), guide, default_currency="VND")

    assert quote.contact_for_pricing
    assert quote.deposit is None
    assert quote.remainder is None
    assert quote.hours == Decimal(2)
    assert quote.currency == "VND"


def test_quote_uses_guide_currency():
    guide = TourGuide(id=7, hourly_rate=500000, currency="vnd")

    quote = quote_price(START, START + timedelta(hours=4), guide)

    assert quote.currency == "VND"
    assert quote.total_price == Decimal("2000000")


def test_split_deposit_adds_back_to_total():
    deposit, remainder = split_deposit(Decimal("45.01"))

    assert deposit == Decimal("22.505")
    assert deposit + remainder == Decimal("45.01")
