from datetime import timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError
from vietguide.models import (
    ActorRole,
    BatchConvertItem,
    Booking,
    BookingRequest,
    BookingStatus,
    CurrencyRate,
    TourGuide,
)


def _booking_payload(**overrides):
    payload = {
        "id": 42,
        "tourGuideId": 7,
        "tourGuideName": "Linh",
        "userId": 5,
        "startDate": "2026-11-02T08:00:00",
        "endDate": "2026-11-02T11:00:00Z",
        "location": "Hoi An",
        "status": "confirmed",
        "totalPrice": 60.5,
        "currency": "USD",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("raw", ["Pending", "pending", "PENDING", " pending "])
def test_status_parsing_is_case_insensitive(raw):
    assert BookingStatus(raw) is BookingStatus.PENDING


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        BookingStatus("Archived")


def test_terminal_statuses():
    assert BookingStatus.COMPLETED.is_terminal
    assert BookingStatus.CANCELLED.is_terminal
    assert not BookingStatus.PENDING.is_terminal
    assert not BookingStatus.CONFIRMED.is_terminal


def test_actor_role_parsing():
    assert ActorRole(" Guide ") is ActorRole.GUIDE
    assert ActorRole("CLIENT") is ActorRole.CLIENT
    with pytest.raises(ValueError):
        ActorRole("admin")


def test_booking_reads_camel_case_payload():
    booking = Booking.model_validate(_booking_payload())

    assert booking.tour_guide_id == 7
    assert booking.status is BookingStatus.CONFIRMED
    assert booking.total_price == Decimal("60.5")
    assert booking.start_date.tzinfo is not None
    assert booking.start_date.utcoffset() == timezone.utc.utcoffset(None)


def test_booking_wire_form_uses_canonical_names():
    wire = Booking.model_validate(_booking_payload()).to_wire()

    assert wire["status"] == "Confirmed"
    assert wire["totalPrice"] == 60.5
    assert wire["tourGuideId"] == 7
    assert "notes" not in wire


def test_booking_missing_currency_is_left_unset():
    assert Booking.model_validate(_booking_payload(currency=None)).currency is None
    assert Booking.model_validate(_booking_payload(currency=" vnd ")).currency == "VND"


def test_booking_requires_status():
    payload = _booking_payload()
    del payload["status"]

    with pytest.raises(ValidationError):
        Booking.model_validate(payload)


def test_booking_rejects_negative_total():
    with pytest.raises(ValidationError):
        Booking.model_validate(_booking_payload(totalPrice=-1))


def test_booking_request_accepts_snake_case():
    request = BookingRequest(tour_guide_id=7, start_date="2026-11-02T08:00:00Z", location="Hue")

    assert request.tour_guide_id == 7
    assert request.end_date is None


def test_tour_guide_rate_is_decimal():
    guide = TourGuide.model_validate({"id": 1, "hourlyRate": 19.99})
    assert guide.hourly_rate == Decimal("19.99")


def test_currency_rate_codes_are_upper_case():
    rate = CurrencyRate.model_validate({"fromCurrency": "usd", "toCurrency": " vnd", "rate": 24000})

    assert rate.from_currency == "USD"
    assert rate.to_currency == "VND"
    assert rate.rate == Decimal(24000)


def test_batch_item_wire_names():
    item = BatchConvertItem.model_validate({"from": "USD", "to": "VND", "amount": 10})

    assert item.to_wire() == {"from": "USD", "to": "VND", "amount": 10.0, "useRealTime": False}
