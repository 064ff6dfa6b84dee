"""
Typed models for bookings, tour guides, prices and currency rates.

Wire names follow the backend DTOs (camelCase); Python attributes are
snake_case and either form is accepted on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel


def _to_decimal(value: Any) -> Any:
    # floats go through str() so 0.1 stays 0.1 instead of its binary expansion
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return value


Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` with UTC attached when it carries no timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value: object) -> Optional["BookingStatus"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class ActorRole(str, Enum):
    """Who is asking for a status change."""

    CLIENT = "client"
    GUIDE = "guide"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ActorRole"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class CamelModel(BaseModel):
    """Base model accepting both camelCase wire names and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TourGuide(CamelModel):
    """Read-only pricing view of a tour guide."""

    id: Union[int, str]
    name: Optional[str] = None
    hourly_rate: Optional[Money] = Field(default=None, ge=0)
    currency: Optional[str] = None


class Booking(CamelModel):
    """A reservation of a tour guide's time, as returned by the backend."""

    id: Union[int, str]
    tour_guide_id: Union[int, str]
    tour_guide_name: Optional[str] = None
    user_id: Optional[Union[int, str]] = None
    user_name: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus
    total_price: Optional[Money] = Field(default=None, ge=0)
    currency: Optional[str] = None
    payment_amount: Optional[Money] = None
    order_code: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_date", "end_date", "created_at", "updated_at")
    @classmethod
    def _attach_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> Any:
        # unset currency is filled in by the lifecycle manager
        if isinstance(value, str):
            return value.strip().upper() or None
        return value


class BookingRequest(CamelModel):
    """A booking intent submitted by a client.

    Dates may be datetimes or ISO-8601 strings; parsing and ordering checks
    happen in the lifecycle manager so the first failing rule is reported.
    """

    tour_guide_id: Union[int, str]
    start_date: Optional[Union[datetime, str]] = None
    end_date: Optional[Union[datetime, str]] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class PaymentResult(CamelModel):
    """Payment link details returned alongside a newly created booking."""

    checkout_url: Optional[str] = None
    payment_link_id: Optional[str] = None
    qr_code: Optional[str] = None
    order_code: Optional[int] = None
    status: Optional[str] = None


class BookingWithPayment(CamelModel):
    booking: Booking
    payment: Optional[PaymentResult] = None


class PriceQuote(CamelModel):
    """Total price of a booking window and its fixed 50/50 payment split."""

    hours: Decimal
    hourly_rate: Optional[Money] = None
    total_price: Optional[Money] = None
    deposit: Optional[Money] = None
    remainder: Optional[Money] = None
    currency: str = "USD"

    @property
    def contact_for_pricing(self) -> bool:
        return self.total_price is None


class PaymentInstruction(PaymentResult):
    """What the client must pay upfront to secure a pending booking."""

    amount: Optional[Money] = None
    currency: str = "USD"


class BookingResult(CamelModel):
    booking: Booking
    quote: PriceQuote
    payment: PaymentInstruction


class BookingSummary(CamelModel):
    """Dashboard totals over a list of bookings."""

    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    total_spent: Money = Decimal("0")
    earnings: Money = Decimal("0")
    currency: str = "USD"


class CurrencyRate(CamelModel):
    """Directional rate: 1 ``from_currency`` equals ``rate`` ``to_currency``."""

    from_currency: str
    to_currency: str
    rate: Money
    last_updated: Optional[datetime] = None

    @field_validator("from_currency", "to_currency")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class BatchConvertItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(alias="from")
    to_currency: str = Field(alias="to")
    amount: Money
    real_time: bool = Field(default=False, alias="useRealTime")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ConversionResult(BaseModel):
    """A conversion as reported by the backend batch endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(alias="from")
    to_currency: str = Field(alias="to")
    amount: Money
    result: Money
    real_time: bool = Field(default=False, alias="realTime")


class ConversionRecord(ConversionResult):
    """One entry of the recent-conversion history."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
