"""
Tour-guide booking lifecycle.

The manager validates booking requests, prices them, and governs status
changes. Persistence belongs to the backend; every write goes through the
booking storage collaborator and local state is never updated ahead of it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Union

from pydantic import ValidationError as PydanticValidationError

from .auth import AuthenticationError
from .client import BackendError
from .config import Settings
from .errors import (
    AvailabilityConflictError,
    FailureKind,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
    classify_failure,
)
from .models import (
    ActorRole,
    Booking,
    BookingRequest,
    BookingResult,
    BookingStatus,
    BookingSummary,
    BookingWithPayment,
    PaymentInstruction,
    PriceQuote,
    TourGuide,
    ensure_aware,
)
from .money import format_money
from .pricing import quote_price

logger = logging.getLogger(__name__)

BookingId = Union[int, str]


class BookingStorage(Protocol):
    """Booking persistence API. Implemented over HTTP by ``VietGuideClient``."""

    async def create_booking(self, payload: dict[str, Any]) -> Any: ...

    async def list_bookings(self) -> Any: ...

    async def get_booking(self, booking_id: BookingId) -> Any: ...

    async def list_bookings_for_guide(self, tour_guide_id: BookingId) -> Any: ...

    async def update_booking_status(self, booking_id: BookingId, status: str) -> Any: ...

    async def cancel_booking(self, booking_id: BookingId) -> Any: ...


class TourGuideDirectory(Protocol):
    async def get_tour_guide(self, tour_guide_id: BookingId) -> Any: ...


_TRANSITIONS: dict[tuple[BookingStatus, ActorRole], frozenset[BookingStatus]] = {
    (BookingStatus.PENDING, ActorRole.GUIDE): frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    (BookingStatus.PENDING, ActorRole.CLIENT): frozenset({BookingStatus.CANCELLED}),
    (BookingStatus.CONFIRMED, ActorRole.GUIDE): frozenset({BookingStatus.COMPLETED}),
}

# Only reachable when client cancellation of confirmed bookings is enabled.
_CLIENT_CANCEL_CONFIRMED = (BookingStatus.CONFIRMED, ActorRole.CLIENT)


def allowed_transitions(
    status: BookingStatus,
    role: ActorRole,
    *,
    allow_client_cancel_confirmed: bool = False,
) -> frozenset[BookingStatus]:
    """Statuses ``role`` may move a booking to from ``status``."""
    if (status, role) == _CLIENT_CANCEL_CONFIRMED and allow_client_cancel_confirmed:
        return frozenset({BookingStatus.CANCELLED})
    return _TRANSITIONS.get((status, role), frozenset())


def format_timestamp(value: datetime) -> str:
    """RFC 3339 UTC timestamp with a ``Z`` suffix, as the backend expects."""
    return ensure_aware(value).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: Union[datetime, str]) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError("invalid date format", details={"value": value}) from exc
    return ensure_aware(parsed)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def summarize_bookings(
    bookings: Iterable[Booking], default_currency: str = "USD"
) -> BookingSummary:
    """Dashboard totals: counts per status, total spent and guide earnings."""
    bookings = list(bookings)
    counts = {status: 0 for status in BookingStatus}
    total_spent = Decimal("0")
    earnings = Decimal("0")
    for booking in bookings:
        counts[booking.status] += 1
        price = booking.total_price or Decimal("0")
        total_spent += price
        if booking.status in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
            earnings += price

    return BookingSummary(
        total=len(bookings),
        pending=counts[BookingStatus.PENDING],
        confirmed=counts[BookingStatus.CONFIRMED],
        completed=counts[BookingStatus.COMPLETED],
        cancelled=counts[BookingStatus.CANCELLED],
        total_spent=total_spent,
        earnings=earnings,
        currency=(bookings[0].currency if bookings else None) or default_currency,
    )


class BookingLifecycleManager:
    """Creates bookings and drives them through their status lifecycle."""

    def __init__(
        self,
        storage: BookingStorage,
        directory: Optional[TourGuideDirectory] = None,
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.storage = storage
        self.directory = directory
        self.settings = settings or Settings()
        self._clock = clock

    # Pricing

    def quote(self, start: datetime, end: datetime, tour_guide: TourGuide) -> PriceQuote:
        return quote_price(start, end, tour_guide, self.settings.default_currency)

    def format_price(self, amount: Optional[Decimal], currency: Optional[str] = None) -> str:
        """Display string for an amount in the configured locale."""
        return format_money(
            amount, currency or self.settings.default_currency, self.settings.display_locale
        )

    # Creation

    async def create(
        self,
        request: Union[BookingRequest, Mapping[str, Any]],
        *,
        tour_guide: Optional[TourGuide] = None,
        now: Optional[datetime] = None,
    ) -> BookingResult:
        """Validate, price and submit a booking request.

        Returns the pending booking, its price quote and the upfront payment
        instruction.

        Raises:
            ValidationError: If a required field is missing, the start is not
                in the future, or the end is not after the start.
            AvailabilityConflictError: If the backend reports the slot taken.
            PersistenceError: If the backend fails for any other reason.
        """
        request = self._coerce_request(request)

        if _is_blank(request.start_date) or _is_blank(request.end_date) or _is_blank(
            request.location
        ):
            raise ValidationError("missing required fields")

        start = _parse_timestamp(request.start_date)  # type: ignore[arg-type]
        end = _parse_timestamp(request.end_date)  # type: ignore[arg-type]
        evaluated_at = ensure_aware(now or self._clock())

        if start <= evaluated_at:
            raise ValidationError("start date must be in the future")
        if end <= start:
            raise ValidationError("end date must be after start date")

        guide = tour_guide or await self._load_tour_guide(request.tour_guide_id)
        quote = self.quote(start, end, guide)

        payload: dict[str, Any] = {
            "tourGuideId": request.tour_guide_id,
            "startDate": format_timestamp(start),
            "endDate": format_timestamp(end),
            "location": request.location.strip(),  # type: ignore[union-attr]
        }
        if request.notes:
            payload["notes"] = request.notes

        try:
            raw = await self.storage.create_booking(payload)
        except (BackendError, AuthenticationError) as exc:
            raise self._creation_failure(exc) from exc

        created = self._parse_created(raw, quote.currency)
        payment = created.payment
        instruction = PaymentInstruction(
            amount=quote.deposit if quote.deposit is not None else created.booking.payment_amount,
            currency=quote.currency,
            checkout_url=payment.checkout_url if payment else None,
            payment_link_id=payment.payment_link_id if payment else None,
            qr_code=payment.qr_code if payment else None,
            order_code=payment.order_code if payment else created.booking.order_code,
            status=payment.status if payment else None,
        )
        logger.info(
            "Booking %s created for tour guide %s (%s hours)",
            created.booking.id,
            request.tour_guide_id,
            quote.hours,
        )
        return BookingResult(booking=created.booking, quote=quote, payment=instruction)

    # Status changes

    def allowed_transitions(
        self, status: Union[BookingStatus, str], role: Union[ActorRole, str]
    ) -> frozenset[BookingStatus]:
        return allowed_transitions(
            self._coerce_status(status),
            self._coerce_role(role),
            allow_client_cancel_confirmed=self.settings.allow_client_cancel_confirmed,
        )

    def available_actions(
        self, booking: Booking, role: Union[ActorRole, str]
    ) -> list[BookingStatus]:
        """Status changes ``role`` can offer for ``booking``, in lifecycle order."""
        allowed = self.allowed_transitions(booking.status, role)
        return [status for status in BookingStatus if status in allowed]

    async def update_status(
        self,
        booking_id: BookingId,
        new_status: Union[BookingStatus, str],
        actor_role: Union[ActorRole, str],
    ) -> Booking:
        """Move a booking to ``new_status`` on behalf of ``actor_role``.

        Raises:
            InvalidTransitionError: If the change is not permitted from the
                booking's current status for this role.
            PersistenceError: If the backend read or write fails.
        """
        status = self._coerce_status(new_status)
        role = self._coerce_role(actor_role)
        current = await self.get_booking(booking_id)

        if status not in self.allowed_transitions(current.status, role):
            logger.warning(
                "Rejected status change for booking %s: %s -> %s by %s",
                booking_id,
                current.status.value,
                status.value,
                role.value,
            )
            raise InvalidTransitionError(current.status.value, status.value, role.value)

        try:
            raw = await self.storage.update_booking_status(booking_id, status.value)
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "update booking status") from exc

        logger.info(
            "Booking %s changed from %s to %s by %s",
            booking_id,
            current.status.value,
            status.value,
            role.value,
        )
        return self._after_write(raw, current, status)

    async def cancel(self, booking_id: BookingId) -> Booking:
        """Cancel a booking on the client's behalf. Only pending bookings qualify."""
        current = await self.get_booking(booking_id)
        if current.status is not BookingStatus.PENDING:
            logger.warning(
                "Rejected cancellation of booking %s in status %s",
                booking_id,
                current.status.value,
            )
            raise InvalidTransitionError(
                current.status.value, BookingStatus.CANCELLED.value, ActorRole.CLIENT.value
            )

        try:
            raw = await self.storage.cancel_booking(booking_id)
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "cancel booking") from exc

        logger.info("Booking %s cancelled by client", booking_id)
        return self._after_write(raw, current, BookingStatus.CANCELLED)

    # Reads

    async def get_booking(self, booking_id: BookingId) -> Booking:
        try:
            raw = await self.storage.get_booking(booking_id)
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "load booking") from exc
        return self._parse_booking(raw)

    async def list_bookings(self) -> list[Booking]:
        try:
            raw = await self.storage.list_bookings()
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "list bookings") from exc
        return self._parse_booking_list(raw)

    async def bookings_for_guide(self, tour_guide_id: BookingId) -> list[Booking]:
        try:
            raw = await self.storage.list_bookings_for_guide(tour_guide_id)
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "list tour guide bookings") from exc
        return self._parse_booking_list(raw)

    def summarize(self, bookings: Iterable[Booking]) -> BookingSummary:
        return summarize_bookings(bookings, self.settings.default_currency)

    # Helpers

    async def _load_tour_guide(self, tour_guide_id: BookingId) -> TourGuide:
        if self.directory is None:
            logger.debug("no_tour_guide_directory tour_guide_id=%s", tour_guide_id)
            return TourGuide(id=tour_guide_id)
        try:
            raw = await self.directory.get_tour_guide(tour_guide_id)
        except (BackendError, AuthenticationError) as exc:
            raise self._persistence_failure(exc, "load tour guide") from exc
        try:
            return TourGuide.model_validate(raw)
        except PydanticValidationError as exc:
            raise PersistenceError("malformed tour guide response") from exc

    @staticmethod
    def _coerce_request(request: Union[BookingRequest, Mapping[str, Any]]) -> BookingRequest:
        if isinstance(request, BookingRequest):
            return request
        try:
            return BookingRequest.model_validate(dict(request))
        except PydanticValidationError as exc:
            raise ValidationError(
                "missing required fields", details={"errors": exc.errors(include_url=False)}
            ) from exc

    @staticmethod
    def _coerce_status(value: Union[BookingStatus, str]) -> BookingStatus:
        try:
            return BookingStatus(value)
        except ValueError as exc:
            raise ValidationError(f"unknown booking status: {value}") from exc

    @staticmethod
    def _coerce_role(value: Union[ActorRole, str]) -> ActorRole:
        try:
            return ActorRole(value)
        except ValueError as exc:
            raise ValidationError(f"unknown actor role: {value}") from exc

    def _parse_booking(self, raw: Any, currency: Optional[str] = None) -> Booking:
        try:
            booking = Booking.model_validate(raw)
        except PydanticValidationError as exc:
            raise PersistenceError("malformed booking response") from exc
        return self._with_currency(booking, currency)

    def _with_currency(self, booking: Booking, currency: Optional[str] = None) -> Booking:
        if booking.currency:
            return booking
        return booking.model_copy(
            update={"currency": currency or self.settings.default_currency}
        )

    def _parse_booking_list(self, raw: Any) -> list[Booking]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise PersistenceError("malformed booking list response")
        return [self._parse_booking(item) for item in raw]

    def _parse_created(self, raw: Any, currency: str) -> BookingWithPayment:
        try:
            if isinstance(raw, dict) and "booking" in raw:
                created = BookingWithPayment.model_validate(raw)
            else:
                created = BookingWithPayment(booking=Booking.model_validate(raw))
        except PydanticValidationError as exc:
            raise PersistenceError("malformed booking response") from exc
        return created.model_copy(
            update={"booking": self._with_currency(created.booking, currency)}
        )

    def _after_write(self, raw: Any, current: Booking, status: BookingStatus) -> Booking:
        # the backend may answer with the updated booking or with nothing
        if isinstance(raw, dict) and raw.get("id") is not None:
            return self._parse_booking(raw)
        return current.model_copy(update={"status": status})

    @staticmethod
    def _creation_failure(exc: Exception) -> Exception:
        status_code = getattr(exc, "status_code", None)
        detail = getattr(exc, "detail", None)
        if classify_failure(status_code, detail) is FailureKind.AVAILABILITY_CONFLICT:
            logger.warning(
                "Booking rejected as unavailable (status=%s, message=%r)", status_code, detail
            )
            return AvailabilityConflictError(
                details={"status_code": status_code, "backend_message": detail}
            )
        logger.error("Booking creation failed: %s", exc, exc_info=True)
        return PersistenceError(detail or str(exc), status_code=status_code)

    @staticmethod
    def _persistence_failure(exc: Exception, action: str) -> PersistenceError:
        status_code = getattr(exc, "status_code", None)
        detail = getattr(exc, "detail", None)
        logger.error("Failed to %s: %s", action, exc, exc_info=True)
        return PersistenceError(
            detail or str(exc), status_code=status_code, details={"action": action}
        )
