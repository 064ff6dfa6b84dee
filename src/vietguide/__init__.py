"""Tour-guide booking lifecycle, pricing and currency conversion core."""

from .booking import BookingLifecycleManager, allowed_transitions, summarize_bookings
from .bootstrap import Services, build_services, open_services
from .client import VietGuideClient
from .config import Settings
from .currency import ConversionHistory, CurrencyConversionService
from .errors import (
    AvailabilityConflictError,
    ConversionError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
    VietGuideError,
    classify_failure,
)
from .models import ActorRole, Booking, BookingRequest, BookingStatus, CurrencyRate, TourGuide
from .money import duration_label, format_money

__all__ = [
    "ActorRole",
    "AvailabilityConflictError",
    "Booking",
    "BookingLifecycleManager",
    "BookingRequest",
    "BookingStatus",
    "ConversionError",
    "ConversionHistory",
    "CurrencyConversionService",
    "CurrencyRate",
    "InvalidTransitionError",
    "PersistenceError",
    "Services",
    "Settings",
    "TourGuide",
    "ValidationError",
    "VietGuideClient",
    "VietGuideError",
    "allowed_transitions",
    "build_services",
    "classify_failure",
    "duration_label",
    "format_money",
    "open_services",
    "summarize_bookings",
]
