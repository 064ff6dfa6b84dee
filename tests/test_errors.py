import pytest
from vietguide.errors import (
    AVAILABILITY_CONFLICT_MESSAGE,
    AvailabilityConflictError,
    ConversionError,
    FailureKind,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
    VietGuideError,
    classify_failure,
)


@pytest.mark.parametrize(
    ("status_code", "message"),
    [
        (409, None),
        (409, "Conflict"),
        (422, None),
        (422, "Request could not be processed"),
        (400, None),
        (400, ""),
        (400, "   "),
        (500, "Tour guide is already booked for this period"),
        (None, "Selected time slot is unavailable"),
        (None, "The guide is NOT AVAILABLE on these dates"),
        (503, "Schedule Conflict detected"),
        (400, "booking conflict with booking #12"),
        (500, "date conflict"),
    ],
)
def test_classify_failure_detects_availability_conflicts(status_code, message):
    assert classify_failure(status_code, message) is FailureKind.AVAILABILITY_CONFLICT


@pytest.mark.parametrize(
    ("status_code", "message"),
    [
        (None, None),
        (500, None),
        (500, "Internal server error"),
        (400, "Location is required"),
        (401, None),
        (404, "Tour guide not found"),
        (None, "backend_connection_failed: boom"),
    ],
)
def test_classify_failure_leaves_other_failures_as_persistence(status_code, message):
    assert classify_failure(status_code, message) is FailureKind.PERSISTENCE


def test_availability_conflict_uses_standard_message():
    exc = AvailabilityConflictError()

    assert exc.message == AVAILABILITY_CONFLICT_MESSAGE
    assert "not available for the selected dates" in str(exc)
    assert exc.code == "AVAILABILITY_CONFLICT"


def test_invalid_transition_error_carries_states():
    exc = InvalidTransitionError("Pending", "Completed", "guide")

    assert exc.code == "INVALID_TRANSITION"
    assert exc.details == {
        "current_status": "Pending",
        "requested_status": "Completed",
        "actor_role": "guide",
    }
    assert "Pending" in exc.message and "Completed" in exc.message


def test_persistence_error_records_status_code():
    exc = PersistenceError("Database unavailable", status_code=503, details={"action": "x"})

    assert exc.status_code == 503
    assert exc.details == {"action": "x", "status_code": 503}
    assert exc.to_dict()["message"] == "Database unavailable"


def test_conversion_error_defaults_to_generic_message():
    assert ConversionError().message == "conversion failed"
    assert ConversionError("Rate provider down").message == "Rate provider down"


def test_all_errors_share_base_class():
    for exc in (
        ValidationError("missing required fields"),
        AvailabilityConflictError(),
        InvalidTransitionError("Pending", "Pending", "client"),
        PersistenceError("boom"),
        ConversionError(),
    ):
        assert isinstance(exc, VietGuideError)
