import pytest

from entity_api.core.errors import (
    BusinessError,
    ConflictError,
    EntityValidationError,
    ErrorKind,
    FaultFamily,
    InvalidQueryError,
    NotFoundError,
    ServiceError,
    classify,
    error_kind_of,
    reported_kind,
)
from entity_api.core.results import BusinessFault, InternalFault, Ok, capture
from entity_api.db.schemas import ExceptionPayload, ValidationFailure


@pytest.mark.parametrize(
    "error,kind",
    [
        (BusinessError("rule"), ErrorKind.BUSINESS_RULE),
        (NotFoundError("Agent", 7), ErrorKind.NOT_FOUND),
        (ConflictError("dup"), ErrorKind.CONFLICT),
        (InvalidQueryError("bad"), ErrorKind.INVALID_QUERY),
        (EntityValidationError("invalid"), ErrorKind.VALIDATION),
    ],
)
def test_business_kinds_classify_as_business(error, kind):
    assert error_kind_of(error) is kind
    assert classify(error) is FaultFamily.BUSINESS


@pytest.mark.parametrize("error", [RuntimeError("boom"), KeyError("x"), ServiceError("internal"), ValueError("bad")])
def test_everything_else_is_internal(error):
    assert classify(error) is FaultFamily.INTERNAL


def test_classification_ignores_message_text():
    assert classify(RuntimeError("business rule violated")) is FaultFamily.INTERNAL


def test_undeclared_kind_attribute_is_internal():
    class Odd(Exception):
        kind = "business_rule"

    assert classify(Odd()) is FaultFamily.INTERNAL


def test_capture_wraps_plain_value():
    assert capture(lambda: 42) == Ok(42)


def test_capture_passes_through_tagged_results():
    fault = BusinessFault(ConflictError("dup"))
    assert capture(lambda: fault) is fault
    assert capture(lambda: Ok("x")) == Ok("x")


def test_capture_tags_raised_errors():
    def _business():
        raise NotFoundError("Agent", 1)

    def _internal():
        raise RuntimeError("db down")

    assert isinstance(capture(_business), BusinessFault)
    assert isinstance(capture(_internal), InternalFault)


def test_not_found_message():
    err = NotFoundError("Agent", 99)
    assert err.message == "Agent 99 not found"
    assert err.entity_id == 99


def test_payload_from_business_error_with_details():
    failures = [ValidationFailure(field="agent_name", message="required")]
    payload = ExceptionPayload.from_error(EntityValidationError("invalid agent", details=failures))
    assert payload.error_kind == "validation"
    assert payload.error_type == "EntityValidationError"
    assert payload.message == "invalid agent"
    assert payload.details == failures


def test_payload_from_plain_exception():
    payload = ExceptionPayload.from_error(RuntimeError("db down"))
    assert payload.model_dump() == {
        "error_kind": "internal",
        "error_type": "RuntimeError",
        "message": "db down",
        "details": None,
    }


def test_payload_message_falls_back_to_type_name():
    assert ExceptionPayload.from_error(RuntimeError()).message == "RuntimeError"


def test_reported_kind_follows_family():
    assert reported_kind(ValueError("x"), FaultFamily.BUSINESS) is ErrorKind.BUSINESS_RULE
    assert reported_kind(ConflictError("x"), FaultFamily.INTERNAL) is ErrorKind.INTERNAL
    assert reported_kind(ConflictError("x"), FaultFamily.BUSINESS) is ErrorKind.CONFLICT
    assert reported_kind(RuntimeError("x"), FaultFamily.INTERNAL) is ErrorKind.INTERNAL


def test_payload_kind_override():
    payload = ExceptionPayload.from_error(ValueError("rule"), ErrorKind.BUSINESS_RULE)
    assert payload.error_kind == "business_rule"
    assert payload.error_type == "ValueError"
