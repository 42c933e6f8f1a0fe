"""
Error taxonomy for services and endpoints.

Every failure falls into one of two families. Business faults are
client-correctable and carry an ``ErrorKind`` whose ``is_business`` flag is
set. Everything else, including plain exceptions that never declared a
kind, is an internal fault.
"""
from __future__ import annotations

import enum
from typing import Any, List, Optional


class ErrorKind(str, enum.Enum):
    BUSINESS_RULE = "business_rule"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_QUERY = "invalid_query"
    VALIDATION = "validation"
    INTERNAL = "internal"

    @property
    def is_business(self) -> bool:
        return self is not ErrorKind.INTERNAL


class FaultFamily(str, enum.Enum):
    BUSINESS = "business"
    INTERNAL = "internal"


class ServiceError(Exception):
    """Base class for failures that declare their own kind."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class BusinessError(ServiceError):
    """A domain rule was violated by the caller's request."""

    kind = ErrorKind.BUSINESS_RULE


class NotFoundError(BusinessError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(f"{entity_name} {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


class ConflictError(BusinessError):
    kind = ErrorKind.CONFLICT


class InvalidQueryError(BusinessError):
    """Raised for malformed $filter/$orderby/$top/$skip/$count options."""

    kind = ErrorKind.INVALID_QUERY


class EntityValidationError(BusinessError):
    """Business fault carrying field-level validation failures."""

    kind = ErrorKind.VALIDATION


def error_kind_of(error: BaseException) -> ErrorKind:
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.INTERNAL


def classify(error: BaseException) -> FaultFamily:
    """Return the fault family for ``error`` from its declared kind only."""
    if error_kind_of(error).is_business:
        return FaultFamily.BUSINESS
    return FaultFamily.INTERNAL


def reported_kind(error: BaseException, family: FaultFamily) -> ErrorKind:
    """Return the kind to report for ``error`` once it is known to be in ``family``.

    A result tag can place an error in a family its own kind disagrees with;
    the tag wins so the status code and the reported kind always match.
    """
    kind = error_kind_of(error)
    if family is FaultFamily.BUSINESS and not kind.is_business:
        return ErrorKind.BUSINESS_RULE
    if family is FaultFamily.INTERNAL and kind.is_business:
        return ErrorKind.INTERNAL
    return kind
