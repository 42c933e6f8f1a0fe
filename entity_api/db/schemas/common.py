"""Wire shapes shared by every endpoint: paging envelope and error payloads."""
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from entity_api.core.errors import ErrorKind, error_kind_of

T = TypeVar("T")


class PageResult(BaseModel, Generic[T]):
    items: List[T]
    next_link: Optional[str] = None
    total_count: Optional[int] = None


class ValidationFailure(BaseModel):
    field: str
    message: str
    rejected_value: Any = None


class ExceptionPayload(BaseModel):
    error_kind: str
    error_type: str
    message: str
    details: Optional[List[ValidationFailure]] = None

    @classmethod
    def from_error(cls, error: BaseException, kind: Optional[ErrorKind] = None) -> "ExceptionPayload":
        """Build the payload for any raised failure.

        Only `ValidationFailure` entries (or dicts shaped like one) are kept
        from `error.details`; anything else is dropped. ``kind`` overrides the
        kind declared on the error.
        """
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        details = None
        raw_details = getattr(error, "details", None)
        if raw_details:
            details = [ValidationFailure.model_validate(d) for d in raw_details if isinstance(d, (ValidationFailure, dict))]
        return cls(
            error_kind=(kind if kind is not None else error_kind_of(error)).value,
            error_type=type(error).__name__,
            message=str(message),
            details=details or None,
        )
