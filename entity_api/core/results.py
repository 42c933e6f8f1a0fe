"""
Tagged outcome of a unit of work.

Domain code may return ``Ok``/``BusinessFault``/``InternalFault`` directly,
or simply return a value and raise; ``capture`` normalizes both styles so
the dispatch layer only ever inspects the tag.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from entity_api.core.errors import FaultFamily, classify

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class BusinessFault:
    error: BaseException


@dataclass(frozen=True)
class InternalFault:
    error: BaseException


Fault = Union[BusinessFault, InternalFault]
Result = Union[Ok[T], BusinessFault, InternalFault]


def fault_from(error: BaseException) -> Fault:
    if classify(error) is FaultFamily.BUSINESS:
        return BusinessFault(error)
    return InternalFault(error)


def capture(work: Callable[[], Any]) -> Result:
    """Run ``work`` and return its outcome as a tagged result."""
    try:
        outcome = work()
    except Exception as exc:
        return fault_from(exc)
    if isinstance(outcome, (Ok, BusinessFault, InternalFault)):
        return outcome
    return Ok(outcome)
