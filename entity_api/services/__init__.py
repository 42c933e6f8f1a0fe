"""Business logic services package with public service helpers."""

from .validation import validate_agent_create, validate_agent_update

__all__ = [
    "validate_agent_create",
    "validate_agent_update",
]
