"""
Field-level validation rules for agent payloads.

Rules return a list of `ValidationFailure`; an empty list means the
payload is acceptable. Structural checks (types, required fields) are left
to pydantic.
"""
from typing import List, Optional

from entity_api.db import schemas

AGENT_NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2000


def _check_agent_name(agent_name: Optional[str], failures: List[schemas.ValidationFailure], required: bool) -> None:
    if agent_name is None:
        if required:
            failures.append(schemas.ValidationFailure(field="agent_name", message="agent_name is required"))
        return
    if not agent_name.strip():
        failures.append(schemas.ValidationFailure(
            field="agent_name", message="agent_name must not be blank", rejected_value=agent_name,
        ))
    elif len(agent_name) > AGENT_NAME_MAX_LENGTH:
        failures.append(schemas.ValidationFailure(
            field="agent_name",
            message=f"agent_name must be at most {AGENT_NAME_MAX_LENGTH} characters",
            rejected_value=agent_name,
        ))


def _check_description(description: Optional[str], failures: List[schemas.ValidationFailure]) -> None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        failures.append(schemas.ValidationFailure(
            field="description",
            message=f"description must be at most {DESCRIPTION_MAX_LENGTH} characters",
            rejected_value=description,
        ))


def validate_agent_create(payload: schemas.AgentCreate) -> List[schemas.ValidationFailure]:
    failures: List[schemas.ValidationFailure] = []
    _check_agent_name(payload.agent_name, failures, required=True)
    _check_description(payload.description, failures)
    return failures


def validate_agent_update(payload: schemas.AgentUpdate) -> List[schemas.ValidationFailure]:
    failures: List[schemas.ValidationFailure] = []
    for field in ("agent_name", "is_active"):
        if field in payload.model_fields_set and getattr(payload, field) is None:
            failures.append(schemas.ValidationFailure(field=field, message=f"{field} must not be null"))
    _check_agent_name(payload.agent_name, failures, required=False)
    _check_description(payload.description, failures)
    return failures
