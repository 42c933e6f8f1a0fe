"""
Agents API endpoints.

CRUD and list/export operations for agents. Every endpoint returns through
the `OutcomeHandler` so failures become classified responses.
"""
from fastapi import APIRouter, Depends, status

from entity_api.api.deps import get_agent_service, get_outcome_handler, get_query_options
from entity_api.api.outcomes import OutcomeHandler
from entity_api.core.query_options import QueryOptions
from entity_api.db import models, schemas
from entity_api.db.repositories.agents import AgentService
from entity_api.services.validation import validate_agent_create, validate_agent_update

router = APIRouter(prefix="/agents", tags=["agents"])


def _to_view(agent: models.Agent) -> schemas.Agent:
    return schemas.Agent.model_validate(agent)


@router.get("/", response_model=schemas.PageResult[schemas.Agent])
def list_agents_endpoint(
    options: QueryOptions = Depends(get_query_options),
    service: AgentService = Depends(get_agent_service),
    handler: OutcomeHandler = Depends(get_outcome_handler),
):
    return handler.handle_query(service.query(), options, _to_view)


@router.get("/{agent_id}", response_model=schemas.Agent)
def get_agent_endpoint(
    agent_id: int,
    service: AgentService = Depends(get_agent_service),
    handler: OutcomeHandler = Depends(get_outcome_handler),
):
    return handler.handle_callback(lambda: _to_view(service.get(agent_id)))


@router.post("/", response_model=schemas.Agent, status_code=status.HTTP_201_CREATED)
def create_agent_endpoint(
    agent: schemas.AgentCreate,
    service: AgentService = Depends(get_agent_service),
    handler: OutcomeHandler = Depends(get_outcome_handler),
):
    failures = validate_agent_create(agent)
    if failures:
        return handler.handle_validation_failure(failures)

    def _create():
        db_agent = models.Agent(
            agent_name=agent.agent_name.strip(),
            description=agent.description,
            is_active=agent.is_active,
        )
        return _to_view(service.add(db_agent))

    return handler.handle_callback(_create, status_code=status.HTTP_201_CREATED)


@router.put("/{agent_id}", response_model=schemas.Agent)
def update_agent_endpoint(
    agent_id: int,
    agent_update: schemas.AgentUpdate,
    service: AgentService = Depends(get_agent_service),
    handler: OutcomeHandler = Depends(get_outcome_handler),
):
    failures = validate_agent_update(agent_update)
    if failures:
        return handler.handle_validation_failure(failures)

    def _update():
        db_agent = service.get(agent_id)
        for key, value in agent_update.model_dump(exclude_unset=True).items():
            if key == "agent_name" and value is not None:
                value = value.strip()
            setattr(db_agent, key, value)
        return _to_view(service.update(db_agent))

    return handler.handle_callback(_update)


@router.delete("/{agent_id}")
def delete_agent_endpoint(
    agent_id: int,
    service: AgentService = Depends(get_agent_service),
    handler: OutcomeHandler = Depends(get_outcome_handler),
):
    def _delete():
        service.delete(service.get(agent_id))
        return {"message": "Agent deleted successfully"}

    return handler.handle_callback(_delete)
