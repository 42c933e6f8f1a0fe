"""
Agent entity service.

Adds case-insensitive name lookup on top of the generic service and keeps
agent names unique.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from entity_api.core.errors import ConflictError
from entity_api.db import models
from entity_api.db.repositories.base import SqlAlchemyEntityService


class AgentService(SqlAlchemyEntityService[models.Agent]):
    def __init__(self, db: Session):
        super().__init__(db, models.Agent)

    def get_by_name(self, agent_name: str) -> Optional[models.Agent]:
        return (
            self.query()
            .filter(func.lower(models.Agent.agent_name) == func.lower(agent_name.strip()))
            .first()
        )

    def _ensure_unique_name(self, agent: models.Agent) -> None:
        existing = self.get_by_name(agent.agent_name)
        if existing is not None and existing.id != agent.id:
            raise ConflictError(f"Agent with name '{agent.agent_name}' already exists")

    def add(self, entity: models.Agent) -> models.Agent:
        self._ensure_unique_name(entity)
        return super().add(entity)

    def update(self, entity: models.Agent) -> models.Agent:
        self._ensure_unique_name(entity)
        return super().update(entity)
