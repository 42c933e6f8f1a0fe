"""
Generic entity-service contract and its SQLAlchemy implementation.

`EntityService` is the capability surface every persistence-backed service
exposes: add, update, get, get_all and delete over an `Entity` subclass.
`get` on a missing id raises `NotFoundError` rather than returning None.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, List, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from entity_api.core.errors import ConflictError, NotFoundError
from entity_api.db.models import Entity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class EntityService(ABC, Generic[T]):
    """CRUD contract for services over an `Entity` type."""

    @abstractmethod
    def add(self, entity: T) -> T:
        ...

    @abstractmethod
    def update(self, entity: T) -> T:
        ...

    @abstractmethod
    def get(self, entity_id: int) -> T:
        """Return the entity with ``entity_id`` or raise `NotFoundError`."""

    @abstractmethod
    def get_all(self) -> List[T]:
        ...

    @abstractmethod
    def delete(self, entity: T) -> None:
        ...


class SqlAlchemyEntityService(EntityService[T]):
    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    def query(self) -> Query:
        """Base query for list endpoints; callers apply query options to it."""
        return self.db.query(self.model)

    def _commit(self, entity: T) -> T:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("entity_conflict: entity=%s error=%s", self.entity_name, e.orig)
            raise ConflictError(f"{self.entity_name} violates a uniqueness or integrity constraint")
        self.db.refresh(entity)
        return entity

    def add(self, entity: T) -> T:
        self.db.add(entity)
        return self._commit(entity)

    def update(self, entity: T) -> T:
        if entity.id is None or self.db.get(self.model, entity.id) is None:
            raise NotFoundError(self.entity_name, entity.id)
        merged = self.db.merge(entity)
        return self._commit(merged)

    def get(self, entity_id: int) -> T:
        entity = self.db.get(self.model, entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def get_all(self) -> List[T]:
        return self.query().order_by(self.model.id).all()

    def delete(self, entity: T) -> None:
        persistent = self.db.get(self.model, entity.id) if entity.id is not None else None
        if persistent is None:
            raise NotFoundError(self.entity_name, entity.id)
        try:
            self.db.delete(persistent)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
