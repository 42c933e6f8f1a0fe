"""
Shared SQLAlchemy base and helpers.
"""
from sqlalchemy import Column, Integer
from sqlalchemy.orm import declarative_base
from datetime import datetime, UTC


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


Base = declarative_base()


class Entity(Base):
    """Abstract record identified by an integer primary key."""
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
