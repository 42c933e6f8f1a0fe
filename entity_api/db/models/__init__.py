"""
SQLAlchemy models.

Exposes `Base`, `Entity`, `now_utc` and all ORM classes.
"""

from .base import Base, Entity, now_utc  # re-export

from .agents import Agent

__all__ = [
    "Base",
    "Entity",
    "now_utc",
    "Agent",
]
