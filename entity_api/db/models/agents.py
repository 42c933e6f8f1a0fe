from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, func
from .base import Entity, now_utc


class Agent(Entity):
    __tablename__ = 'agents'
    agent_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('uq_agents_agent_name_lower', func.lower(agent_name), unique=True),
    )
