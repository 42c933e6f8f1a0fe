from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AgentBase(BaseModel):
    agent_name: str
    description: str | None = None
    is_active: bool = True


class AgentCreate(AgentBase):
    pass


class AgentUpdate(BaseModel):
    agent_name: str | None = None
    description: str | None = None
    is_active: bool | None = None


class Agent(AgentBase):
    id: int
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
