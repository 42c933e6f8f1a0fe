"""
Pydantic schemas, re-exported from their domain modules.
"""

from .common import PageResult, ValidationFailure, ExceptionPayload
from .agents import AgentBase, AgentCreate, AgentUpdate, Agent

__all__ = [
    "PageResult",
    "ValidationFailure",
    "ExceptionPayload",
    "AgentBase",
    "AgentCreate",
    "AgentUpdate",
    "Agent",
]
