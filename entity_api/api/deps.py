"""
Shared FastAPI dependencies: outcome handler, query options and services.
"""
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session
from starlette.requests import Request

from entity_api.api.outcomes import OutcomeHandler
from entity_api.core.query_options import QueryOptions, parse_query_options
from entity_api.db.database import get_db
from entity_api.db.repositories.agents import AgentService
from entity_api.utils.settings import get_settings


def get_outcome_handler(request: Request) -> OutcomeHandler:
    return OutcomeHandler(request, settings=get_settings())


def get_query_options(
    filter_: Optional[str] = Query(default=None, alias="$filter"),
    orderby: Optional[str] = Query(default=None, alias="$orderby"),
    top: Optional[str] = Query(default=None, alias="$top"),
    skip: Optional[str] = Query(default=None, alias="$skip"),
    count: Optional[str] = Query(default=None, alias="$count"),
) -> QueryOptions:
    """Parse OData-style list directives; malformed values raise InvalidQueryError."""
    return parse_query_options(
        filter=filter_,
        orderby=orderby,
        top=top,
        skip=skip,
        count=count,
        max_page_size=get_settings().max_page_size,
    )


def get_agent_service(db: Session = Depends(get_db)) -> AgentService:
    return AgentService(db)
