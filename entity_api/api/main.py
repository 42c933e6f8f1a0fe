"""
FastAPI app assembly: logging, exception handlers and router wiring.
"""
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from entity_api.api.agents import router as agents_router
from entity_api.api.outcomes import OutcomeHandler
from entity_api.core.errors import ServiceError
from entity_api.db.schemas import ValidationFailure
from entity_api.utils.settings import get_settings

# Configure logging
_settings = get_settings()
logging.basicConfig(level=_settings.log_level_value)
logger = logging.getLogger(__name__)
logger.setLevel(_settings.log_level_value)
logger.info("app_startup: log_level=%s", _settings.log_level)

app = FastAPI(
    title="Entity API",
    description="Entity CRUD, paged listing and CSV export over a shared request-outcome layer.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://localhost:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def _validation_failures(exc: RequestValidationError) -> list:
    failures = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        # Drop the leading "body"/"query"/"path" segment
        field = ".".join(loc[1:] if len(loc) > 1 else loc)
        failures.append(ValidationFailure(field=field, message=err.get("msg", ""), rejected_value=err.get("input")))
    return failures


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    return OutcomeHandler(request).handle_validation_failure(_validation_failures(exc))


@app.exception_handler(ServiceError)
async def service_error_exception_handler(request: Request, exc: ServiceError):
    # Raised outside handle_callback, e.g. by get_query_options
    return OutcomeHandler(request).handle_failure(exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return OutcomeHandler(request).handle_failure(exc)


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(agents_router)
