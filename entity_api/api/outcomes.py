"""
Request-outcome handling for endpoints.

`OutcomeHandler` runs a unit of work and turns its outcome into exactly one
response: a JSON success body, a classified error payload, a raw list of
validation failures, or (for list endpoints) either a paged JSON result or
a CSV attachment chosen from the request's Accept header.

Endpoints receive a handler through `deps.get_outcome_handler`; it holds no
state beyond the current request.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from fastapi import status
from fastapi.encoders import jsonable_encoder
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from entity_api.core.csv_export import export_filename, to_csv
from entity_api.core.errors import FaultFamily, classify, reported_kind
from entity_api.core.query_options import QueryOptions, apply_query_options
from entity_api.core.results import BusinessFault, InternalFault, Ok, capture
from entity_api.db.schemas import ExceptionPayload, PageResult
from entity_api.utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

Projection = Callable[[Any], Any]


def accepts_media_type(accept_header: Optional[str], media_type: str) -> bool:
    """Return True when ``accept_header`` lists ``media_type`` with a non-zero q."""
    if not accept_header:
        return False
    wanted = media_type.strip().lower()
    for entry in accept_header.split(","):
        parts = [p.strip() for p in entry.split(";")]
        if parts[0].lower() != wanted:
            continue
        quality = next((p[2:] for p in parts[1:] if p.lower().startswith("q=")), None)
        if quality is not None:
            try:
                if float(quality) <= 0:
                    continue
            except ValueError:
                continue
        return True
    return False


class OutcomeHandler:
    def __init__(
        self,
        request: Request,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.request = request
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # -- success paths -----------------------------------------------------

    def handle_callback(self, work: Callable[[], Any], *, status_code: int = status.HTTP_200_OK) -> Response:
        """Run ``work`` and wrap its value, or hand its fault to `handle_failure`."""
        result = capture(work)
        if isinstance(result, Ok):
            return JSONResponse(status_code=status_code, content=jsonable_encoder(result.value))
        return self.handle_failure(result)

    def wants_csv(self) -> bool:
        return accepts_media_type(self.request.headers.get("accept"), self.settings.csv_media_type)

    def handle_query(self, source: Any, options: QueryOptions, projection: Projection) -> Response:
        """Single entry point for list endpoints.

        Picks the CSV attachment when the Accept header asks for CSV, the
        paged JSON envelope otherwise.
        """
        try:
            if self.wants_csv():
                return self._handle_csv_file(source, options, projection)
            page = self.handle_page_result(source, options, projection)
            return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(page))
        except Exception as exc:
            return self.handle_failure(exc)

    def handle_page_result(self, source: Any, options: QueryOptions, projection: Projection) -> PageResult:
        page_size = options.page_size(self.settings.default_page_size)
        applied = apply_query_options(source, options, page_size=page_size)
        items = [projection(item) for item in applied.items]
        next_link = None
        if applied.has_more:
            next_link = str(self.request.url.include_query_params(**{
                "$skip": options.skip + len(applied.items),
                "$top": page_size,
            }))
        return PageResult(items=items, next_link=next_link, total_count=applied.total_count)

    # -- failure paths -----------------------------------------------------

    def handle_failure(self, error: Union[BaseException, BusinessFault, InternalFault]) -> JSONResponse:
        if isinstance(error, BusinessFault):
            family, error = FaultFamily.BUSINESS, error.error
        elif isinstance(error, InternalFault):
            family, error = FaultFamily.INTERNAL, error.error
        else:
            family = classify(error)

        kind = reported_kind(error, family)
        payload = ExceptionPayload.from_error(error, kind)
        if family is FaultFamily.BUSINESS:
            logger.info(
                "business_fault: kind=%s type=%s path=%s message=%s",
                kind.value, type(error).__name__, self.request.url.path, payload.message,
            )
            status_code = status.HTTP_400_BAD_REQUEST
        else:
            logger.error(
                "internal_fault: type=%s path=%s message=%s",
                type(error).__name__, self.request.url.path, payload.message,
                exc_info=error,
            )
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))

    def handle_validation_failure(self, failures: Iterable[Any]) -> JSONResponse:
        """Return the failures verbatim with a 400 status."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(list(failures)),
        )

    # -- export ------------------------------------------------------------

    def _handle_csv_file(self, source: Any, options: QueryOptions, projection: Projection) -> Response:
        # Without $top the whole filtered set is exported
        applied = apply_query_options(source, options, page_size=options.top)
        rows = [projection(item) for item in applied.items]
        body = to_csv(rows, delimiter=self.settings.csv_delimiter).encode("utf-8")
        filename = export_filename(self.clock())
        logger.debug("csv_export: rows=%d bytes=%d filename=%s", len(rows), len(body), filename)
        return Response(
            content=body,
            status_code=status.HTTP_200_OK,
            media_type=OCTET_STREAM,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
