"""Delimited-text export of projected rows."""

import csv
import json
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder

DEFAULT_DELIMITER = ";"
EXPORT_FILENAME_FORMAT = "export%Y%m%d%H%M%S.csv"


def export_filename(now: Optional[datetime] = None) -> str:
    """Return ``exportYYYYMMDDHHMMSS.csv`` for ``now`` (UTC)."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(EXPORT_FILENAME_FORMAT)


def _row_dict(row: Any) -> Dict[str, Any]:
    encoded = jsonable_encoder(row)
    if isinstance(encoded, dict):
        return encoded
    return {"value": encoded}


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value


def to_csv(rows: Iterable[Any], delimiter: str = DEFAULT_DELIMITER) -> str:
    """Serialize rows to delimited text with a header taken from the first row.

    An empty input yields an empty document.
    """
    records: List[Dict[str, Any]] = [_row_dict(row) for row in rows]
    if not records:
        return ""
    columns = list(records[0].keys())

    output_buffer = StringIO()
    writer = csv.writer(output_buffer, delimiter=delimiter)
    writer.writerow(columns)
    for record in records:
        writer.writerow([_cell(record.get(col)) for col in columns])
    return output_buffer.getvalue()
