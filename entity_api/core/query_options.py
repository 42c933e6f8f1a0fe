"""
Query options for list endpoints.

Parses the ``$filter``, ``$orderby``, ``$top``, ``$skip`` and ``$count``
query-string directives and applies them to either a SQLAlchemy ``Query``
(translated to SQL) or any in-memory iterable of objects/mappings. Applying
options never mutates the source.

Supported ``$filter`` grammar::

    filter  := clause ("and" clause)*
    clause  := field op literal | func "(" field "," literal ")"
    op      := eq | ne | gt | ge | lt | le
    func    := contains | startswith
    literal := 'text' | 42 | 4.2 | true | false | null
"""
from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.orm import Query

from entity_api.core.errors import InvalidQueryError

logger = logging.getLogger(__name__)

_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
}
_FUNCTIONS = ("contains", "startswith")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<string>'(?:[^']|'')*')"
    r"|(?P<number>-?\d+(?:\.\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<punct>[(),])"
    r")"
)


@dataclass(frozen=True)
class FilterClause:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class OrderClause:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class QueryOptions:
    filters: Tuple[FilterClause, ...] = ()
    order_by: Tuple[OrderClause, ...] = ()
    top: Optional[int] = None
    skip: int = 0
    count: bool = False

    def page_size(self, default: int) -> int:
        """Page size implied by these options; ``default`` when $top is absent."""
        return self.top if self.top is not None else default


@dataclass
class AppliedQuery:
    items: List[Any]
    total_count: Optional[int]
    has_more: bool


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    text = text.strip()
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise InvalidQueryError(f"Unexpected character at position {pos} in $filter")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _FilterParser:
    def __init__(self, text: str):
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> Optional[Tuple[str, str]]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _next(self, expected: str) -> Tuple[str, str]:
        token = self._peek()
        if token is None:
            raise InvalidQueryError(f"Unexpected end of $filter, expected {expected}")
        self.pos += 1
        return token

    def _expect_punct(self, char: str) -> None:
        kind, value = self._next(f"'{char}'")
        if kind != "punct" or value != char:
            raise InvalidQueryError(f"Expected '{char}' in $filter but found '{value}'")

    def _field(self) -> str:
        kind, value = self._next("a field name")
        if kind != "name":
            raise InvalidQueryError(f"Expected a field name in $filter but found '{value}'")
        return value

    def _literal(self) -> Any:
        kind, value = self._next("a literal")
        if kind == "string":
            return value[1:-1].replace("''", "'")
        if kind == "number":
            return float(value) if "." in value else int(value)
        if kind == "name":
            lowered = value.lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            if lowered == "null":
                return None
        raise InvalidQueryError(f"Invalid literal '{value}' in $filter")

    def _clause(self) -> FilterClause:
        name = self._field()
        token = self._peek()
        if name.lower() in _FUNCTIONS and token == ("punct", "("):
            self._expect_punct("(")
            field = self._field()
            self._expect_punct(",")
            value = self._literal()
            self._expect_punct(")")
            if not isinstance(value, str):
                raise InvalidQueryError(f"{name.lower()}() requires a string literal")
            return FilterClause(field=field, op=name.lower(), value=value)
        kind, op = self._next("an operator")
        op = op.lower()
        if kind != "name" or op not in _COMPARISONS:
            raise InvalidQueryError(f"Unsupported operator '{op}' in $filter")
        return FilterClause(field=name, op=op, value=self._literal())

    def parse(self) -> Tuple[FilterClause, ...]:
        if not self.tokens:
            return ()
        clauses = [self._clause()]
        while True:
            token = self._peek()
            if token is None:
                break
            kind, value = token
            if kind != "name" or value.lower() != "and":
                raise InvalidQueryError(f"Unexpected token '{value}' in $filter")
            self.pos += 1
            clauses.append(self._clause())
        return tuple(clauses)


def parse_filter(text: Optional[str]) -> Tuple[FilterClause, ...]:
    if not text or not text.strip():
        return ()
    return _FilterParser(text).parse()


def parse_orderby(text: Optional[str]) -> Tuple[OrderClause, ...]:
    if not text or not text.strip():
        return ()
    clauses = []
    for part in text.split(","):
        pieces = part.split()
        if not pieces or len(pieces) > 2:
            raise InvalidQueryError(f"Invalid $orderby segment '{part.strip()}'")
        field = pieces[0]
        if not _IDENTIFIER_RE.match(field):
            raise InvalidQueryError(f"Invalid field name '{field}' in $orderby")
        direction = pieces[1].lower() if len(pieces) == 2 else "asc"
        if direction not in ("asc", "desc"):
            raise InvalidQueryError(f"Invalid sort direction '{pieces[1]}' in $orderby")
        clauses.append(OrderClause(field=field, descending=direction == "desc"))
    return tuple(clauses)


def _parse_int(name: str, raw: Any) -> Optional[int]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} must be an integer")


def _parse_bool(name: str, raw: Any) -> bool:
    if raw is None or raw == "":
        return False
    if isinstance(raw, bool):
        return raw
    lowered = str(raw).strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    raise InvalidQueryError(f"{name} must be 'true' or 'false'")


def parse_query_options(
    filter: Optional[str] = None,
    orderby: Optional[str] = None,
    top: Any = None,
    skip: Any = None,
    count: Any = None,
    *,
    max_page_size: Optional[int] = None,
) -> QueryOptions:
    """Build ``QueryOptions`` from raw query-string values."""
    parsed_top = _parse_int("$top", top)
    if parsed_top is not None:
        if parsed_top < 1:
            raise InvalidQueryError("$top must be at least 1")
        if max_page_size is not None and parsed_top > max_page_size:
            logger.debug("query_options: clamping $top=%s to max_page_size=%s", parsed_top, max_page_size)
            parsed_top = max_page_size
    parsed_skip = _parse_int("$skip", skip) or 0
    if parsed_skip < 0:
        raise InvalidQueryError("$skip must not be negative")
    return QueryOptions(
        filters=parse_filter(filter),
        order_by=parse_orderby(orderby),
        top=parsed_top,
        skip=parsed_skip,
        count=_parse_bool("$count", count),
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def apply_query_options(source: Any, options: QueryOptions, *, page_size: Optional[int] = None) -> AppliedQuery:
    """Filter, count, sort and page ``source``; materializes the selected page.

    ``page_size`` of ``None`` disables the page bound (only ``$skip`` applies).
    """
    if isinstance(source, Query):
        return _apply_to_sql(source, options, page_size)
    return _apply_to_iterable(source, options, page_size)


def _sql_column(entity: Any, field: str):
    mapper = inspect(entity)
    if field not in mapper.column_attrs:
        raise InvalidQueryError(f"Unknown field '{field}'")
    return getattr(entity, field)


def _python_type(column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _sql_literal(column, clause: FilterClause) -> Any:
    """Return ``clause.value`` coerced for ``column`` or raise when it does not fit.

    Integer columns take integers, numeric columns take any number, boolean
    columns take only ``true``/``false`` and date/time columns take ISO text.
    """
    expected = _python_type(column)
    value = clause.value
    if expected is None or value is None:
        return value
    if expected in (datetime, date) and isinstance(value, str):
        try:
            return expected.fromisoformat(value)
        except ValueError:
            raise InvalidQueryError(f"Invalid {expected.__name__} literal '{value}' for field '{clause.field}'") from None
    if isinstance(value, bool) or expected is bool:
        fits = isinstance(value, bool) and expected is bool
    elif expected is int:
        fits = isinstance(value, int)
    elif expected in (float, Decimal):
        fits = isinstance(value, (int, float))
    else:
        fits = isinstance(value, expected)
    if not fits:
        raise InvalidQueryError(
            f"Cannot compare field '{clause.field}' ({expected.__name__}) with {type(value).__name__} literal"
        )
    return value


def _sql_condition(column, clause: FilterClause):
    if clause.op in _FUNCTIONS:
        if _python_type(column) is not str or not isinstance(clause.value, str):
            raise InvalidQueryError(f"{clause.op}() requires a text field and a text literal (field '{clause.field}')")
        if clause.op == "contains":
            return column.contains(clause.value, autoescape=True)
        return column.startswith(clause.value, autoescape=True)
    if clause.value is None:
        if clause.op == "eq":
            return column.is_(None)
        if clause.op == "ne":
            return column.is_not(None)
        raise InvalidQueryError(f"null can only be compared with eq/ne (field '{clause.field}')")
    return _COMPARISONS[clause.op](column, _sql_literal(column, clause))


def _apply_to_sql(query: Query, options: QueryOptions, page_size: Optional[int]) -> AppliedQuery:
    descriptions = query.column_descriptions
    entity = descriptions[0].get("entity") if descriptions else None
    if entity is None:
        raise TypeError("Query options require a query over a mapped entity")

    for clause in options.filters:
        query = query.filter(_sql_condition(_sql_column(entity, clause.field), clause))

    total_count = query.order_by(None).count() if options.count else None

    ordering = []
    ordered_fields = set()
    for clause in options.order_by:
        column = _sql_column(entity, clause.field)
        ordering.append(column.desc() if clause.descending else column.asc())
        ordered_fields.add(clause.field)
    # Primary key tiebreak keeps page boundaries deterministic
    for pk in inspect(entity).primary_key:
        if pk.key not in ordered_fields:
            ordering.append(pk.asc())
    query = query.order_by(*ordering)

    if options.skip:
        query = query.offset(options.skip)
    if page_size is None:
        return AppliedQuery(items=query.all(), total_count=total_count, has_more=False)
    rows = query.limit(page_size + 1).all()
    return AppliedQuery(items=rows[:page_size], total_count=total_count, has_more=len(rows) > page_size)


def _value_of(item: Any, field: str) -> Any:
    if isinstance(item, Mapping):
        if field not in item:
            raise InvalidQueryError(f"Unknown field '{field}'")
        return item[field]
    if not hasattr(item, field):
        raise InvalidQueryError(f"Unknown field '{field}'")
    return getattr(item, field)


def _matches(item: Any, clause: FilterClause) -> bool:
    value = _value_of(item, clause.field)
    if clause.op == "contains":
        return isinstance(value, str) and clause.value in value
    if clause.op == "startswith":
        return isinstance(value, str) and value.startswith(clause.value)
    if clause.op in ("eq", "ne"):
        return _COMPARISONS[clause.op](value, clause.value)
    if value is None or clause.value is None:
        return False
    try:
        return _COMPARISONS[clause.op](value, clause.value)
    except TypeError:
        raise InvalidQueryError(f"Cannot compare field '{clause.field}' with {clause.value!r}")


def _sort_key(value: Any) -> Tuple[bool, Any]:
    return (value is not None, value)


def _apply_to_iterable(source: Iterable[Any], options: QueryOptions, page_size: Optional[int]) -> AppliedQuery:
    rows = list(source)
    for clause in options.filters:
        rows = [row for row in rows if _matches(row, clause)]

    total_count = len(rows) if options.count else None

    # Sorting by the last key first keeps earlier keys dominant (stable sort)
    for clause in reversed(options.order_by):
        try:
            rows.sort(key=lambda row, f=clause.field: _sort_key(_value_of(row, f)), reverse=clause.descending)
        except TypeError:
            raise InvalidQueryError(f"Field '{clause.field}' holds values that cannot be ordered")

    rows = rows[options.skip:]
    if page_size is None:
        return AppliedQuery(items=rows, total_count=total_count, has_more=False)
    return AppliedQuery(items=rows[:page_size], total_count=total_count, has_more=len(rows) > page_size)
