# src/pgshape/sql/escaping.py
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlalchemy.dialects import postgresql
from sqlalchemy.engine.interfaces import Dialect

from pgshape.geo.units import format_number
from pgshape.geo.wkt import convert_shape_to_sql

QuoteFn = Callable[[str], str]

_STRIP_QUOTES_RE = re.compile(r'[`"]+')
_PG_PREPARER = postgresql.dialect().identifier_preparer


def quote_identifier(name: str) -> str:
    """
    Default identifier quoting (PostgreSQL): location -> "location".
    """
    return _PG_PREPARER.quote_identifier(name)


def identifier_quoter(dialect: Dialect) -> QuoteFn:
    """
    Quoting function for another SQLAlchemy dialect, e.g. identifier_quoter(engine.dialect).
    """
    return dialect.identifier_preparer.quote_identifier


def quote_column(name: str, quote: QuoteFn = quote_identifier) -> Optional[str]:
    """
    Quote a (possibly table-qualified) column name.

    Backticks and double quotes are stripped first, then every dotted part is
    quoted on its own: locations.location -> "locations"."location".
    This is not full escaping; column names are expected from trusted code.
    """
    cleaned = _STRIP_QUOTES_RE.sub("", name).strip()
    if not cleaned:
        return None
    return ".".join(quote(part) for part in cleaned.split("."))


def safe_sql(text: str) -> str:
    return text.replace("'", "''")


def safe_literal(text: str) -> str:
    return f"'{safe_sql(text)}'"


def parse_shape_or_column_to_safe_sql(value: Any, *, quote: QuoteFn = quote_identifier) -> Optional[str]:
    """
    Render a column name, shape, or scalar literal as SQL text.

      "location"            -> "location"
      5 / 2.5               -> 5 / 2.5
      True                  -> true
      {"lat": 1, "lon": -1} -> 'POINT(-1 1)'::geography

    Returns None for None, NaN/inf, and anything that is not a valid shape.
    """
    if isinstance(value, str):
        return quote_column(value, quote)
    # bool before numbers: bool is an int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return format_number(value) if isinstance(value, int) or math.isfinite(value) else None
    return convert_shape_to_sql(value)
