# src/pgshape/query.py
"""
Spatial select/where helpers for SQLAlchemy Core statements.

    spatial = SpatialQuery()
    stmt = select(Location.id, Location.name)
    stmt = spatial.select_distance(stmt, Location.location, {"lat": 39.87, "lon": -104.128}, unit="miles")
    stmt = spatial.where_distance_within(stmt, Location.location, {"lat": 39.87, "lon": -104.128}, 50, "miles")

Every helper returns a new statement, or the statement unchanged when a
shape/column argument is missing (e.g. {"lat": None, "lon": None} from a request
that has not been geolocated yet). Programmer errors (unknown unit, operator or
output format, missing distance) raise ValueError.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Callable, Literal, Optional

from sqlalchemy import Select, literal_column
from sqlalchemy.sql.expression import ColumnClause

from pgshape.config.logging import get_logger
from pgshape.config.settings import Settings, get_settings
from pgshape.geo.units import (
    Unit,
    format_number,
    has_units,
    parse_measurement,
    unit_to_meters_math_literal,
)
from pgshape.sql.escaping import QuoteFn, parse_shape_or_column_to_safe_sql, quote_identifier
from pgshape.sql.functions import RawFactory, sql_function_builder

logger = get_logger("query")

ConvertFormat = Literal["geojson", "text", "ewkt", "wkt"]

CONVERT_FUNCTIONS: dict[str, str] = {
    "geojson": "ST_AsGeoJSON",
    "text": "ST_AsText",
    "ewkt": "ST_AsEWKT",
    "wkt": "ST_AsText",
}

OPERATORS: dict[str, str] = {
    "=": "=",
    "!=": "<>",
    ">": ">",
    ">=": ">=",
    "<": "<",
    "<=": "<=",
    "<>": "<>",
    "!==": "<>",
    "==": "=",
    "===": "=",
}

_DE9IM_PATTERN_RE = re.compile(r"^[TF*012]{9}$")


def column_name(value: Any) -> Any:
    """
    SQLAlchemy columns / ORM attributes -> "table.column"; anything else is returned as is.
    """
    if hasattr(value, "__clause_element__"):
        value = value.__clause_element__()
    if isinstance(value, ColumnClause):
        table = getattr(value, "table", None)
        table_name = getattr(table, "name", None)
        return f"{table_name}.{value.name}" if table_name else value.name
    return value


def _unary_select(fn_name: str, default_alias: str) -> Callable[..., Select]:
    def method(
        self: SpatialQuery,
        stmt: Select,
        shape_or_column: Any,
        alias: str = default_alias,
        unit: Unit = "meters",
        convert_format: Optional[ConvertFormat] = None,
    ) -> Select:
        return self._select_function(stmt, fn_name, (shape_or_column,), alias, unit, convert_format)

    method.__doc__ = f"Add a computed column `{default_alias}` using {fn_name}(shape)."
    return method


def _binary_select(fn_name: str, default_alias: str) -> Callable[..., Select]:
    def method(
        self: SpatialQuery,
        stmt: Select,
        left: Any,
        right: Any,
        alias: str = default_alias,
        unit: Unit = "meters",
        convert_format: Optional[ConvertFormat] = None,
    ) -> Select:
        return self._select_function(stmt, fn_name, (left, right), alias, unit, convert_format)

    method.__doc__ = f"Add a computed column `{default_alias}` using {fn_name}(left, right)."
    return method


def _where_predicate(fn_name: str) -> Callable[..., Select]:
    def method(self: SpatialQuery, stmt: Select, left: Any, right: Any) -> Select:
        return self._where_function(stmt, fn_name, (left, right))

    method.__doc__ = f"Filter rows with {fn_name}(left, right)."
    return method


class SpatialQuery:
    """
    Spatial helpers bound to a raw SQL factory and identifier quoting.

    `raw` turns finished SQL text into a clause (default: sqlalchemy.literal_column).
    `quote` quotes identifiers (default: PostgreSQL double quotes).
    With `throw_on_undefined`, a missing shape/column raises instead of being skipped.
    """

    def __init__(
        self,
        raw: RawFactory = literal_column,
        *,
        quote: QuoteFn = quote_identifier,
        throw_on_undefined: bool = False,
    ) -> None:
        self.raw = raw
        self.quote = quote
        self.throw_on_undefined = throw_on_undefined
        self.fn = sql_function_builder(raw, quote=quote)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> SpatialQuery:
        settings = settings or get_settings()
        kwargs.setdefault("throw_on_undefined", settings.throw_on_undefined)
        return cls(**kwargs)

    # -------------------------
    # Internals
    # -------------------------

    def _resolve(self, value: Any) -> Optional[str]:
        return parse_shape_or_column_to_safe_sql(column_name(value), quote=self.quote)

    def _skip(self, stmt: Select, method: str) -> Select:
        if self.throw_on_undefined:
            raise ValueError(f"{method}: missing or invalid shape/column argument")
        logger.debug("%s: missing or invalid shape/column argument, statement left unchanged", method)
        return stmt

    def _convert_function(self, convert_format: Optional[str]) -> Optional[str]:
        if convert_format is None:
            return None
        try:
            return CONVERT_FUNCTIONS[convert_format]
        except KeyError:
            raise ValueError(
                f"Invalid convert format: {convert_format!r} (expected one of {sorted(CONVERT_FUNCTIONS)})"
            ) from None

    def _distance_sql(self, method: str, distance: Any, unit: Unit) -> str:
        """
        Threshold in meters as SQL text: 5 + "miles" -> "5 * 1609.344"; "10km" -> "10 * 1000".
        """
        if isinstance(distance, str):
            if has_units(distance):
                measurement = parse_measurement(distance.strip())
                return f"{format_number(measurement.value)}{unit_to_meters_math_literal(measurement.unit)}"
            try:
                distance = float(distance)
            except ValueError:
                raise ValueError(f"{method}: Invalid distance {distance!r}") from None

        if (
            distance is None
            or isinstance(distance, bool)
            or not isinstance(distance, (int, float, Decimal))
            or not (isinstance(distance, int) or math.isfinite(distance))
        ):
            raise ValueError(f"{method}: Missing distance")

        return f"{format_number(distance)}{unit_to_meters_math_literal(unit)}"

    def _select_function(
        self,
        stmt: Select,
        fn_name: str,
        args: tuple[Any, ...],
        alias: str,
        unit: Unit,
        convert_format: Optional[str],
    ) -> Select:
        wrapper = self._convert_function(convert_format)

        builder = self.fn(fn_name)
        for value in args:
            builder = builder.arg(column_name(value))
        # A unit suffix cannot apply to a converted value (no ST_AsText(...) / 1609.344)
        builder = builder.wrap(wrapper) if wrapper else builder.unit(unit)

        clause = builder.alias(alias).to_raw()
        if clause is None:
            return self._skip(stmt, fn_name)
        return stmt.add_columns(clause)

    def _where_function(self, stmt: Select, fn_name: str, args: tuple[Any, ...], extra: str = "") -> Select:
        resolved = [self._resolve(value) for value in args]
        if any(sql is None for sql in resolved):
            return self._skip(stmt, fn_name)
        return stmt.where(self.raw(f"{fn_name}({', '.join(resolved)}{extra})"))

    # -------------------------
    # Computed columns
    # -------------------------

    select_area = _unary_select("ST_Area", "area")
    select_centroid = _unary_select("ST_Centroid", "centroid")
    select_convex_hull = _unary_select("ST_ConvexHull", "convex_hull")
    select_envelope = _unary_select("ST_Envelope", "envelope")
    select_length = _unary_select("ST_Length", "length")

    select_difference = _binary_select("ST_Difference", "difference")
    select_distance = _binary_select("ST_Distance", "distance")
    select_distance_sphere = _binary_select("ST_DistanceSphere", "distance_sphere")
    select_distance_spheroid = _binary_select("ST_DistanceSpheroid", "distance_spheroid")
    select_intersection = _binary_select("ST_Intersection", "intersection")
    select_sym_difference = _binary_select("ST_SymDifference", "sym_difference")
    select_union = _binary_select("ST_Union", "union")

    def select_buffer(
        self,
        stmt: Select,
        shape_or_column: Any,
        distance: Any,
        unit: Unit = "meters",
        alias: str = "buffer",
        convert_format: Optional[ConvertFormat] = None,
    ) -> Select:
        """
        Add a computed column `buffer`: every point within `distance` (in `unit`) of the shape.
        """
        if distance is None:
            return self._skip(stmt, "ST_Buffer")
        radius = self._distance_sql("ST_Buffer", distance, unit)
        wrapper = self._convert_function(convert_format)

        shape_sql = self._resolve(shape_or_column)
        if shape_sql is None:
            return self._skip(stmt, "ST_Buffer")

        sql = f"ST_Buffer({shape_sql}, {radius})"
        if wrapper:
            sql = f"{wrapper}({sql})"
        if alias:
            sql = f"{sql} AS {self.quote(alias)}"
        return stmt.add_columns(self.raw(sql))

    # -------------------------
    # Predicates
    # -------------------------

    where_contains = _where_predicate("ST_Contains")
    where_contains_properly = _where_predicate("ST_ContainsProperly")
    where_covered_by = _where_predicate("ST_CoveredBy")
    where_covers = _where_predicate("ST_Covers")
    where_crosses = _where_predicate("ST_Crosses")
    where_disjoint = _where_predicate("ST_Disjoint")
    where_equals = _where_predicate("ST_Equals")
    where_intersects = _where_predicate("ST_Intersects")
    where_overlaps = _where_predicate("ST_Overlaps")
    where_touches = _where_predicate("ST_Touches")
    where_within = _where_predicate("ST_Within")

    def where_relate(self, stmt: Select, left: Any, right: Any, pattern: str) -> Select:
        """
        Filter rows whose DE-9IM relationship matches `pattern`, e.g. "T*T***FF*".
        """
        if not isinstance(pattern, str) or not _DE9IM_PATTERN_RE.match(pattern):
            raise ValueError(f"ST_Relate: Invalid intersection matrix pattern {pattern!r}")
        return self._where_function(stmt, "ST_Relate", (left, right), extra=f", '{pattern}'")

    def where_distance(
        self,
        stmt: Select,
        left: Any,
        right: Any,
        operator: str,
        distance: Any,
        unit: Unit = "meters",
    ) -> Select:
        """
        Filter on ST_Distance(left, right) <operator> distance, with `distance` given in `unit`.
        """
        if operator not in OPERATORS:
            raise ValueError(f"Invalid operator: {operator}")

        lhs = self._resolve(left)
        rhs = self._resolve(right)
        if lhs is None or rhs is None:
            return self._skip(stmt, "ST_Distance")

        threshold = self._distance_sql("ST_Distance", distance, unit)
        return stmt.where(self.raw(f"ST_Distance({lhs}, {rhs}) {OPERATORS[operator]} {threshold}"))

    def where_distance_within(
        self,
        stmt: Select,
        left: Any,
        right: Any,
        distance: Any,
        unit: Unit = "meters",
    ) -> Select:
        """
        Filter rows within `distance` (in `unit`) using ST_DWithin, which can use a spatial index.
        """
        lhs = self._resolve(left)
        rhs = self._resolve(right)
        if lhs is None or rhs is None:
            return self._skip(stmt, "ST_DWithin")

        threshold = self._distance_sql("ST_DWithin", distance, unit)
        return stmt.where(self.raw(f"ST_DWithin({lhs}, {rhs}, {threshold})"))
