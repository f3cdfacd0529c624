# src/pgshape/sql/functions.py
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from sqlalchemy import literal_column

from pgshape.config.logging import get_logger
from pgshape.geo.units import (
    Unit,
    format_number,
    has_units,
    meters_to_unit_math_literal,
    parse_measurement,
    unit_to_meters_math_literal,
)
from pgshape.sql.escaping import QuoteFn, parse_shape_or_column_to_safe_sql, quote_identifier

logger = get_logger("functions")

RawFactory = Callable[[str], Any]

_FUNCTION_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")


def _check_function_name(name: str) -> str:
    if not isinstance(name, str) or not _FUNCTION_NAME_RE.match(name):
        raise ValueError(f"Invalid SQL function name: {name!r}")
    return name


@dataclass(frozen=True)
class SqlFunctionBuilder:
    """
    Immutable builder for `FUNC(arg, ...) [/ unit] [AS "alias"]` fragments.

    Every method returns a new builder, so a partially built expression can be
    shared and extended without affecting other fragments:

        fn = sql_function_builder()
        fn("ST_Distance").arg("location").arg({"lat": 1, "lon": -1}).unit("miles").alias("distance").build()
        # ST_Distance("location", 'POINT(-1 1)'::geography) / 1609.344 AS "distance"

    An argument that cannot be resolved (None, or a shape with an undefined
    coordinate) poisons the builder: build() returns "" from then on.
    """

    raw: RawFactory = literal_column
    quote: QuoteFn = quote_identifier
    fn_name: str = ""
    arguments: tuple[str, ...] = ()
    output_unit: Unit = "meters"
    alias_name: str = ""
    wrappers: tuple[str, ...] = ()
    poisoned: bool = False

    def name(self, fn_name: str) -> SqlFunctionBuilder:
        return replace(self, fn_name=_check_function_name(fn_name))

    def arg(self, value: Any, unit: Optional[Unit] = None) -> SqlFunctionBuilder:
        """
        Append an argument: a column name, shape, number/boolean literal or measurement string.

        With `unit`, the argument is converted to meters in SQL and a string is
        always a column ("col" * 1609.344). Without it, measurement strings like
        "5 miles" are parsed into 5 * 1609.344.
        """
        suffix = unit_to_meters_math_literal(unit) if unit is not None else ""
        if self.poisoned:
            return self

        if unit is not None and isinstance(value, bool):
            logger.debug("%s: boolean argument %r cannot carry a unit, skipping expression", self.fn_name, value)
            return replace(self, poisoned=True)

        if unit is None and has_units(value):
            measurement = parse_measurement(value.strip())
            sql = f"{format_number(measurement.value)}{unit_to_meters_math_literal(measurement.unit)}"
            return replace(self, arguments=self.arguments + (sql,))

        sql = parse_shape_or_column_to_safe_sql(value, quote=self.quote)
        if sql is None:
            logger.debug("%s: unresolvable argument %r, skipping expression", self.fn_name, value)
            return replace(self, poisoned=True)

        return replace(self, arguments=self.arguments + (f"{sql}{suffix}",))

    def alias(self, alias_name: str) -> SqlFunctionBuilder:
        return replace(self, alias_name=alias_name or "")

    def unit(self, output_unit: Unit) -> SqlFunctionBuilder:
        # Validate eagerly; unknown units are programmer errors
        meters_to_unit_math_literal(output_unit)
        return replace(self, output_unit=output_unit)

    def wrap(self, fn_name: Optional[str]) -> SqlFunctionBuilder:
        """
        Wrap the result in another function. The last wrap is outermost:
        .wrap("max").wrap("sum") -> sum(max(...)).
        """
        if not fn_name:
            return self
        return replace(self, wrappers=self.wrappers + (_check_function_name(fn_name),))

    def build(self) -> str:
        if self.poisoned or not self.arguments or not self.fn_name:
            return ""

        expr = f"{self.fn_name}({', '.join(self.arguments)}){meters_to_unit_math_literal(self.output_unit)}"
        for wrapper in self.wrappers:
            expr = f"{wrapper}({expr})"
        if self.alias_name:
            expr = f"{expr} AS {self.quote(self.alias_name)}"
        return expr

    def to_raw(self) -> Optional[Any]:
        """
        The built fragment handed to the raw SQL factory, or None when there is nothing to emit.
        """
        sql = self.build()
        return self.raw(sql) if sql else None

    def __str__(self) -> str:
        return self.build()


def sql_function_builder(
    raw: RawFactory = literal_column,
    *,
    quote: QuoteFn = quote_identifier,
) -> Callable[[str], SqlFunctionBuilder]:
    """
    Bind a builder to the host's raw SQL factory and identifier quoting.

        fn = sql_function_builder(text, quote=identifier_quoter(engine.dialect))
        fn("ST_Area").arg("geom").unit("acres").build()
    """
    template = SqlFunctionBuilder(raw=raw, quote=quote)

    def factory(fn_name: str) -> SqlFunctionBuilder:
        return template.name(fn_name)

    return factory
