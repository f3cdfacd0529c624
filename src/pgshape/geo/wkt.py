# src/pgshape/geo/wkt.py
from __future__ import annotations

from typing import Any, Optional

from pgshape.geo.shapes import (
    Circle,
    Coordinate,
    Line,
    MultiLine,
    MultiPolygon,
    Point,
    Polygon,
    Ring,
    Shape,
    classify,
)
from pgshape.geo.units import format_number


def _xy(c: Coordinate) -> str:
    # WKT order is (X Y) = (lon lat)
    return f"{format_number(c.x)} {format_number(c.y)}"


def _ring(ring: Ring) -> str:
    return ", ".join(_xy(c) for c in ring)


def to_wkt(shape: Shape) -> str:
    """
    WKT body of a classified shape, without SRID or cast. Circles render as their center point.
    """
    if isinstance(shape, (Point, Circle)):
        return f"POINT({_xy(shape.coordinate)})"
    if isinstance(shape, Line):
        return f"LINESTRING({_ring(shape.coordinates)})"
    if isinstance(shape, Polygon):
        # Emitted in input order; not re-closed or re-wound
        return f"POLYGON({_ring(shape.coordinates)})"
    if isinstance(shape, MultiLine):
        return "MULTILINESTRING({})".format(", ".join(f"({_ring(r)})" for r in shape.lines))
    if isinstance(shape, MultiPolygon):
        return "MULTIPOLYGON({})".format(", ".join(f"({_ring(r)})" for r in shape.polygons))
    raise TypeError(f"Not a shape: {shape!r}")


def to_ewkt(shape: Shape) -> str:
    srid = f"SRID={int(shape.srid)};" if shape.srid is not None else ""
    return f"{srid}{to_wkt(shape)}"


def shape_to_sql(shape: Shape) -> str:
    """
    SQL literal for a classified shape:

      Point   -> 'SRID=4326;POINT(-1 1)'::geography
      Circle  -> ST_Buffer('POINT(-1 1)'::geography, 100)
      Line    -> 'LINESTRING(-1 1, -2 2)'::geometry
    """
    literal = f"'{to_ewkt(shape)}'::{shape.system.cast_type}"
    if isinstance(shape, Circle):
        return f"ST_Buffer({literal}, {format_number(shape.radius)})"
    return literal


def convert_shape_to_sql(value: Any, *, srid: Optional[int] = None) -> Optional[str]:
    """
    Render a shape (plain value or classified Shape) as PostGIS SQL.

    Returns None when the value is not a usable shape; callers treat that as
    "leave the query alone".
    """
    shape = classify(value, srid=srid)
    if shape is None:
        return None
    return shape_to_sql(shape)
