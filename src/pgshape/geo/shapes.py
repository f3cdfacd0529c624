# src/pgshape/geo/shapes.py
"""
Classification of plain shape values into tagged shape variants.

Callers describe shapes with plain data:

    {"lat": 1, "lon": -1}                     -> Point (geography)
    {"x": 1, "y": 2}                          -> Point (geometry)
    {"lat": 1, "lon": -1, "radius": "10mi"}   -> Circle
    [{"lat": 1, "lon": -1}, ...]              -> Line, or Polygon when first == last
    [[...], [...]]                            -> MultiLine / MultiPolygon

`classify()` is the only place that inspects raw structure; everything
downstream works on the frozen dataclasses it returns.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, ClassVar, Optional, Union

from pgshape.geo.units import convert_from_unit_to_meters, has_units, parse_measurement

POINT_KEYS = ("lat", "lon", "x", "y", "radius")


class CoordinateSystem(str, Enum):
    GEOGRAPHY = "geography"  # lat/lon
    GEOMETRY = "geometry"  # x/y

    @property
    def cast_type(self) -> str:
        return self.value


class ShapeKind(str, Enum):
    POINT = "point"
    CIRCLE = "circle"
    LINE = "line"
    POLYGON = "polygon"
    MULTI_LINE = "multi_line"
    MULTI_POLYGON = "multi_polygon"


@dataclass(frozen=True)
class Coordinate:
    # x is longitude-like, y is latitude-like
    x: Any
    y: Any
    z: Any = None


Ring = tuple[Coordinate, ...]


@dataclass(frozen=True)
class Point:
    coordinate: Coordinate
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.POINT


@dataclass(frozen=True)
class Circle:
    coordinate: Coordinate
    radius: Any  # meters
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.CIRCLE


@dataclass(frozen=True)
class Line:
    coordinates: Ring
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.LINE


@dataclass(frozen=True)
class Polygon:
    coordinates: Ring
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.POLYGON


@dataclass(frozen=True)
class MultiLine:
    lines: tuple[Ring, ...]
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.MULTI_LINE


@dataclass(frozen=True)
class MultiPolygon:
    polygons: tuple[Ring, ...]
    system: CoordinateSystem
    srid: Optional[int] = None
    kind: ClassVar[ShapeKind] = ShapeKind.MULTI_POLYGON


Shape = Union[Point, Circle, Line, Polygon, MultiLine, MultiPolygon]
SHAPE_TYPES = (Point, Circle, Line, Polygon, MultiLine, MultiPolygon)


# -------------------------
# Undefined / validity checks
# -------------------------

def is_point_undefined(p: Any) -> bool:
    """
    True when a point-like mapping carries a coordinate (or radius) key whose value is None.

    This is "intentionally absent input" (e.g. a request that has not been
    geolocated yet), not malformed input.
    """
    return isinstance(p, Mapping) and any(k in p and p[k] is None for k in POINT_KEYS)


def shape_contains_undefined(s: Any) -> bool:
    if isinstance(s, (list, tuple)):
        return any(shape_contains_undefined(inner) for inner in s)
    return is_point_undefined(s)


def _is_valid_lat_lon(p: Any) -> bool:
    return (
        isinstance(p, Mapping)
        and p.get("lat") is not None
        and p.get("lon") is not None
        and not is_point_undefined(p)
    )


def _is_valid_xy(p: Any) -> bool:
    return (
        isinstance(p, Mapping)
        and p.get("x") is not None
        and p.get("y") is not None
        and not is_point_undefined(p)
    )


def is_valid_point(p: Any) -> bool:
    return _is_valid_lat_lon(p) or _is_valid_xy(p)


def _every_leaf(value: Any, check: Callable[[Any], bool], system: Optional[CoordinateSystem]) -> bool:
    if value is None:
        return False
    if isinstance(value, SHAPE_TYPES):
        return system is None or value.system is system
    if isinstance(value, (list, tuple)):
        # An empty list has no points to apply
        return len(value) > 0 and all(_every_leaf(inner, check, system) for inner in value)
    return check(value)


def is_valid_geography(shape: Any) -> bool:
    return _every_leaf(shape, _is_valid_lat_lon, CoordinateSystem.GEOGRAPHY)


def is_valid_geometry(shape: Any) -> bool:
    return _every_leaf(shape, _is_valid_xy, CoordinateSystem.GEOMETRY)


def is_valid_shape(shape: Any) -> bool:
    """
    Every leaf point is either a valid lat/lon or a valid x/y point.

    Looser than classify(): mixed coordinate systems pass here but do not classify.
    """
    return _every_leaf(shape, is_valid_point, None)


# -------------------------
# Classification
# -------------------------

def _is_number(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        return False
    # huge ints overflow math.isfinite()
    return isinstance(v, int) or math.isfinite(v)


def _read_srid(value: Any) -> tuple[bool, Optional[int]]:
    if value is None:
        return True, None
    if isinstance(value, int) and not isinstance(value, bool):
        return True, value
    if isinstance(value, str) and value.strip().isdigit():
        return True, int(value)
    return False, None


def _read_point(p: Any) -> Optional[tuple[Coordinate, CoordinateSystem]]:
    if not isinstance(p, Mapping) or is_point_undefined(p):
        return None

    has_geo = "lat" in p or "lon" in p
    has_xy = "x" in p or "y" in p
    if has_geo and has_xy:
        return None

    if has_geo and "lat" in p and "lon" in p:
        coordinate = Coordinate(x=p["lon"], y=p["lat"], z=p.get("z"))
        system = CoordinateSystem.GEOGRAPHY
    elif has_xy and "x" in p and "y" in p:
        coordinate = Coordinate(x=p["x"], y=p["y"], z=p.get("z"))
        system = CoordinateSystem.GEOMETRY
    else:
        return None

    if not (_is_number(coordinate.x) and _is_number(coordinate.y)):
        return None
    if coordinate.z is not None and not _is_number(coordinate.z):
        return None
    return coordinate, system


def _read_ring(items: Any) -> Optional[tuple[Ring, CoordinateSystem]]:
    if not isinstance(items, (list, tuple)) or not items:
        return None

    coords = []
    systems = set()
    for item in items:
        # Points inside a line/polygon never carry a radius
        if not isinstance(item, Mapping) or "radius" in item:
            return None
        read = _read_point(item)
        if read is None:
            return None
        coords.append(read[0])
        systems.add(read[1])

    if len(systems) != 1:
        return None
    return tuple(coords), systems.pop()


def _is_closed(ring: Ring) -> bool:
    # Two points are always an open line, even when identical
    if len(ring) < 3:
        return False
    first, last = ring[0], ring[-1]
    return first.x == last.x and first.y == last.y


def _is_line(ring: Ring) -> bool:
    return len(ring) >= 2 and not _is_closed(ring)


def _normalize_radius(radius: Any) -> Optional[Any]:
    """
    Radius in meters. Unit-suffixed strings ("10mi") are converted; bare numeric strings are meters.
    """
    if _is_number(radius):
        return radius
    if not isinstance(radius, str):
        return None
    if has_units(radius):
        measurement = parse_measurement(radius.strip())
        meters = round(convert_from_unit_to_meters(measurement.value, measurement.unit), 10)
        return meters if math.isfinite(meters) else None
    try:
        value = float(radius)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _classify_mapping(value: Mapping, srid: Optional[int]) -> Optional[Shape]:
    read = _read_point(value)
    if read is None:
        return None
    coordinate, system = read

    if srid is None:
        ok, srid = _read_srid(value.get("srid"))
        if not ok:
            return None

    if "radius" in value:
        radius = _normalize_radius(value["radius"])
        if radius is None:
            return None
        return Circle(coordinate=coordinate, radius=radius, system=system, srid=srid)

    return Point(coordinate=coordinate, system=system, srid=srid)


def _classify_sequence(value: Union[list, tuple], srid: Optional[int]) -> Optional[Shape]:
    if not value:
        return None

    if all(isinstance(inner, (list, tuple)) for inner in value):
        rings = []
        systems = set()
        for inner in value:
            read = _read_ring(inner)
            if read is None:
                return None
            rings.append(read[0])
            systems.add(read[1])
        if len(systems) != 1:
            return None
        system = systems.pop()

        if all(_is_closed(r) for r in rings):
            return MultiPolygon(polygons=tuple(rings), system=system, srid=srid)
        if all(_is_line(r) for r in rings):
            return MultiLine(lines=tuple(rings), system=system, srid=srid)
        return None

    read = _read_ring(value)
    if read is None:
        return None
    ring, system = read

    if _is_closed(ring):
        return Polygon(coordinates=ring, system=system, srid=srid)
    if _is_line(ring):
        return Line(coordinates=ring, system=system, srid=srid)
    return None


def classify(value: Any, *, srid: Optional[int] = None) -> Optional[Shape]:
    """
    Classify a plain value into one of the shape variants, or None when it is not a usable shape.

    Rules, in priority order:
      1. None -> None
      2. mapping with a radius and lat/lon (or x/y) -> Circle
      3. mapping with lat/lon (or x/y) -> Point
      4. list of lists -> MultiPolygon if every ring is closed, MultiLine if every ring is open
      5. list of 2+ points, first != last -> Line
      6. list of 3+ points, first == last -> Polygon
      7. anything else -> None

    All points of one shape must use the same coordinate system. `srid`
    overrides any "srid" key on a Point/Circle mapping; lists can only get
    an SRID this way.

    Never raises for invalid shapes; only an unparseable unit in a string
    radius raises ValueError.
    """
    if value is None:
        return None

    if isinstance(value, SHAPE_TYPES):
        return value if srid is None else replace(value, srid=srid)

    if isinstance(value, Mapping):
        return _classify_mapping(value, srid)

    if isinstance(value, (list, tuple)):
        return _classify_sequence(value, srid)

    return None
