# src/pgshape/geo/units.py
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Optional, Union, get_args

Unit = Literal["meters", "miles", "kilometers", "hectares", "acres", "feet", "yards", "inches"]
UNITS: tuple[str, ...] = get_args(Unit)

Number = Union[int, float, Decimal]

# Meters per unit (square meters for hectares/acres).
METERS_PER_UNIT: dict[str, Number] = {
    "meters": 1,
    "miles": 1609.344,
    "kilometers": 1000,
    "hectares": 10000,
    "acres": 4046.8564224,
    "feet": 0.3048,
    "yards": 0.9144,
    "inches": 0.0254,
}

SHORT_UNITS: dict[str, Unit] = {
    "m": "meters",
    "mi": "miles",
    "km": "kilometers",
    "ha": "hectares",
    "ac": "acres",
    "ft": "feet",
    "yd": "yards",
    "in": "inches",
}

# Long-form spellings match by prefix ("mile", "miles", "meter", "meters", ...).
LONG_UNIT_PREFIXES: tuple[tuple[str, Unit], ...] = (
    ("kilometer", "kilometers"),
    ("meter", "meters"),
    ("mile", "miles"),
    ("hectare", "hectares"),
    ("acre", "acres"),
    ("yard", "yards"),
    ("inch", "inches"),
)

_NUMBER = r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?"
_LEADING_NUMBER_RE = re.compile(rf"^\s*({_NUMBER})")
_HAS_UNITS_RE = re.compile(
    rf"^\s*{_NUMBER}\s*(?:m|mi|km|ha|ac|ft|yd|in|feet|(?:kilometer|meter|mile|hectare|acre|yard|inch)[a-z]*)\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Measurement:
    value: float
    unit: Unit


def format_number(value: Number) -> str:
    """
    Render a number the way it should appear in SQL text: 5 -> "5", 5.0 -> "5", 0.3048 -> "0.3048".
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _meters_per(unit: str) -> Number:
    try:
        return METERS_PER_UNIT[unit]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown unit: {unit}") from None


def convert_from_unit_to_meters(value: Number, unit: Unit) -> float:
    return value * _meters_per(unit)


def convert_from_meters_to_unit(value: Number, unit: Unit) -> float:
    return value / _meters_per(unit)


def unit_to_meters_math_literal(unit: Unit) -> str:
    """
    SQL suffix turning a value expressed in `unit` into meters, e.g. miles -> " * 1609.344".
    """
    factor = _meters_per(unit)
    return "" if factor == 1 else f" * {format_number(factor)}"


def meters_to_unit_math_literal(unit: Unit) -> str:
    """
    SQL suffix turning a value in meters into `unit`, e.g. miles -> " / 1609.344".
    """
    factor = _meters_per(unit)
    return "" if factor == 1 else f" / {format_number(factor)}"


def _match_unit(suffix: str) -> Optional[Unit]:
    if suffix in SHORT_UNITS:
        return SHORT_UNITS[suffix]
    if suffix == "feet":
        return "feet"
    for prefix, unit in LONG_UNIT_PREFIXES:
        if suffix.startswith(prefix):
            return unit
    return None


def parse_measurement(text: str) -> Measurement:
    """
    Parse a human readable measurement like "5 miles", "10km" or "1in".

    Unit names are matched case-sensitively. Raises ValueError when either the
    number or the unit cannot be recognised.
    """
    match = _LEADING_NUMBER_RE.match(text)
    if match is None:
        raise ValueError(f"Invalid measurement {text!r}: expected a leading number")

    value = float(match.group(1))
    suffix = re.sub(r"\s+", "", text[match.end():])
    unit = _match_unit(suffix)
    if unit is None:
        raise ValueError(f"Unrecognized unit {suffix!r} in measurement {text!r}")

    return Measurement(value=value, unit=unit)


def try_parse_measurement(text: str) -> Optional[Measurement]:
    try:
        return parse_measurement(text)
    except ValueError:
        return None


def has_units(text: object) -> bool:
    """
    True when `text` looks like "<number><unit>", e.g. "5 miles" or "10KM".

    Column names ("point_a") and bare numbers ("5") never qualify.
    """
    return isinstance(text, str) and _HAS_UNITS_RE.match(text) is not None
