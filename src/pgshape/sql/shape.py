# src/pgshape/sql/shape.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import literal_column

from pgshape.geo.wkt import convert_shape_to_sql
from pgshape.sql.functions import RawFactory


class SqlShape:
    """
    Shape literals as raw SQL clauses, e.g. for INSERT values:

        shapes = SqlShape()
        insert(Location).values(location=shapes.to_raw({"lat": 39.7392, "lon": -104.9903}))
    """

    def __init__(self, raw: RawFactory = literal_column) -> None:
        self.raw = raw

    def to_raw(self, shape: Any, *, srid: Optional[int] = None) -> Optional[Any]:
        sql = convert_shape_to_sql(shape, srid=srid)
        return self.raw(sql) if sql is not None else None
