# src/pgshape/db/seed.py
from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import insert
from sqlalchemy.orm import Session

from pgshape.config.logging import get_logger
from pgshape.db.models import Location
from pgshape.sql.shape import SqlShape

logger = get_logger("db.seed")

SAMPLE_LOCATIONS: list[dict[str, Any]] = [
    {
        "name": "Denver",
        "a_point": {"lat": 39.92, "lon": -105.001},
        "b_point": {"lat": 39.12, "lon": -104.895},
        "location": {"lat": 39.7392, "lon": -104.9903},
    },
    {
        "name": "Boulder",
        "a_point": {"lat": 40.1121, "lon": -105.2695},
        "b_point": {"lat": 40.0198, "lon": -105.2711},
        "location": {"lat": 40.015, "lon": -105.2705},
    },
    {
        "name": "Colorado Springs",
        "a_point": {"lat": 38.8349, "lon": -104.8124},
        "b_point": {"lat": 38.8344, "lon": -104.8242},
        "location": {"lat": 38.8339, "lon": -104.8214},
    },
    {
        "name": "Fort Collins",
        "a_point": {"lat": 40.5853, "lon": -105.0844},
        "b_point": {"lat": 40.5733, "lon": -105.0678},
        "location": {"lat": 40.5853, "lon": -105.0844},
    },
    {
        "name": "London",
        "a_point": {"lat": 51.5105, "lon": -0.1289},
        "b_point": {"lat": 51.5501, "lon": -0.1269},
        "location": {"lat": 51.5074, "lon": -0.1278},
    },
    {"name": "Dublin", "location": {"lat": 53.3498, "lon": -6.2603}},
    {"name": "Johannesburg", "location": {"lat": -26.2041, "lon": 28.0473}},
]

SHAPE_COLUMNS = ("a_point", "b_point", "location")


def seed_locations(session: Session, rows: Iterable[Mapping[str, Any]] = SAMPLE_LOCATIONS) -> int:
    """
    Insert rows into `locations`, converting shape mappings to geography literals.
    """
    shapes = SqlShape()
    count = 0

    for row in rows:
        values: dict[str, Any] = {"name": row["name"]}
        for col in SHAPE_COLUMNS:
            if row.get(col) is None:
                continue
            clause = shapes.to_raw(row[col])
            if clause is None:
                raise ValueError(f"Invalid shape for {row['name']}.{col}: {row[col]!r}")
            values[col] = clause

        session.execute(insert(Location).values(**values))
        count += 1

    session.flush()
    logger.info("Seeded %d locations", count)
    return count
