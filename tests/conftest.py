"""
Shared fixtures for the pgshape test suite.
Provides shape fixtures in both coordinate systems, a bound function builder,
and a PostGIS connection for the (optional) integration tests.
"""
import os

import pytest
from sqlalchemy import column, table
from sqlalchemy.dialects import postgresql

from pgshape.query import SpatialQuery
from pgshape.sql.functions import sql_function_builder


# -------------------------
# Geography (lat/lon) fixtures
# -------------------------

@pytest.fixture
def geo_point():
    return {"lat": 1, "lon": -1}


@pytest.fixture
def geo_circle():
    return {"lat": 1, "lon": -1, "radius": 420}


@pytest.fixture
def geo_line():
    return [{"lat": 1, "lon": -1}, {"lat": 2, "lon": -2}, {"lat": 3, "lon": -3}]


@pytest.fixture
def geo_polygon():
    return [{"lat": 1, "lon": -1}, {"lat": 2, "lon": -2}, {"lat": 3, "lon": -3}, {"lat": 1, "lon": -1}]


@pytest.fixture
def geo_multi_polygon(geo_polygon):
    return [list(geo_polygon), list(geo_polygon)]


@pytest.fixture
def geo_multi_line():
    return [
        [{"lat": 1, "lon": -1}, {"lat": 2, "lon": -2}],
        [{"lat": 3, "lon": -3}, {"lat": 4, "lon": -4}],
    ]


# -------------------------
# Geometry (x/y) fixtures
# -------------------------

@pytest.fixture
def xy_point():
    return {"y": 1, "x": -1}


@pytest.fixture
def xy_line():
    return [{"y": 1, "x": -1}, {"y": 2, "x": -2}, {"y": 3, "x": -3}]


@pytest.fixture
def xy_polygon():
    return [{"y": 1, "x": -1}, {"y": 2, "x": -2}, {"y": 3, "x": -3}, {"y": 1, "x": -1}]


@pytest.fixture
def xy_multi_polygon(xy_polygon):
    return [list(xy_polygon), list(xy_polygon)]


@pytest.fixture
def xy_multi_line():
    return [
        [{"y": 1, "x": -1}, {"y": 2, "x": -2}],
        [{"y": 3, "x": -3}, {"y": 4, "x": -4}],
    ]


# -------------------------
# SQL helpers
# -------------------------

@pytest.fixture
def fn():
    """Function builder bound to the default raw factory and PostgreSQL quoting."""
    return sql_function_builder()


@pytest.fixture
def spatial():
    return SpatialQuery()


@pytest.fixture
def locations():
    return table("locations", column("id"), column("name"), column("location"))


@pytest.fixture
def compile_sql():
    """Render a statement with the PostgreSQL dialect."""
    def _compile(stmt) -> str:
        return str(stmt.compile(dialect=postgresql.dialect()))
    return _compile


# -------------------------
# PostGIS integration
# -------------------------

@pytest.fixture(scope="session")
def pg_engine():
    url = os.getenv("PGSHAPE_DATABASE_URL")
    if not url:
        pytest.skip("PGSHAPE_DATABASE_URL not set; skipping PostGIS integration tests")

    from pgshape.config.settings import Settings
    from pgshape.db.engine import ensure_postgis, get_engine
    from pgshape.db.models import Base

    engine = get_engine(Settings(_env_file=None, database_url=url))
    ensure_postgis(engine)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="session")
def seeded_engine(pg_engine):
    from sqlalchemy.orm import Session

    from pgshape.db.seed import seed_locations

    with Session(pg_engine) as session:
        seed_locations(session)
        session.commit()
    return pg_engine
