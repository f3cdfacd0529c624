# src/pgshape/db/engine.py
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pgshape.config.logging import get_logger
from pgshape.config.settings import Settings, get_settings

logger = get_logger("db.engine")


def build_engine(settings: Settings) -> Engine:
    return create_engine(
        settings.resolved_database_url(),
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        future=True,
    )


@lru_cache(maxsize=1)
def _default_engine() -> Engine:
    return build_engine(get_settings())


def get_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Engine for `settings`, or the process-wide engine built from PGSHAPE_* settings.
    """
    if settings is None:
        return _default_engine()
    return build_engine(settings)


def ensure_postgis(engine: Engine) -> str:
    """
    Create the postgis extension if needed and return its version string.
    """
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))
        version = conn.execute(text("SELECT PostGIS_Version()")).scalar_one()
    logger.info("PostGIS %s on %s", version, engine.url.render_as_string(hide_password=True))
    return version


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, future=True)


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Commit on success, roll back on error.

        with session_scope() as session:
            seed_locations(session)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
