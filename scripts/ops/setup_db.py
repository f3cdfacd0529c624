from __future__ import annotations

import argparse

from pgshape.config.logging import configure_logging
from pgshape.config.settings import get_settings
from pgshape.db.engine import ensure_postgis, get_engine, session_scope
from pgshape.db.models import Base
from pgshape.db.seed import seed_locations


def main() -> None:
    parser = argparse.ArgumentParser(description="Prepare a PostGIS database with the sample `locations` table.")
    parser.add_argument("--no-seed", action="store_true", help="Create the schema only")
    parser.add_argument("--keep", action="store_true", help="Do not drop an existing `locations` table")
    args = parser.parse_args()

    settings = get_settings()
    logger = configure_logging(settings.log_level, "pgshape.setup_db")

    engine = get_engine()
    ensure_postgis(engine)

    if not args.keep:
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    logger.info("Schema ready")

    if not args.no_seed:
        with session_scope() as session:
            seed_locations(session)


if __name__ == "__main__":
    main()
