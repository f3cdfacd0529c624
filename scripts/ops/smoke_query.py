from __future__ import annotations

import argparse
import time

from sqlalchemy import select

from pgshape.db.engine import session_scope
from pgshape.db.models import Location
from pgshape.geo.units import UNITS
from pgshape.query import SpatialQuery


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lon", type=float, required=True)
    parser.add_argument("--unit", default="miles", choices=UNITS)
    parser.add_argument("--within", type=float, default=None, help="Only rows within this distance (in --unit)")
    parser.add_argument("--show-sql", action="store_true")
    args = parser.parse_args()

    spatial = SpatialQuery.from_settings()
    origin = {"lat": args.lat, "lon": args.lon}

    stmt = select(Location.id, Location.name)
    stmt = spatial.select_distance(stmt, Location.location, origin, unit=args.unit)
    if args.within is not None:
        stmt = spatial.where_distance_within(stmt, Location.location, origin, args.within, args.unit)
    stmt = stmt.order_by(Location.id)

    if args.show_sql:
        print(stmt)

    with session_scope() as session:
        t0 = time.perf_counter()
        rows = session.execute(stmt).all()
        dt_ms = (time.perf_counter() - t0) * 1000.0

    print("\n=== SMOKE QUERY RESULT ===")
    print(f"origin:  {args.lat}, {args.lon}")
    print(f"unit:    {args.unit}")
    print(f"within:  {args.within}")
    for row in rows:
        print(f"  {row[0]:>3}  {row[1]:20s} {row[2]:,.3f}")
    print(f"returned rows: {len(rows):,}")
    print(f"elapsed: {dt_ms:.2f} ms")
    print("==========================\n")


if __name__ == "__main__":
    main()
