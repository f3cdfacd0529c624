"""
Tests for SpatialQuery select/where helpers on SQLAlchemy Core statements.
"""
import pytest
from sqlalchemy import select

from pgshape.config.settings import Settings
from pgshape.db.models import Location
from pgshape.query import CONVERT_FUNCTIONS, SpatialQuery, column_name

DENVER = {"lat": 39.87, "lon": -104.128}
DENVER_SQL = "'POINT(-104.128 39.87)'::geography"


@pytest.fixture
def stmt(locations):
    return select(locations.c.id, locations.c.name)


class TestColumnName:

    def test_table_column(self, locations):
        assert column_name(locations.c.location) == "locations.location"

    def test_orm_attribute(self):
        assert column_name(Location.location) == "locations.location"

    def test_passthrough(self):
        assert column_name("location") == "location"
        assert column_name(DENVER) is DENVER


class TestSelectFunctions:

    def test_select_distance(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_distance(stmt, "location", DENVER))
        assert f'ST_Distance("location", {DENVER_SQL}) AS "distance"' in sql
        assert "locations.id" in sql

    def test_select_distance_in_miles(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_distance(stmt, "location", DENVER, unit="miles"))
        assert f'ST_Distance("location", {DENVER_SQL}) / 1609.344 AS "distance"' in sql

    def test_select_distance_with_column_objects(self, spatial, stmt, locations, compile_sql):
        sql = compile_sql(spatial.select_distance(stmt, locations.c.location, DENVER, alias="d"))
        assert f'ST_Distance("locations"."location", {DENVER_SQL}) AS "d"' in sql

    def test_select_area_in_acres(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_area(stmt, "location", unit="acres"))
        assert 'ST_Area("location") / 4046.8564224 AS "area"' in sql

    @pytest.mark.parametrize(
        "method, fn_name, alias",
        [
            ("select_centroid", "ST_Centroid", "centroid"),
            ("select_convex_hull", "ST_ConvexHull", "convex_hull"),
            ("select_envelope", "ST_Envelope", "envelope"),
            ("select_length", "ST_Length", "length"),
        ],
    )
    def test_unary_selects(self, spatial, stmt, compile_sql, method, fn_name, alias):
        sql = compile_sql(getattr(spatial, method)(stmt, "location"))
        assert f'{fn_name}("location") AS "{alias}"' in sql

    @pytest.mark.parametrize(
        "method, fn_name, alias",
        [
            ("select_difference", "ST_Difference", "difference"),
            ("select_distance_sphere", "ST_DistanceSphere", "distance_sphere"),
            ("select_distance_spheroid", "ST_DistanceSpheroid", "distance_spheroid"),
            ("select_intersection", "ST_Intersection", "intersection"),
            ("select_sym_difference", "ST_SymDifference", "sym_difference"),
            ("select_union", "ST_Union", "union"),
        ],
    )
    def test_binary_selects(self, spatial, stmt, compile_sql, method, fn_name, alias):
        sql = compile_sql(getattr(spatial, method)(stmt, "a_point", "b_point"))
        assert f'{fn_name}("a_point", "b_point") AS "{alias}"' in sql

    def test_convert_format(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_centroid(stmt, "location", convert_format="geojson"))
        assert 'ST_AsGeoJSON(ST_Centroid("location")) AS "centroid"' in sql

    def test_convert_format_ignores_unit(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_centroid(stmt, "location", unit="miles", convert_format="wkt"))
        assert 'ST_AsText(ST_Centroid("location")) AS "centroid"' in sql
        assert "1609.344" not in sql

    def test_invalid_convert_format(self, spatial, stmt):
        with pytest.raises(ValueError, match="Invalid convert format"):
            spatial.select_centroid(stmt, "location", convert_format="kml")

    def test_convert_functions(self):
        assert CONVERT_FUNCTIONS["ewkt"] == "ST_AsEWKT"
        assert CONVERT_FUNCTIONS["text"] == "ST_AsText"

    def test_undefined_shape_leaves_statement_unchanged(self, spatial, stmt):
        assert spatial.select_distance(stmt, "location", {"lat": None, "lon": None}) is stmt

    def test_unknown_unit_raises(self, spatial, stmt):
        with pytest.raises(ValueError, match="Unknown unit"):
            spatial.select_distance(stmt, "location", DENVER, unit="furlongs")


class TestSelectBuffer:

    def test_meters(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_buffer(stmt, "location", 100))
        assert 'ST_Buffer("location", 100) AS "buffer"' in sql

    def test_distance_unit(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_buffer(stmt, DENVER, 5, unit="miles"))
        assert f'ST_Buffer({DENVER_SQL}, 5 * 1609.344) AS "buffer"' in sql

    def test_measurement_string(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_buffer(stmt, "location", "2km", alias="zone"))
        assert 'ST_Buffer("location", 2 * 1000) AS "zone"' in sql

    def test_convert_format(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.select_buffer(stmt, "location", 10, convert_format="geojson"))
        assert 'ST_AsGeoJSON(ST_Buffer("location", 10)) AS "buffer"' in sql

    def test_zero_distance(self, spatial, stmt, compile_sql):
        assert 'ST_Buffer("location", 0)' in compile_sql(spatial.select_buffer(stmt, "location", 0))

    def test_missing_distance_is_skipped(self, spatial, stmt):
        assert spatial.select_buffer(stmt, "location", None) is stmt

    def test_nan_distance_raises(self, spatial, stmt):
        with pytest.raises(ValueError, match="Missing distance"):
            spatial.select_buffer(stmt, "location", float("nan"))

    def test_undefined_shape_is_skipped(self, spatial, stmt):
        assert spatial.select_buffer(stmt, {"lat": 1, "lon": None}, 10) is stmt


class TestWherePredicates:

    @pytest.mark.parametrize(
        "method, fn_name",
        [
            ("where_contains", "ST_Contains"),
            ("where_contains_properly", "ST_ContainsProperly"),
            ("where_covered_by", "ST_CoveredBy"),
            ("where_covers", "ST_Covers"),
            ("where_crosses", "ST_Crosses"),
            ("where_disjoint", "ST_Disjoint"),
            ("where_equals", "ST_Equals"),
            ("where_intersects", "ST_Intersects"),
            ("where_overlaps", "ST_Overlaps"),
            ("where_touches", "ST_Touches"),
            ("where_within", "ST_Within"),
        ],
    )
    def test_predicates(self, spatial, stmt, compile_sql, method, fn_name):
        sql = compile_sql(getattr(spatial, method)(stmt, "location", DENVER))
        assert f'WHERE {fn_name}("location", {DENVER_SQL})' in sql

    def test_predicates_combine_with_and(self, spatial, stmt, compile_sql):
        stmt = spatial.where_intersects(stmt, "a_point", "location")
        stmt = spatial.where_within(stmt, "b_point", "location")
        sql = compile_sql(stmt)
        assert 'ST_Intersects("a_point", "location") AND ST_Within("b_point", "location")' in sql

    def test_undefined_shape_is_skipped(self, spatial, stmt):
        assert spatial.where_within(stmt, "location", {"lat": None, "lon": 1}) is stmt

    def test_throw_on_undefined(self, stmt):
        spatial = SpatialQuery(throw_on_undefined=True)
        with pytest.raises(ValueError, match="ST_Within"):
            spatial.where_within(stmt, "location", {"lat": None, "lon": 1})


class TestWhereRelate:

    def test_pattern(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_relate(stmt, "a_point", "location", "T*T***FF*"))
        assert "ST_Relate(\"a_point\", \"location\", 'T*T***FF*')" in sql

    @pytest.mark.parametrize("pattern", ["", "T*T", "T*T***FF*'; --", None])
    def test_invalid_pattern(self, spatial, stmt, pattern):
        with pytest.raises(ValueError, match="pattern"):
            spatial.where_relate(stmt, "a_point", "location", pattern)


class TestWhereDistance:

    @pytest.mark.parametrize(
        "operator, sql_operator",
        [("<", "<"), ("<=", "<="), (">", ">"), (">=", ">="), ("=", "="), ("===", "="), ("!=", "<>"), ("!==", "<>")],
    )
    def test_operators(self, spatial, stmt, compile_sql, operator, sql_operator):
        sql = compile_sql(spatial.where_distance(stmt, "location", DENVER, operator, 50, "miles"))
        assert f'ST_Distance("location", {DENVER_SQL}) {sql_operator} 50 * 1609.344' in sql

    def test_invalid_operator(self, spatial, stmt):
        with pytest.raises(ValueError, match="Invalid operator"):
            spatial.where_distance(stmt, "location", DENVER, "~", 5)

    def test_missing_distance(self, spatial, stmt):
        with pytest.raises(ValueError, match="Missing distance"):
            spatial.where_distance(stmt, "location", DENVER, "<", None)

    def test_numeric_string_distance(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_distance(stmt, "location", DENVER, "<", "250"))
        assert f'ST_Distance("location", {DENVER_SQL}) < 250' in sql

    def test_int_distance_too_large_for_float(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_distance(stmt, "location", DENVER, "<", 10**400))
        assert f'ST_Distance("location", {DENVER_SQL}) < {10**400}' in sql

    def test_invalid_string_distance(self, spatial, stmt):
        with pytest.raises(ValueError, match="Invalid distance"):
            spatial.where_distance(stmt, "location", DENVER, "<", "far")

    def test_undefined_shape_is_skipped(self, spatial, stmt):
        assert spatial.where_distance(stmt, "location", {"lat": None, "lon": 1}, "<", 5) is stmt


class TestWhereDistanceWithin:

    def test_meters(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_distance_within(stmt, "location", DENVER, 1000))
        assert f'ST_DWithin("location", {DENVER_SQL}, 1000)' in sql

    def test_unit_is_converted_to_meters(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_distance_within(stmt, "location", DENVER, 100, "miles"))
        assert f'ST_DWithin("location", {DENVER_SQL}, 100 * 1609.344)' in sql

    def test_measurement_string(self, spatial, stmt, compile_sql):
        sql = compile_sql(spatial.where_distance_within(stmt, "location", DENVER, "3 km"))
        assert f'ST_DWithin("location", {DENVER_SQL}, 3 * 1000)' in sql

    def test_circle(self, spatial, stmt, compile_sql):
        circle = {"lat": 39.87, "lon": -104.128, "radius": 500}
        sql = compile_sql(spatial.where_distance_within(stmt, "location", circle, 0))
        assert f'ST_DWithin("location", ST_Buffer({DENVER_SQL}, 500), 0)' in sql

    def test_missing_distance(self, spatial, stmt):
        with pytest.raises(ValueError, match="ST_DWithin: Missing distance"):
            spatial.where_distance_within(stmt, "location", DENVER, None)


class TestConstruction:

    def test_from_settings(self, stmt):
        spatial = SpatialQuery.from_settings(Settings(throw_on_undefined=True))
        assert spatial.throw_on_undefined is True
        with pytest.raises(ValueError):
            spatial.select_area(stmt, {"lat": None, "lon": None})

    def test_keyword_overrides_settings(self):
        spatial = SpatialQuery.from_settings(Settings(throw_on_undefined=True), throw_on_undefined=False)
        assert spatial.throw_on_undefined is False

    def test_custom_raw_and_quote(self):
        captured = []

        class FakeStatement:
            def add_columns(self, clause):
                captured.append(clause)
                return self

        spatial = SpatialQuery(lambda sql: ("RAW", sql), quote=lambda name: f"`{name}`")
        spatial.select_area(FakeStatement(), "geom")
        assert captured == [("RAW", "ST_Area(`geom`) AS `area`")]
