"""Tests for the read-only SQL guard."""

import pytest

from osmduck.exceptions import SqlValidationError
from osmduck.sql_guard import validate_select_sql


@pytest.mark.parametrize("sql", [
    "SELECT * FROM osm_features",
    "  select osm_id, ST_X(geom) AS lon FROM osm_features LIMIT 10",
    "WITH cafes AS (SELECT * FROM osm_features) SELECT COUNT(*) FROM cafes;",
    "SELECT * FROM osm_features ORDER BY osm_id LIMIT 5 OFFSET 5",
    "SELECT ST_SetSRID(geom, 4326) FROM osm_features",
])
def test_allowed_queries(sql):
    validate_select_sql(sql)


@pytest.mark.parametrize("sql,message", [
    ("DELETE FROM osm_features", "Only SELECT"),
    ("PRAGMA database_list", "Only SELECT"),
    ("SELECT 1; DROP TABLE osm_features", "single statement"),
    ("WITH x AS (DELETE FROM osm_features RETURNING *) SELECT * FROM x", "DELETE"),
    ("SELECT * FROM osm_features WHERE osm_id IN (SELECT 1) OR 1=1 -- update", "UPDATE"),
    ("SELECT * FROM read_csv('/etc/passwd')", "File access"),
    ("SELECT * FROM read_parquet('s3://bucket/x.parquet')", "File access"),
    ("SELECT * FROM glob ('*')", "File access"),
])
def test_rejected_queries(sql, message):
    with pytest.raises(SqlValidationError, match=message):
        validate_select_sql(sql)


@pytest.mark.parametrize("sql", [
    "SELECT * FROM osm_features WHERE tags_json->>'name' = 'Load Street'",
    "SELECT * FROM osm_features WHERE tags_json->>'name' = 'Set; Match'",
    "SELECT * FROM osm_features WHERE tags_json->>'note' = 'don''t delete; ever'",
])
def test_keywords_inside_string_literals_are_allowed(sql):
    validate_select_sql(sql)
