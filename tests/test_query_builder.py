"""Tests for Overpass QL query building."""

import pytest

from osmduck.collectors.osm.query import build_overpass_query, resolve_query
from osmduck.exceptions import QueryBuildError
from osmduck.models import Area, BBox, Center, FetchRequest, TagFilter


def test_default_query_uses_nwr_center_and_timeout():
    query = build_overpass_query([TagFilter(key="amenity", value="cafe")])

    assert query == '[out:json][timeout:30];\n(\n  nwr["amenity"="cafe"];\n);\nout center;'


@pytest.mark.parametrize("tags", [
    [TagFilter(key="amenity")],
    [TagFilter(key="amenity", value="cafe")],
    [TagFilter(key="name", value="^Star", regex=True), TagFilter(key="brand")],
])
def test_non_empty_tags_never_raise(tags):
    assert build_overpass_query(tags).startswith("[out:json]")


def test_empty_tags_raise_build_error():
    with pytest.raises(QueryBuildError):
        build_overpass_query([])


def test_tag_filter_rendering():
    query = build_overpass_query([
        TagFilter(key="shop"),
        TagFilter(key="name", value="^Zabka", regex=True),
        TagFilter(key="brand", value="Orlen"),
    ])

    assert 'nwr["shop"]["name"~"^Zabka"]["brand"="Orlen"];' in query


def test_radius_area():
    area = Area(center=Center(lat=52.23, lon=21.01), radius_m=500)
    query = build_overpass_query([TagFilter(key="amenity")], area=area)

    assert 'nwr["amenity"](around:500,52.23,21.01);' in query


def test_radius_takes_precedence_over_bbox():
    area = Area(
        center=Center(lat=52.23, lon=21.01),
        radius_m=250,
        bbox=BBox(south=52.1, west=20.9, north=52.3, east=21.1),
    )
    query = build_overpass_query([TagFilter(key="amenity")], area=area)

    assert "(around:250,52.23,21.01)" in query
    assert "52.1,20.9" not in query


def test_bbox_area():
    area = Area(bbox=BBox(south=52.1, west=20.9, north=52.3, east=21.1))
    query = build_overpass_query([TagFilter(key="amenity")], area=area)

    assert 'nwr["amenity"](52.1,20.9,52.3,21.1);' in query


def test_center_without_radius_is_unscoped():
    area = Area(center=Center(lat=52.23, lon=21.01))
    query = build_overpass_query([TagFilter(key="amenity")], area=area)

    assert 'nwr["amenity"];' in query
    assert "around" not in query


def test_one_clause_per_element_kind():
    area = Area(center=Center(lat=52.0, lon=21.0), radius_m=100)
    query = build_overpass_query(
        [TagFilter(key="highway")],
        area=area,
        elements=["node", "way"],
    )

    assert 'node["highway"](around:100,52,21);' in query
    assert 'way["highway"](around:100,52,21);' in query
    assert query.index("node[") < query.index("way[")


def test_geom_output_and_custom_timeout():
    query = build_overpass_query([TagFilter(key="building")], output="geom", timeout=90)

    assert query.startswith("[out:json][timeout:90];")
    assert query.endswith("out geom;")


def test_values_are_escaped():
    query = build_overpass_query([TagFilter(key="name", value='Joe"s"];out;')])

    assert '["name"="Joe\\"s\\"];out;"]' in query


def test_regex_backslashes_are_escaped():
    query = build_overpass_query([TagFilter(key="ref", value=r"^\d+$", regex=True)])

    assert '["ref"~"^\\\\d+$"]' in query


def test_unknown_element_kind_rejected():
    with pytest.raises(QueryBuildError):
        build_overpass_query([TagFilter(key="amenity")], elements=["area"])


def test_resolve_query_uses_raw_query_verbatim():
    raw = "[out:json];node(1);out;"
    request = FetchRequest(overpass_ql=raw)

    assert resolve_query(request) == raw


def test_resolve_query_without_tags_or_raw_query_raises():
    with pytest.raises(QueryBuildError):
        resolve_query(FetchRequest())


def test_resolve_query_builds_from_request():
    request = FetchRequest(
        bbox=BBox(south=1, west=2, north=3, east=4),
        elements=["way"],
        tags=[TagFilter(key="leisure", value="park")],
        output="geom",
    )

    query = resolve_query(request, default_timeout=45)

    assert query == '[out:json][timeout:45];\n(\n  way["leisure"="park"](1,2,3,4);\n);\nout geom;'
