"""
Geometry normalization

Maps nodes, ways and relations onto a single WKT geometry per feature
(POINT, LINESTRING or POLYGON). Elements with no derivable geometry are dropped.
"""

import json
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from .models import LatLon, NormalizedFeature, RawElement, RawNode, RawWay, RawRelation


def normalize_elements(elements: Iterable[RawElement]) -> List[NormalizedFeature]:
    """Normalize elements, silently dropping those without geometry"""
    features = []
    dropped = 0

    for element in elements:
        feature = normalize_element(element)
        if feature is not None:
            features.append(feature)
        else:
            dropped += 1

    if dropped:
        logger.debug(f"Dropped {dropped} element(s) with no derivable geometry")
    return features


def normalize_element(element: RawElement) -> Optional[NormalizedFeature]:
    """Normalize one element, or return None if it has no geometry"""
    if isinstance(element, RawNode):
        geom_wkt = _node_wkt(element)
    elif isinstance(element, RawWay):
        geom_wkt = _way_wkt(element)
    elif isinstance(element, RawRelation):
        geom_wkt = _relation_wkt(element)
    else:
        return None

    if not geom_wkt:
        return None

    return NormalizedFeature(
        kind=element.kind,
        id=element.id,
        tags_json=json.dumps(element.tags or {}, ensure_ascii=False),
        geometry_wkt=geom_wkt,
    )


def _node_wkt(node: RawNode) -> Optional[str]:
    if node.lat is None or node.lon is None:
        return None
    return point_wkt(LatLon(node.lat, node.lon))


def _way_wkt(way: RawWay) -> Optional[str]:
    # An empty vertex list counts as absent so the center can still be used
    if way.geometry:
        return geometry_to_wkt(way.geometry)
    if way.center is not None:
        return point_wkt(way.center)
    return None


def _relation_wkt(relation: RawRelation) -> Optional[str]:
    if relation.center is not None:
        return point_wkt(relation.center)

    # Unweighted centroid of every member vertex; multipolygon topology is not rebuilt
    points = []
    for member in relation.members:
        if member.geometry:
            points.extend(member.geometry)
    if not points:
        return None

    avg_lat = sum(p.lat for p in points) / len(points)
    avg_lon = sum(p.lon for p in points) / len(points)
    return point_wkt(LatLon(avg_lat, avg_lon))


def geometry_to_wkt(geometry: Sequence[LatLon]) -> Optional[str]:
    """
    Convert a vertex sequence to WKT

    0 vertices: None
    1 vertex: POINT
    4+ vertices with first == last: POLYGON (closing vertex kept)
    otherwise: LINESTRING
    """
    if len(geometry) == 0:
        return None

    if len(geometry) == 1:
        return point_wkt(geometry[0])

    first = geometry[0]
    last = geometry[-1]
    is_closed = first.lat == last.lat and first.lon == last.lon

    coords = ", ".join(_coord(p) for p in geometry)

    if is_closed and len(geometry) >= 4:
        return f"POLYGON(({coords}))"

    return f"LINESTRING({coords})"


def point_wkt(point: LatLon) -> str:
    return f"POINT({_coord(point)})"


def _coord(point: LatLon) -> str:
    # WKT is x y, i.e. lon lat
    return f"{format_number(point.lon)} {format_number(point.lat)}"


def format_number(value) -> str:
    """Render a coordinate with up to 15 significant digits and no exponent"""
    text = format(float(value), ".15g")
    if "e" in text:
        text = format(float(value), ".15f").rstrip("0").rstrip(".")
    return text
