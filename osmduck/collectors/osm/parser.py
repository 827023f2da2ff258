"""
OSM response parser

Parses Overpass API responses into RawNode, RawWay and RawRelation objects
"""

from typing import Dict, Any, List, Optional
from loguru import logger

from .models import LatLon, RawElement, RawNode, RawWay, RawRelation, RelationMember


class OSMResponseParser:
    """Parses Overpass API responses"""

    @staticmethod
    def parse_elements(data: Dict[str, Any]) -> List[RawElement]:
        """
        Parse Overpass response into typed elements

        Handles both 'out center' (center points) and 'out geom' (direct geometry) formats.
        Elements of unknown kind or without an integer id are skipped.

        Args:
            data: JSON response from Overpass API

        Returns:
            List of RawNode / RawWay / RawRelation in reply order
        """
        elements = []

        for element in data.get("elements") or []:
            parsed = OSMResponseParser.parse_element(element)
            if parsed is not None:
                elements.append(parsed)

        return elements

    @staticmethod
    def parse_element(element: Dict[str, Any]) -> Optional[RawElement]:
        """Parse one reply element, or return None if it is not usable"""
        if not isinstance(element, dict):
            return None

        element_id = element.get("id")
        if isinstance(element_id, bool) or not isinstance(element_id, int):
            logger.debug(f"Skipping element without integer id: {element.get('type')}/{element_id}")
            return None

        tags = element.get("tags") or {}
        kind = element.get("type")

        if kind == "node":
            return RawNode(
                id=element_id,
                lat=_coerce_coord(element.get("lat")),
                lon=_coerce_coord(element.get("lon")),
                tags=tags,
            )
        if kind == "way":
            return RawWay(
                id=element_id,
                geometry=_parse_geometry(element.get("geometry")),
                center=_parse_point(element.get("center")),
                tags=tags,
            )
        if kind == "relation":
            members = []
            for member in element.get("members") or []:
                members.append(RelationMember(
                    type=member.get("type", ""),
                    ref=member.get("ref", 0),
                    role=member.get("role", ""),
                    geometry=_parse_geometry(member.get("geometry")),
                ))
            return RawRelation(
                id=element_id,
                center=_parse_point(element.get("center")),
                members=members,
                tags=tags,
            )

        logger.debug(f"Skipping element of unknown type {kind!r}")
        return None


def _coerce_coord(value: Any) -> Optional[float]:
    """Return a coordinate as float, or None if it is missing or not numeric"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _parse_point(point: Any) -> Optional[LatLon]:
    if not isinstance(point, dict):
        return None
    lat = _coerce_coord(point.get("lat"))
    lon = _coerce_coord(point.get("lon"))
    if lat is None or lon is None:
        return None
    return LatLon(lat=lat, lon=lon)


def _parse_geometry(geometry: Any) -> Optional[List[LatLon]]:
    # Overpass 'out geom' gives a list of {lat, lon}; missing vertices come back as null
    if not isinstance(geometry, list):
        return None
    points = []
    for node in geometry:
        point = _parse_point(node)
        if point is not None:
            points.append(point)
    return points
