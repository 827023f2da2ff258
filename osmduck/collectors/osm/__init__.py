"""
OpenStreetMap data collection module

Modular OSM ingestion with separate components for:
- Query: Overpass QL query building
- API client: Overpass API communication, failover and retries
- Models: Data structures (RawNode, RawWay, RawRelation, NormalizedFeature)
- Parser: Response parsing
- Normalize: Geometry normalization to WKT
- Cache: DuckDB spatial cache
- Collector: Main orchestrator class
"""

from .models import (
    LatLon,
    RawNode,
    RawWay,
    RawRelation,
    RelationMember,
    NormalizedFeature,
    BatchResult,
)
from .query import build_overpass_query, resolve_query
from .api_client import OverpassAPIClient
from .normalize import normalize_elements
from .cache import SpatialCache
from .collector import OSMCollector

__all__ = [
    "LatLon",
    "RawNode",
    "RawWay",
    "RawRelation",
    "RelationMember",
    "NormalizedFeature",
    "BatchResult",
    "build_overpass_query",
    "resolve_query",
    "OverpassAPIClient",
    "normalize_elements",
    "SpatialCache",
    "OSMCollector",
]
