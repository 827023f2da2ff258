"""
OSM data models

Data classes for Overpass reply elements (one class per element kind),
normalized features and cache write results
"""

from typing import List, Dict, Optional, Tuple, Union
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LatLon:
    """A WGS84 coordinate, latitude first as Overpass reports it"""
    lat: float
    lon: float


@dataclass
class RawNode:
    """An OSM node (single point)"""
    id: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    tags: Dict[str, str] = field(default_factory=dict)
    kind: str = field(default="node", init=False)


@dataclass
class RawWay:
    """An OSM way: full vertex sequence from 'out geom' or a center from 'out center'"""
    id: int
    geometry: Optional[List[LatLon]] = None
    center: Optional[LatLon] = None
    tags: Dict[str, str] = field(default_factory=dict)
    kind: str = field(default="way", init=False)


@dataclass
class RelationMember:
    """A relation member, optionally carrying its own vertex sequence"""
    type: str
    ref: int
    role: str = ""
    geometry: Optional[List[LatLon]] = None


@dataclass
class RawRelation:
    """An OSM relation: a center point or a set of members"""
    id: int
    center: Optional[LatLon] = None
    members: List[RelationMember] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    kind: str = field(default="relation", init=False)


RawElement = Union[RawNode, RawWay, RawRelation]


@dataclass
class NormalizedFeature:
    """A feature ready for the cache; (kind, id) is its identity"""
    kind: str
    id: int
    tags_json: str
    geometry_wkt: str

    @property
    def key(self) -> str:
        return f"{self.kind}/{self.id}"


@dataclass
class BatchResult:
    """Outcome of one cache write batch"""
    succeeded: int = 0
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    def skip(self, key: str, reason: str):
        self.skipped.append((key, reason))
