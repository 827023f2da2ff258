"""
Pydantic models for tool inputs and results
Inputs mirror the JSON schemas exposed to the tool-calling layer
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Literal, Tuple, Union
from pydantic import BaseModel, Field


ElementKind = Literal["node", "way", "relation", "nwr"]
OutputMode = Literal["center", "geom"]


# ============================================================
# Area and filter types
# ============================================================

class Center(BaseModel):
    lat: float = Field(description="Latitude of center point")
    lon: float = Field(description="Longitude of center point")


class BBox(BaseModel):
    south: float
    west: float
    north: float
    east: float


class Area(BaseModel):
    """Circular (center + radius_m) or rectangular (bbox) search area"""
    center: Optional[Center] = None
    radius_m: Optional[float] = None
    bbox: Optional[BBox] = None


class TagFilter(BaseModel):
    key: str = Field(description="OSM tag key (e.g., 'amenity', 'brand', 'name')")
    value: Optional[str] = Field(
        default=None,
        description="Tag value to match (optional, if omitted just checks key exists)",
    )
    regex: Optional[bool] = Field(default=None, description="If true, value is treated as regex pattern")


# ============================================================
# Tool inputs
# ============================================================

class GeocodeInput(BaseModel):
    query: str = Field(description="Address or place name to geocode (e.g., 'Plac Politechniki 1, Warszawa')")


class ReverseGeocodeInput(BaseModel):
    lat: float
    lon: float


class FetchRequest(BaseModel):
    center: Optional[Center] = Field(default=None, description="Center point for radius search")
    radius_m: Optional[float] = Field(default=None, description="Search radius in meters (used with center)")
    bbox: Optional[BBox] = Field(default=None, description="Bounding box for search area")
    elements: Optional[List[ElementKind]] = Field(
        default=None,
        description="OSM element types to fetch (default: ['nwr'] = all)",
    )
    tags: List[TagFilter] = Field(default_factory=list, description="Tag filters for OSM features")
    overpass_ql: Optional[str] = Field(
        default=None,
        description="Raw Overpass QL query (if provided, other filters are ignored)",
    )
    output: Optional[OutputMode] = Field(
        default=None,
        description="Output mode: 'center' for centroids, 'geom' for full geometry",
    )
    timeout: Optional[int] = Field(default=None, description="Overpass server-side timeout in seconds")

    def area(self) -> Area:
        return Area(center=self.center, radius_m=self.radius_m, bbox=self.bbox)


class SpatialSqlInput(BaseModel):
    sql: str = Field(description="SQL query to execute (SELECT only)")
    params: Optional[Dict[str, Union[str, int, float, bool]]] = Field(
        default=None,
        description="Named parameters for the query (use $paramName in SQL)",
    )


# ============================================================
# Tool results
# ============================================================

class GeocodeResult(BaseModel):
    display_name: str
    lat: float
    lon: float
    bbox: Optional[List[float]] = None  # [south, north, west, east]
    osm_type: Optional[str] = None
    osm_id: Optional[int] = None
    category: Optional[str] = None
    type: Optional[str] = None


class ReverseGeocodeResult(BaseModel):
    display_name: str
    lat: float
    lon: float
    address: Optional[Dict[str, str]] = None


class GeocodeResponse(BaseModel):
    success: bool = True
    count: int
    results: List[GeocodeResult]


class FetchResult(BaseModel):
    success: bool = True
    fetched_count: int
    normalized_count: int
    inserted_count: int
    query_used: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    skipped: List[Tuple[str, str]] = Field(default_factory=list)


class SpatialSqlResult(BaseModel):
    success: bool = True
    row_count: int
    rows: List[Dict[str, Any]]
