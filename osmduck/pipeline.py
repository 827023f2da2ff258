"""
Tool Pipeline Orchestrator

Exposes the agent-facing tools on top of the collectors:

  1. geocode         - place name -> candidate coordinates (Nominatim)
  2. reverse_geocode - coordinate -> address (Nominatim)
  3. osm_fetch       - Overpass query -> normalized features -> DuckDB cache
  4. spatial_sql     - read-only SQL against the cached features

A protocol layer registers TOOL_DEFINITIONS and routes calls to call_tool().
"""

import json
from typing import Any, Dict, List, Optional

import duckdb
from loguru import logger
from pydantic import BaseModel, ValidationError

from .config import PipelineConfig, get_config, validate_config
from .collectors.geocoder import NominatimGeocoder
from .collectors.osm import OSMCollector, OverpassAPIClient, SpatialCache
from .exceptions import OSMDuckError
from .models import (
    FetchRequest, FetchResult, GeocodeInput, GeocodeResponse,
    ReverseGeocodeInput, ReverseGeocodeResult, SpatialSqlInput, SpatialSqlResult,
)
from .sql_guard import validate_select_sql


def _tool(name: str, description: str, model: type) -> Dict[str, Any]:
    return {"name": name, "description": description, "inputSchema": model.model_json_schema()}


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    _tool(
        "geocode",
        "Geocode an address or place name to get coordinates (lat, lon). Uses Nominatim API. "
        "Returns up to 5 candidates with display name, coordinates, and bounding box.",
        GeocodeInput,
    ),
    _tool(
        "reverse_geocode",
        "Look up the address of a coordinate (lat, lon) using Nominatim.",
        ReverseGeocodeInput,
    ),
    _tool(
        "osm_fetch",
        "Fetch OSM features from Overpass API and cache them in DuckDB. Use tag filters to find any "
        "type of feature (restaurants, parks, shops, etc.). Results are stored locally for subsequent "
        "spatial queries.",
        FetchRequest,
    ),
    _tool(
        "spatial_sql",
        "Execute spatial SQL queries on cached OSM data in DuckDB. The osm_features table has columns: "
        "osm_type, osm_id, tags_json (JSON), geom_wkt (text), geom (GEOMETRY), fetched_at. Use DuckDB "
        "Spatial functions like ST_Distance_Sphere, ST_DWithin_Spheroid, ST_X, ST_Y, etc.",
        SpatialSqlInput,
    ),
]


class OSMToolPipeline:
    """
    Main pipeline wiring geocoder, Overpass client and spatial cache

    Usage:
        pipeline = OSMToolPipeline()
        pipeline.initialize()
        pipeline.osm_fetch(FetchRequest(tags=[TagFilter(key="amenity", value="cafe")], ...))
        pipeline.spatial_sql(SpatialSqlInput(sql="SELECT COUNT(*) AS n FROM osm_features"))
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        api_client: Optional[OverpassAPIClient] = None,
        cache: Optional[SpatialCache] = None,
    ):
        self.config = config or get_config()
        validate_config(self.config)

        self.geocoder = geocoder or NominatimGeocoder(config=self.config)
        self.cache = cache or SpatialCache(config=self.config)
        self.collector = OSMCollector(
            api_client=api_client or OverpassAPIClient(config=self.config),
            cache=self.cache,
            config=self.config,
        )

    def initialize(self):
        logger.info("Initializing DuckDB with spatial extension...")
        self.cache.initialize()

    def close(self):
        self.cache.close()

    def geocode(self, params: GeocodeInput) -> GeocodeResponse:
        results = self.geocoder.geocode(params.query)
        return GeocodeResponse(count=len(results), results=results)

    def reverse_geocode(self, params: ReverseGeocodeInput) -> Optional[ReverseGeocodeResult]:
        return self.geocoder.reverse(params.lat, params.lon)

    def osm_fetch(self, params: FetchRequest) -> FetchResult:
        return self.collector.fetch(params)

    def spatial_sql(self, params: SpatialSqlInput) -> SpatialSqlResult:
        validate_select_sql(params.sql)
        rows = self.cache.query(params.sql, params.params)
        return SpatialSqlResult(row_count=len(rows), rows=rows)

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Validate arguments, run a tool and return a JSON-ready dict

        Failures come back as {"success": False, "error": message} instead of raising.
        """
        handlers = {
            "geocode": (GeocodeInput, self.geocode),
            "reverse_geocode": (ReverseGeocodeInput, self.reverse_geocode),
            "osm_fetch": (FetchRequest, self.osm_fetch),
            "spatial_sql": (SpatialSqlInput, self.spatial_sql),
        }

        try:
            if name not in handlers:
                raise OSMDuckError(f"Unknown tool: {name}")
            model, handler = handlers[name]
            result = handler(model.model_validate(arguments or {}))
        except (OSMDuckError, ValidationError, duckdb.Error) as e:
            logger.error(f"Tool {name} failed: {e}")
            return {"success": False, "error": str(e)}

        if result is None:
            return {"success": True, "result": None}
        if isinstance(result, BaseModel):
            # Round-trip through JSON so timestamps and blobs become plain values
            payload = json.loads(json.dumps(result.model_dump(), default=str))
            return payload if "success" in payload else {"success": True, "result": payload}
        return result
