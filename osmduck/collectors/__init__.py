"""
Data collectors for the OSM DuckDB cache

- OSMCollector: Overpass features -> normalized WKT -> DuckDB
- NominatimGeocoder: Forward and reverse geocoding
"""

from .osm import OSMCollector
from .geocoder import NominatimGeocoder

__all__ = [
    "OSMCollector",
    "NominatimGeocoder",
]
