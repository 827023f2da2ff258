"""
osmduck - OpenStreetMap features in a local DuckDB spatial cache

Geocode place names, pull Overpass features into DuckDB and query them
with read-only spatial SQL.
"""

__version__ = "1.0.0"
