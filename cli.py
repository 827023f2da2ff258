#!/usr/bin/env python
"""
Command-line interface for the OSM DuckDB cache

Usage:
    python cli.py geocode "Plac Politechniki 1, Warszawa"
    python cli.py fetch --tag amenity=cafe --lat 52.22 --lon 21.01 --radius 500
    python cli.py sql "SELECT osm_type, COUNT(*) AS n FROM osm_features GROUP BY 1"
"""

import os
import sys
import json
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from loguru import logger
from osmduck.config import get_config
from osmduck.models import BBox, Center, FetchRequest, TagFilter
from osmduck.pipeline import OSMToolPipeline


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def parse_tag(text: str) -> TagFilter:
    """Parse key, key=value or key~regex into a TagFilter"""
    if "~" in text:
        key, value = text.split("~", 1)
        return TagFilter(key=key, value=value, regex=True)
    if "=" in text:
        key, value = text.split("=", 1)
        return TagFilter(key=key, value=value)
    return TagFilter(key=text)


def parse_bbox(text: str) -> BBox:
    """Parse 'south,west,north,east'"""
    parts = [float(p) for p in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("bbox must be south,west,north,east")
    return BBox(south=parts[0], west=parts[1], north=parts[2], east=parts[3])


def parse_param(text: str):
    """Parse name=value, keeping numbers numeric"""
    if "=" not in text:
        raise argparse.ArgumentTypeError("param must be name=value")
    name, value = text.split("=", 1)
    for cast in (int, float):
        try:
            return name, cast(value)
        except ValueError:
            continue
    return name, value


def _pipeline(args) -> OSMToolPipeline:
    config = get_config()
    if args.db:
        config.storage.db_path = args.db
    return OSMToolPipeline(config=config)


def _print(result: dict) -> int:
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    return 0 if result.get("success", True) else 1


def cmd_init_db(args):
    """Create the cache database and table"""
    setup_logging(args.verbose)
    pipeline = _pipeline(args)
    pipeline.initialize()
    logger.info(f"✓ Database ready: {pipeline.cache.db_path} ({pipeline.cache.count()} features cached)")
    pipeline.close()
    return 0


def cmd_geocode(args):
    """Geocode a place name"""
    setup_logging(args.verbose)
    pipeline = _pipeline(args)
    return _print(pipeline.call_tool("geocode", {"query": args.query}))


def cmd_reverse(args):
    """Reverse geocode a coordinate"""
    setup_logging(args.verbose)
    pipeline = _pipeline(args)
    return _print(pipeline.call_tool("reverse_geocode", {"lat": args.lat, "lon": args.lon}))


def cmd_fetch(args):
    """Fetch OSM features into the cache"""
    setup_logging(args.verbose)

    if args.ql and args.ql.startswith("@"):
        with open(args.ql[1:], "r", encoding="utf-8") as f:
            args.ql = f.read()

    request = FetchRequest(
        center=Center(lat=args.lat, lon=args.lon) if args.lat is not None and args.lon is not None else None,
        radius_m=args.radius,
        bbox=args.bbox,
        elements=args.element or None,
        tags=args.tag or [],
        overpass_ql=args.ql,
        output="geom" if args.geom else None,
        timeout=args.timeout,
    )

    pipeline = _pipeline(args)
    pipeline.initialize()
    try:
        return _print(pipeline.call_tool("osm_fetch", request.model_dump(exclude_none=True)))
    finally:
        pipeline.close()


def cmd_sql(args):
    """Run a read-only SQL query against the cache"""
    setup_logging(args.verbose)
    pipeline = _pipeline(args)
    pipeline.initialize()
    try:
        params = dict(args.param) if args.param else None
        return _print(pipeline.call_tool("spatial_sql", {"sql": args.sql, "params": params}))
    finally:
        pipeline.close()


def main():
    parser = argparse.ArgumentParser(
        description="OSM DuckDB cache CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Geocode a place:
    python cli.py geocode "Warsaw University of Technology"

  Fetch cafes within 500m:
    python cli.py fetch --tag amenity=cafe --lat 52.2206 --lon 21.0100 --radius 500

  Fetch with a raw Overpass QL query from a file:
    python cli.py fetch --ql @query.overpassql

  Query the cache:
    python cli.py sql "SELECT osm_id, tags_json->>'name' AS name FROM osm_features WHERE osm_type = \\$t" --param t=node
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--db", help="DuckDB database path (default from config / OSM_DUCKDB_PATH)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Init command
    init_parser = subparsers.add_parser("init-db", help="Create the cache database")
    init_parser.set_defaults(func=cmd_init_db)

    # Geocode command
    geo_parser = subparsers.add_parser("geocode", help="Geocode an address or place name")
    geo_parser.add_argument("query", help="Address or place name")
    geo_parser.set_defaults(func=cmd_geocode)

    # Reverse command
    rev_parser = subparsers.add_parser("reverse", help="Reverse geocode a coordinate")
    rev_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    rev_parser.add_argument("--lon", type=float, required=True, help="Longitude")
    rev_parser.set_defaults(func=cmd_reverse)

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Fetch OSM features into the cache")
    fetch_parser.add_argument("--tag", "-t", type=parse_tag, action="append",
                              help="Tag filter: key, key=value or key~regex (repeatable)")
    fetch_parser.add_argument("--lat", type=float, help="Center latitude")
    fetch_parser.add_argument("--lon", type=float, help="Center longitude")
    fetch_parser.add_argument("--radius", "-r", type=float, help="Search radius in meters")
    fetch_parser.add_argument("--bbox", type=parse_bbox, help="Bounding box: south,west,north,east")
    fetch_parser.add_argument("--element", "-e", choices=["node", "way", "relation", "nwr"], action="append",
                              help="Element kind (repeatable, default nwr)")
    fetch_parser.add_argument("--geom", action="store_true", help="Request full geometry instead of centers")
    fetch_parser.add_argument("--timeout", type=int, help="Overpass server-side timeout in seconds")
    fetch_parser.add_argument("--ql", help="Raw Overpass QL (or @file); overrides the other filters")
    fetch_parser.set_defaults(func=cmd_fetch)

    # SQL command
    sql_parser = subparsers.add_parser("sql", help="Run a read-only SQL query")
    sql_parser.add_argument("sql", help="SELECT statement ($name for parameters)")
    sql_parser.add_argument("--param", "-p", type=parse_param, action="append", help="Parameter name=value")
    sql_parser.set_defaults(func=cmd_sql)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
