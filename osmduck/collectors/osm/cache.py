"""
OSM feature caching

Persists normalized features in a DuckDB table keyed by (osm_type, osm_id).
Geometry is stored both as WKT text and as a native value: a spatial
GEOMETRY when the DuckDB spatial extension is available, WKB bytes otherwise.
"""

import math
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import duckdb
import shapely
import shapely.wkb as swkb
import shapely.wkt as swkt
from shapely.errors import ShapelyError
from loguru import logger

from .models import BatchResult, NormalizedFeature
from ...config import PipelineConfig, get_config
from ...exceptions import StorageError


TABLE_NAME = "osm_features"
FEATURE_KINDS = ("node", "way", "relation")

_CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS osm_features (
        osm_type VARCHAR NOT NULL,
        osm_id BIGINT NOT NULL,
        tags_json JSON,
        geom_wkt VARCHAR,
        geom {geom_type},
        fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (osm_type, osm_id)
    )
"""

_UPSERT_SQL = """
    INSERT INTO osm_features (osm_type, osm_id, tags_json, geom_wkt, geom)
    VALUES (?, ?, ?, ?, {geom_expr})
    ON CONFLICT (osm_type, osm_id) DO UPDATE SET
        tags_json = excluded.tags_json,
        geom_wkt = excluded.geom_wkt,
        geom = excluded.geom,
        fetched_at = now()
"""


def validate_wkt(wkt: Any) -> Optional[str]:
    """Return why a WKT string is unusable, or None if it is well-formed"""
    if not isinstance(wkt, str) or not wkt.strip():
        return "invalid geom_wkt: empty"
    try:
        geom = swkt.loads(wkt)
    except (ShapelyError, ValueError) as e:
        return f"invalid geom_wkt: {e}"
    if geom.is_empty:
        return "invalid geom_wkt: empty geometry"
    if not all(math.isfinite(v) for v in shapely.get_coordinates(geom).ravel()):
        return "invalid geom_wkt: non-finite coordinate"
    return None


class SpatialCache:
    """Handles caching of OSM features in DuckDB"""

    def __init__(
        self,
        db_path: Optional[str] = None,
        spatial: Optional[bool] = None,
        require_spatial: Optional[bool] = None,
        config: Optional[PipelineConfig] = None,
    ):
        storage = (config or get_config()).storage
        self.db_path = db_path or storage.db_path
        self.spatial = storage.spatial if spatial is None else spatial
        self.require_spatial = storage.require_spatial if require_spatial is None else require_spatial
        self.spatial_loaded = False
        self._con: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()

    def initialize(self):
        """Open the database, load the spatial extension and create the table"""
        with self._lock:
            if self._con is not None:
                return

            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            con = duckdb.connect(self.db_path)

            if self.spatial:
                self.spatial_loaded = self._load_spatial(con)
            if self.require_spatial and not self.spatial_loaded:
                con.close()
                raise StorageError("DuckDB spatial extension is required but could not be loaded")

            geom_type = "GEOMETRY" if self.spatial_loaded else "BLOB"
            con.execute(_CREATE_TABLE_SQL.format(geom_type=geom_type))
            # Queries may only see the attached database from here on
            con.execute("SET enable_external_access = false")
            self._con = con

            logger.info(f"Spatial cache ready: {self.db_path} (native geometry: {geom_type})")

    @staticmethod
    def _load_spatial(con: duckdb.DuckDBPyConnection) -> bool:
        try:
            con.execute("INSTALL spatial;")
        except duckdb.Error as e:
            logger.warning(f"Note: spatial install: {e}")
        try:
            con.execute("LOAD spatial;")
        except duckdb.Error as e:
            logger.warning(f"DuckDB spatial extension unavailable, storing WKB instead: {e}")
            return False
        return True

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            raise StorageError("Database not initialized. Call initialize() first.")
        return self._con

    def upsert_features(self, features: Iterable[NormalizedFeature]) -> BatchResult:
        """
        Insert or replace each feature by (kind, id)

        Each feature is written independently: a malformed geometry or a
        rejected write is logged and recorded as skipped, and the batch goes on.
        """
        result = BatchResult()
        con = self.connection
        geom_expr = "ST_GeomFromText(?)" if self.spatial_loaded else "?"
        sql = _UPSERT_SQL.format(geom_expr=geom_expr)

        for feature in features:
            reason = self._check_feature(feature)
            if reason:
                logger.warning(f"Skipping feature {feature.key}: {reason}")
                result.skip(feature.key, reason)
                continue

            native = feature.geometry_wkt if self.spatial_loaded else swkb.dumps(swkt.loads(feature.geometry_wkt))
            params = [feature.kind, feature.id, feature.tags_json, feature.geometry_wkt, native]

            with self._lock:
                try:
                    con.execute(sql, params)
                except duckdb.Error as e:
                    logger.warning(f"Insert error for {feature.key}: {e}")
                    result.skip(feature.key, f"insert error: {e}")
                    continue
            result.succeeded += 1

        logger.debug(f"Cache write: {result.succeeded} upserted, {len(result.skipped)} skipped")
        return result

    def insert_features(self, features: Iterable[NormalizedFeature]) -> int:
        """Upsert features and return only the number written"""
        return self.upsert_features(features).succeeded

    @staticmethod
    def _check_feature(feature: NormalizedFeature) -> Optional[str]:
        if feature.kind not in FEATURE_KINDS:
            return f"unknown element kind {feature.kind!r}"
        return validate_wkt(feature.geometry_wkt)

    def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement with DuckDB named parameters ($name) and return rows as dicts"""
        with self._lock:
            if params:
                cursor = self.connection.execute(sql, params)
            else:
                cursor = self.connection.execute(sql)
            if cursor.description is None:
                return []
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def get_feature(self, kind: str, osm_id: int) -> Optional[Dict[str, Any]]:
        rows = self.query(
            "SELECT osm_type, osm_id, tags_json, geom_wkt, fetched_at "
            "FROM osm_features WHERE osm_type = $kind AND osm_id = $osm_id",
            {"kind": kind, "osm_id": osm_id},
        )
        return rows[0] if rows else None

    def count(self) -> int:
        with self._lock:
            return int(self.connection.execute("SELECT COUNT(*) FROM osm_features").fetchone()[0])

    def close(self):
        with self._lock:
            if self._con is not None:
                self._con.close()
                self._con = None
                logger.debug(f"Closed spatial cache {self.db_path}")
