"""
Main OSM Collector

Orchestrates the ingestion pipeline:
query building -> Overpass fetch -> parsing -> normalization -> cache upsert
"""

import json
from typing import Optional

from loguru import logger

from .api_client import OverpassAPIClient
from .cache import SpatialCache
from .normalize import normalize_elements
from .parser import OSMResponseParser
from .query import resolve_query
from ...config import PipelineConfig, get_config
from ...models import FetchRequest, FetchResult


class OSMCollector:
    """
    Collect data from OpenStreetMap via Overpass API into the spatial cache

    One fetch is one Overpass request; every usable element ends up as a
    row in the cache, replacing any earlier row with the same (kind, id).
    """

    def __init__(
        self,
        api_client: Optional[OverpassAPIClient] = None,
        cache: Optional[SpatialCache] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.config = config or get_config()
        self.api_client = api_client or OverpassAPIClient(config=self.config)
        self.cache = cache or SpatialCache(config=self.config)
        self.parser = OSMResponseParser()

    def fetch(self, request: FetchRequest) -> FetchResult:
        """
        Fetch features matching a request and cache them

        Args:
            request: Raw Overpass QL, or tag filters with optional area/elements/output

        Returns:
            FetchResult with fetched/normalized/inserted counts and the query used

        Raises:
            QueryBuildError: If neither overpass_ql nor tags are given
            OverpassError: If the Overpass request fails
        """
        if not request.overpass_ql and request.output is None:
            request = request.model_copy(update={"output": self.config.default_output})
        if not request.overpass_ql and request.elements is None:
            request = request.model_copy(update={"elements": list(self.config.default_elements)})

        query = resolve_query(request, default_timeout=self.config.api.overpass_timeout)
        logger.info(f"Fetching OSM features with query:\n{query}")

        data = self.api_client.query(query)
        elements = self.parser.parse_elements(data)
        fetched = len(data.get("elements") or [])

        features = normalize_elements(elements)
        if features:
            logger.debug(f"First feature sample: {features[0]}")
        elif fetched:
            logger.debug(f"No features normalized from {fetched} elements; first element: "
                         f"{json.dumps(data['elements'][0])[:500]}")

        batch = self.cache.upsert_features(features)

        logger.info(f"Fetch results: {fetched} fetched, {len(features)} normalized, "
                    f"{batch.succeeded} inserted")

        return FetchResult(
            fetched_count=fetched,
            normalized_count=len(features),
            inserted_count=batch.succeeded,
            query_used=query,
            skipped=batch.skipped,
        )
