"""
Geocoding via Nominatim
Resolves place names to coordinates and coordinates back to addresses
"""

from typing import List, Optional

import requests
from loguru import logger

from ..config import PipelineConfig, get_config
from ..exceptions import GeocodingError
from ..models import GeocodeResult, ReverseGeocodeResult
from ..rate_limit import RateLimiter, get_rate_limiter


class NominatimGeocoder:
    """Forward and reverse geocoding against Nominatim (max 1 request per second, no retries)"""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.config = config or get_config()
        self.base_url = self.config.api.nominatim_url.rstrip("/")
        self.rate_limiter = rate_limiter or get_rate_limiter("nominatim", self.config.api.nominatim_min_interval)
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict) -> requests.Response:
        self.rate_limiter.acquire()
        try:
            return self.session.get(
                f"{self.base_url}/{path}",
                params=params,
                headers={
                    "User-Agent": self.config.api.user_agent,
                    "Accept": "application/json",
                },
                timeout=self.config.api.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise GeocodingError(f"Nominatim request failed: {e}") from e

    @staticmethod
    def _json(response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise GeocodingError(f"Nominatim returned invalid JSON: {e}") from e

    def geocode(self, query: str, limit: Optional[int] = None) -> List[GeocodeResult]:
        """
        Geocode an address or place name

        Args:
            query: Free-text address or place name
            limit: Maximum number of candidates (default from config)

        Returns:
            Candidates with display name, coordinates and bounding box
            ([south, north, west, east])
        """
        response = self._get("search", {
            "q": query,
            "format": "json",
            "limit": str(limit or self.config.api.geocode_limit),
            "addressdetails": "1",
        })

        if not response.ok:
            raise GeocodingError(f"Nominatim error: {response.status_code} {response.reason}")

        payload = self._json(response)
        if not isinstance(payload, list):
            raise GeocodingError(f"Nominatim returned unexpected JSON: {type(payload).__name__}")

        results = []
        try:
            for item in payload:
                bbox = item.get("boundingbox")
                results.append(GeocodeResult(
                    display_name=item.get("display_name", ""),
                    lat=float(item["lat"]),
                    lon=float(item["lon"]),
                    bbox=[float(v) for v in bbox] if bbox else None,
                    osm_type=item.get("osm_type"),
                    osm_id=item.get("osm_id"),
                    category=item.get("class"),
                    type=item.get("type"),
                ))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise GeocodingError(f"Nominatim returned a malformed result: {e!r}") from e

        logger.debug(f"Nominatim: {len(results)} result(s) for {query!r}")
        return results

    def reverse(self, lat: float, lon: float) -> Optional[ReverseGeocodeResult]:
        """Reverse geocode a coordinate; returns None if nothing is found"""
        response = self._get("reverse", {
            "lat": str(lat),
            "lon": str(lon),
            "format": "json",
            "addressdetails": "1",
        })

        if not response.ok:
            if response.status_code == 404:
                return None
            raise GeocodingError(f"Nominatim error: {response.status_code} {response.reason}")

        data = self._json(response)
        if not isinstance(data, dict) or not data.get("lat") or not data.get("lon"):
            return None

        try:
            return ReverseGeocodeResult(
                display_name=data.get("display_name", ""),
                lat=float(data["lat"]),
                lon=float(data["lon"]),
                address=data.get("address"),
            )
        except (TypeError, ValueError) as e:
            raise GeocodingError(f"Nominatim returned a malformed result: {e!r}") from e
