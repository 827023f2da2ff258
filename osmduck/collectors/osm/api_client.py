"""
Overpass API client

Handles communication with Overpass API including:
- Rate limiting (shared across every client in the process)
- Failover across multiple endpoints
- Retry logic with exponential backoff
- Error handling (transient vs permanent failures)
"""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from loguru import logger

from ...config import PipelineConfig, get_config, overpass_urls_from_env
from ...exceptions import PermanentServiceError, TransientServiceError
from ...rate_limit import RateLimiter, get_rate_limiter


# Statuses worth retrying on another attempt/endpoint
TRANSIENT_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504, 520})


def resolve_endpoints(overrides: Optional[Sequence[str]], defaults: Sequence[str]) -> List[str]:
    """Overrides first, then defaults; duplicates removed, order preserved"""
    seen = set()
    urls = []
    for url in list(overrides or []) + list(defaults):
        url = url.strip()
        if url and url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


class OverpassAPIClient:
    """Client for interacting with Overpass API"""

    def __init__(
        self,
        endpoints: Optional[Sequence[str]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        config: Optional[PipelineConfig] = None,
    ):
        self.config = config or get_config()
        api = self.config.api

        overrides = endpoints if endpoints is not None else overpass_urls_from_env()
        self.endpoints = resolve_endpoints(overrides, api.overpass_urls)
        if not self.endpoints:
            raise ValueError("No Overpass endpoints configured")
        self.timeout = api.overpass_request_timeout
        self.backoff_base = api.backoff_base
        self.backoff_cap = api.backoff_cap

        self.rate_limiter = rate_limiter or get_rate_limiter("overpass", api.overpass_min_interval)
        self.session = session or requests.Session()
        self._sleep = sleep

        logger.debug(f"Overpass endpoints: {self.endpoints}")

    @property
    def max_attempts(self) -> int:
        return max(2, len(self.endpoints))

    def backoff(self, attempt: int) -> float:
        """Delay after a failed attempt (0-based)"""
        return min(self.backoff_cap, self.backoff_base * 2 ** attempt)

    def query(self, query: str) -> Dict[str, Any]:
        """
        Execute Overpass API query with retry and failover

        Attempt i goes to endpoint i % len(endpoints). Transient HTTP statuses,
        network errors and unparsable replies are retried after a backoff;
        any other non-2xx status aborts immediately.

        Args:
            query: Overpass QL query string

        Returns:
            JSON response from Overpass API

        Raises:
            PermanentServiceError: On a non-transient HTTP status
            TransientServiceError: If every attempt failed
        """
        headers = {
            "User-Agent": self.config.api.user_agent,
            "Content-Type": "application/x-www-form-urlencoded",
        }

        max_attempts = self.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(max_attempts):
            url = self.endpoints[attempt % len(self.endpoints)]
            self.rate_limiter.acquire()

            try:
                response = self.session.post(
                    url,
                    data={"data": query},
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                logger.warning(f"Overpass request to {url} failed (attempt {attempt + 1}/{max_attempts}): {e}")
                last_error = TransientServiceError(f"Overpass request failed: {e}", url=url)
            else:
                status = response.status_code
                if 200 <= status < 300:
                    try:
                        data = response.json()
                    except ValueError as e:
                        logger.warning(f"Overpass reply from {url} is not valid JSON (attempt {attempt + 1}/{max_attempts})")
                        last_error = TransientServiceError(f"Overpass returned invalid JSON: {e}", status, url)
                    else:
                        if not isinstance(data, dict):
                            logger.warning(f"Overpass reply from {url} is not a JSON object (attempt {attempt + 1}/{max_attempts})")
                            last_error = TransientServiceError(
                                f"Overpass returned unexpected JSON: {type(data).__name__}", status, url
                            )
                        else:
                            remark = data.get("remark")
                            if remark:
                                logger.warning(f"Overpass remark: {remark}")
                            logger.debug(f"Overpass query succeeded on {url} (attempt {attempt + 1})")
                            return data
                else:
                    message = f"Overpass error: {status} - {(response.text or '')[:200]}"
                    if status not in TRANSIENT_STATUSES:
                        logger.error(f"OSM API failed: HTTP {status} from {url}, not retrying")
                        raise PermanentServiceError(message, status, url)
                    logger.warning(f"Overpass {status} from {url} (attempt {attempt + 1}/{max_attempts})")
                    last_error = TransientServiceError(message, status, url)

            if attempt < max_attempts - 1:
                wait_time = self.backoff(attempt)
                logger.info(f"Retrying in {wait_time}s...")
                self._sleep(wait_time)

        logger.error(f"OSM API failed after {max_attempts} attempts: {last_error}")
        raise TransientServiceError(
            f"Overpass failed after retries. Last error: {last_error}",
            getattr(last_error, "status_code", None),
            getattr(last_error, "url", None),
        ) from last_error
