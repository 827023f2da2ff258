"""
Configuration settings for the OSM DuckDB cache
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import os

from loguru import logger
from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_OVERPASS_URLS = [
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.openstreetmap.ru/api/interpreter",
    "https://overpass.nchc.org.tw/api/interpreter",
]


@dataclass
class APIConfig:
    """API endpoints and configuration"""
    # Overpass API (OSM), tried in order after any env overrides
    overpass_urls: List[str] = field(default_factory=lambda: list(DEFAULT_OVERPASS_URLS))
    overpass_timeout: int = 30  # Server-side [timeout:N] for built queries
    overpass_request_timeout: float = 90.0  # Client-side per-attempt HTTP timeout
    overpass_min_interval: float = 2.0

    # Retry backoff: min(cap, base * 2**attempt)
    backoff_base: float = 0.5
    backoff_cap: float = 8.0

    # Nominatim (geocoding), max 1 request per second
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    nominatim_min_interval: float = 1.1
    geocode_limit: int = 5

    # Request settings
    request_timeout: int = 30

    # User agent for API requests
    user_agent: str = "MCP-OSM-DuckDB/1.0 (educational project)"


@dataclass
class StorageConfig:
    """DuckDB cache configuration"""
    db_path: str = str(PROJECT_ROOT / "data" / "osm.duckdb")

    # Load the DuckDB spatial extension for a native GEOMETRY column
    spatial: bool = True
    # Fail instead of falling back to WKB blobs when spatial is unavailable
    require_spatial: bool = False


@dataclass
class PipelineConfig:
    """Pipeline configuration"""
    # Default element kinds and output mode for built queries
    default_elements: List[str] = field(default_factory=lambda: ["nwr"])
    default_output: str = "center"

    # API config
    api: APIConfig = field(default_factory=APIConfig)

    # Storage config
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_env() -> bool:
    """
    Load a .env file from the project root or the current directory.
    Existing environment variables are never overridden.
    """
    for env_path in (PROJECT_ROOT / ".env", Path.cwd() / ".env"):
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded .env file from {env_path}")
            return True
    return False


def overpass_urls_from_env() -> List[str]:
    """
    Read Overpass endpoint overrides from the environment.

    OVERPASS_API_URLS takes a comma-separated list, OVERPASS_API_URL a single URL.
    """
    raw = os.getenv("OVERPASS_API_URLS") or os.getenv("OVERPASS_API_URL") or ""
    return [url.strip() for url in raw.split(",") if url.strip()]


def build_config() -> PipelineConfig:
    """Build configuration from defaults plus environment overrides"""
    load_env()
    cfg = PipelineConfig()

    db_path = os.getenv("OSM_DUCKDB_PATH")
    if db_path:
        cfg.storage.db_path = db_path

    if os.getenv("OSM_DUCKDB_REQUIRE_SPATIAL", "").lower() in ("1", "true", "yes"):
        cfg.storage.require_spatial = True

    return cfg


# Global config instance
config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """Get global configuration"""
    global config
    if config is None:
        config = build_config()
    return config


def validate_config(config: PipelineConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if not config.api.overpass_urls:
        errors.append("api.overpass_urls must contain at least one endpoint")
    if config.api.overpass_timeout <= 0:
        errors.append(f"api.overpass_timeout must be positive, got {config.api.overpass_timeout}")
    if config.api.overpass_min_interval < 0:
        errors.append(f"api.overpass_min_interval must not be negative, got {config.api.overpass_min_interval}")
    if config.api.backoff_base < 0 or config.api.backoff_cap < 0:
        errors.append("api.backoff_base and api.backoff_cap must not be negative")
    if config.api.geocode_limit < 1:
        errors.append(f"api.geocode_limit must be at least 1, got {config.api.geocode_limit}")
    if not config.api.user_agent:
        errors.append("api.user_agent is required but not set")

    if config.default_output not in ("center", "geom"):
        errors.append(f"default_output must be 'center' or 'geom', got {config.default_output!r}")
    for element in config.default_elements:
        if element not in ("node", "way", "relation", "nwr"):
            errors.append(f"default_elements contains unknown element kind {element!r}")

    if not config.storage.db_path:
        errors.append("storage.db_path is required but not set")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
