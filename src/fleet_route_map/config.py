"""
config.py

Endpoints and tunables for the map services. Defaults point at the free
public services (no API key needed); every field can be overridden from
the environment, e.g. for a self-hosted OSRM instance.

    FLEET_MAP_NOMINATIM_URL   FLEET_MAP_OSRM_URL     FLEET_MAP_IP_LOOKUP_URL
    FLEET_MAP_TILE_URL        FLEET_MAP_COUNTRY      FLEET_MAP_USER_AGENT
    FLEET_MAP_TIMEOUT         FLEET_MAP_ZOOM         FLEET_MAP_LOG_LEVEL
    FLEET_MAP_GPS_PORT        FLEET_MAP_GPS_BAUD
    SUPABASE_URL              SUPABASE_KEY
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple


# ══════════════════════════════════════════════════════════════════════
# DEFAULTS
# ══════════════════════════════════════════════════════════════════════

NOMINATIM_BASE = "https://nominatim.openstreetmap.org/search"
OSRM_BASE = "https://router.project-osrm.org/route/v1/driving"
IP_LOOKUP_URL = "https://ipapi.co/json/"
OSM_TILES = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = "&copy; OpenStreetMap contributors"


@dataclass(frozen=True)
class MapServicesConfig:
    nominatim_url: str = NOMINATIM_BASE
    osrm_url: str = OSRM_BASE
    ip_lookup_url: str = IP_LOOKUP_URL
    tile_url: str = OSM_TILES
    tile_attribution: str = OSM_ATTRIBUTION
    country: str = "Angola"
    user_agent: str = "Fleet-Route-Map/0.1 (fleet dashboard)"
    request_timeout_s: float = 10.0
    initial_zoom: int = 13
    fit_padding: Tuple[int, int] = (40, 40)
    log_level: str = "INFO"
    gps_port: Optional[str] = None
    gps_baudrate: int = 9600
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None


_ENV_FIELDS = {
    "FLEET_MAP_NOMINATIM_URL": "nominatim_url",
    "FLEET_MAP_OSRM_URL": "osrm_url",
    "FLEET_MAP_IP_LOOKUP_URL": "ip_lookup_url",
    "FLEET_MAP_TILE_URL": "tile_url",
    "FLEET_MAP_COUNTRY": "country",
    "FLEET_MAP_USER_AGENT": "user_agent",
    "FLEET_MAP_LOG_LEVEL": "log_level",
    "FLEET_MAP_GPS_PORT": "gps_port",
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_KEY": "supabase_key",
}


_NUMERIC_FIELDS = {
    "FLEET_MAP_TIMEOUT": ("request_timeout_s", float),
    "FLEET_MAP_ZOOM": ("initial_zoom", int),
    "FLEET_MAP_GPS_BAUD": ("gps_baudrate", int),
}


def load_config(environ: Optional[Mapping[str, str]] = None) -> MapServicesConfig:
    """Build the config from defaults plus environment overrides."""
    env = os.environ if environ is None else environ
    overrides = {field: env[key] for key, field in _ENV_FIELDS.items() if env.get(key)}

    for key, (field, cast) in _NUMERIC_FIELDS.items():
        if not env.get(key):
            continue
        try:
            overrides[field] = cast(env[key])
        except ValueError:
            raise ValueError(f"{key} must be a {cast.__name__}, got {env[key]!r}")

    return replace(MapServicesConfig(), **overrides)
