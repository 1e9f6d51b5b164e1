"""
osm_routing.py

Driving routes from the OSRM public API (router.project-osrm.org, no key).

OSRM speaks [lon, lat]; everything returned here is GeoPoint(lat, lng),
distance in km and duration in minutes.
"""

import logging
from typing import Optional

import requests

from fleet_route_map.config import MapServicesConfig
from fleet_route_map.models import GeoPoint, RouteResult

log = logging.getLogger("fleet_route_map.osm_routing")


class RoutePlanner:
    """One request per (start, end) pair. No retries, no caching."""

    def __init__(self, session: Optional[requests.Session] = None,
                 config: Optional[MapServicesConfig] = None):
        self._session = session if session is not None else requests
        self._cfg = config if config is not None else MapServicesConfig()

    def route_url(self, start: GeoPoint, end: GeoPoint) -> str:
        return f"{self._cfg.osrm_url}/{start.lng},{start.lat};{end.lng},{end.lat}"

    def plan(self, start: GeoPoint, end: GeoPoint) -> Optional[RouteResult]:
        try:
            r = self._session.get(
                self.route_url(start, end),
                params={"overview": "full", "geometries": "geojson"},
                headers={"User-Agent": self._cfg.user_agent},
                timeout=self._cfg.request_timeout_s,
            )
            if not r.ok:
                log.warning("OSRM error: %s %s", r.status_code, r.reason)
                return None
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("Routing request failed: %s", e)
            return None

        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            log.info("OSRM returned no route (code=%s)", data.get("code") if isinstance(data, dict) else None)
            return None

        try:
            route = routes[0]
            points = tuple(GeoPoint(lat=c[1], lng=c[0]) for c in route["geometry"]["coordinates"])
            return RouteResult(
                points=points,
                distance_km=route["distance"] / 1000,
                duration_min=route["duration"] / 60,
            )
        except (KeyError, TypeError, IndexError) as e:
            log.warning("Unexpected OSRM payload: %s", e)
            return None


# ══════════════════════════════════════════════════════════════════════
# DISPLAY HELPERS
# ══════════════════════════════════════════════════════════════════════

def format_duration(minutes: float) -> str:
    minutes = int(round(minutes))
    h, m = divmod(minutes, 60)
    return f"{h} h {m} min" if h else f"{m} min"


def format_distance(km: float) -> str:
    return f"{km:.1f} km"
