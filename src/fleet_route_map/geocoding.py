"""
geocoding.py

Location label -> coordinates, using OpenStreetMap Nominatim (no key).

Labels come from the province/municipality/neighbourhood cascade, e.g.
"Luanda · Viana · Zango 3". Small neighbourhoods are often missing from
OSM, so the lookup narrows the query step by step:

    Luanda, Viana, Zango 3  ->  Luanda, Viana  ->  Luanda  ->  Angola

Queries run one after the other and the first hit wins; a later query is
never sent once an earlier one matched.
"""

import logging
from typing import List, Optional

import requests

from fleet_route_map.config import MapServicesConfig
from fleet_route_map.models import GeoPoint, split_label

log = logging.getLogger("fleet_route_map.geocoding")


class CoordinateResolver:
    """Resolve a location label to a GeoPoint. Never raises; misses return None."""

    def __init__(self, session: Optional[requests.Session] = None,
                 config: Optional[MapServicesConfig] = None):
        self._session = session if session is not None else requests
        self._cfg = config if config is not None else MapServicesConfig()

    def candidate_queries(self, label: str) -> List[str]:
        """Queries to try, most specific first, ending with the bare country."""
        parts = split_label(label.strip() if label else "")
        if not parts:
            return []

        queries = [", ".join(parts)]
        for i in range(len(parts) - 1, 0, -1):
            partial = ", ".join(parts[:i])
            if partial not in queries:
                queries.append(partial)
        queries.append(self._cfg.country)
        return queries

    def resolve(self, label: str) -> Optional[GeoPoint]:
        for query in self.candidate_queries(label):
            point = self._search(query)
            if point is not None:
                log.debug("Resolved %r via %r -> %s", label, query, point)
                return point

        if label and label.strip():
            log.warning("Could not geocode %r", label)
        return None

    def _search(self, query: str) -> Optional[GeoPoint]:
        """One Nominatim lookup. Any failure counts as 'no result for this query'."""
        try:
            r = self._session.get(
                self._cfg.nominatim_url,
                params={"format": "json", "q": f"{query}, {self._cfg.country}"},
                headers={"Accept": "application/json", "User-Agent": self._cfg.user_agent},
                timeout=self._cfg.request_timeout_s,
            )
            if not r.ok:
                log.warning("Nominatim error for %r: %s %s", query, r.status_code, r.reason)
                return None
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("Geocoding request failed for %r: %s", query, e)
            return None

        if not data:
            return None
        try:
            best = data[0]
            return GeoPoint(lat=float(best["lat"]), lng=float(best["lon"]))
        except (KeyError, TypeError, ValueError, IndexError) as e:
            log.warning("Unexpected Nominatim payload for %r: %s", query, e)
            return None
