"""
trip_route.py

Origin/destination labels -> endpoints + planned route, with the error
message the map should show when something along the way fails.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from fleet_route_map.geocoding import CoordinateResolver
from fleet_route_map.models import GeoPoint, RouteResult
from fleet_route_map.osm_routing import RoutePlanner

log = logging.getLogger("fleet_route_map.trip_route")

MSG_NO_LABELS = "Esta viagem ainda não tem origem/destino definidos."
MSG_LOCATE_FAILED = "Não foi possível localizar a origem ou o destino no mapa."
MSG_ROUTE_FAILED = "Não foi possível calcular a rota planeada."
MSG_UNEXPECTED = "Ocorreu um erro ao preparar o mapa da viagem."


@dataclass(frozen=True)
class PlannedRoute:
    start: Optional[GeoPoint] = None
    end: Optional[GeoPoint] = None
    route: Optional[RouteResult] = None
    error: Optional[str] = None

    @property
    def points(self):
        return self.route.points if self.route is not None else ()

    @property
    def ok(self) -> bool:
        return self.error is None and self.route is not None


def prepare_planned_route(origin_label: str, destination_label: str,
                          resolver: CoordinateResolver, planner: RoutePlanner,
                          executor=None) -> PlannedRoute:
    """
    Geocode both labels concurrently, then fetch the driving route.

    Never raises: failures come back as PlannedRoute.error. Resolved endpoints
    are kept when only the routing step fails, so the map can still
    show them.
    """
    if not (origin_label and origin_label.strip() and destination_label and destination_label.strip()):
        return PlannedRoute(error=MSG_NO_LABELS)

    try:
        if executor is None:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="geocode") as pool:
                start, end = _resolve_pair(pool, resolver, origin_label, destination_label)
        else:
            start, end = _resolve_pair(executor, resolver, origin_label, destination_label)

        if start is None or end is None:
            return PlannedRoute(error=MSG_LOCATE_FAILED)

        route = planner.plan(start, end)
        if route is None:
            return PlannedRoute(start=start, end=end, error=MSG_ROUTE_FAILED)
        return PlannedRoute(start=start, end=end, route=route)
    except Exception:
        log.exception("Failed to prepare route %r -> %r", origin_label, destination_label)
        return PlannedRoute(error=MSG_UNEXPECTED)


def _resolve_pair(executor, resolver, origin_label, destination_label):
    origin = executor.submit(resolver.resolve, origin_label)
    destination = executor.submit(resolver.resolve, destination_label)
    return origin.result(), destination.result()
