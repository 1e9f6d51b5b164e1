"""
services.py

The map services bundle passed to the pages, instead of module globals.

Without an explicit session every HTTP call goes through the plain
`requests` functions, so the bundle can be cached app-wide and used from
the geocoding workers without sharing a `requests.Session`.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from fleet_route_map.config import MapServicesConfig, load_config
from fleet_route_map.geocoding import CoordinateResolver
from fleet_route_map.live_location import IpLocator
from fleet_route_map.osm_routing import RoutePlanner
from fleet_route_map.route_map import RouteMapRenderer, folium_surface_factory
from fleet_route_map.supabase_integration import TripLabelStore, get_supabase_client


@dataclass
class MapServices:
    config: MapServicesConfig
    resolver: CoordinateResolver
    planner: RoutePlanner
    ip_locator: IpLocator
    trips: Optional[TripLabelStore] = None

    def new_renderer(self) -> RouteMapRenderer:
        return RouteMapRenderer(
            folium_surface_factory(self.config.tile_url, self.config.tile_attribution),
            zoom=self.config.initial_zoom,
            padding=self.config.fit_padding,
        )


def build_services(config: Optional[MapServicesConfig] = None,
                   session: Optional[requests.Session] = None) -> MapServices:
    config = config if config is not None else load_config()
    client = get_supabase_client(config)
    return MapServices(
        config=config,
        resolver=CoordinateResolver(session=session, config=config),
        planner=RoutePlanner(session=session, config=config),
        ip_locator=IpLocator(session=session, config=config),
        trips=TripLabelStore(client) if client is not None else None,
    )
