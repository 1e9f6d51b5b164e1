"""
route_map.py

Planned route + travelled trajectory on one map.

Layers
──────
  planned    – OSRM route between origin and destination, dashed blue
  travelled  – live trajectory of the driver, solid green, drawn on top
  current    – marker at the latest position
  start/end  – optional endpoint markers (trip overview map)

The renderer owns a map surface created lazily the first time a centre is
known. Each update removes the previous route layers and redraws from the
current inputs, so updates can arrive in any order. The viewport is fitted
to the drawable points only once per surface; afterwards the user is free
to pan and zoom while the trip is in progress.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import folium

from fleet_route_map.config import OSM_ATTRIBUTION, OSM_TILES
from fleet_route_map.models import SOURCE_IP, GeoPoint, as_geopoints

log = logging.getLogger("fleet_route_map.route_map")

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]

PLANNED_STYLE = {"color": "#38bdf8", "weight": 3.5, "opacity": 0.9, "dash_array": "4 4"}
TRAVELLED_STYLE = {"color": "#22c55e", "weight": 4, "opacity": 0.95}

WAITING_MESSAGE = "Aguardando dados de localização para iniciar o mapa."
MAP_CAPTION = ("Rota planeada (azul) calculada com OSRM e trajecto percorrido (verde) baseado na "
               "localização em tempo real do motorista, sobre mapa aberto do OpenStreetMap.")


class MapSurface(Protocol):
    def add_polyline(self, points: Sequence[GeoPoint], style: Dict) -> object: ...

    def add_marker(self, point: GeoPoint, tooltip: str = "", color: str = "blue") -> object: ...

    def remove_layer(self, layer: object) -> None: ...

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None: ...

    def dispose(self) -> None: ...


def compute_bounds(points: Sequence[GeoPoint]) -> Optional[Bounds]:
    """((south, west), (north, east)) of the points, or None for an empty list."""
    if not points:
        return None
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return (min(lats), min(lngs)), (max(lats), max(lngs))


def center_for(planned: Sequence, travelled: Sequence, static_points: Sequence = ()) -> Optional[GeoPoint]:
    """Latest travelled point, else first planned point, else first static point."""
    if travelled:
        last = travelled[-1]
        return GeoPoint(last.lat, last.lng)
    if planned:
        return GeoPoint(planned[0].lat, planned[0].lng)
    for p in static_points:
        if p is not None:
            return GeoPoint(p.lat, p.lng)
    return None


# ══════════════════════════════════════════════════════════════════════
# FOLIUM SURFACE
# ══════════════════════════════════════════════════════════════════════

class FoliumSurface:
    """
    Map surface backed by folium.

    Layers are kept as specs and a fresh folium.Map is built by to_folium(),
    so Streamlit reruns never stack stale layers on an old map object.
    """

    def __init__(self, center: GeoPoint, zoom: int = 13,
                 tiles_url: str = OSM_TILES, attribution: str = OSM_ATTRIBUTION):
        self.center = center
        self.zoom = zoom
        self.tiles_url = tiles_url
        self.attribution = attribution
        self.bounds: Optional[Bounds] = None
        self.padding: Tuple[int, int] = (40, 40)
        self.disposed = False
        self._ids = itertools.count(1)
        self._layers: Dict[int, Tuple[str, dict]] = {}

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    def add_polyline(self, points: Sequence[GeoPoint], style: Dict) -> int:
        layer_id = next(self._ids)
        self._layers[layer_id] = ("polyline", {"locations": [p.as_latlng() for p in points], **style})
        return layer_id

    def add_marker(self, point: GeoPoint, tooltip: str = "", color: str = "blue") -> int:
        layer_id = next(self._ids)
        self._layers[layer_id] = ("marker", {"location": point.as_latlng(), "tooltip": tooltip, "color": color})
        return layer_id

    def remove_layer(self, layer: int) -> None:
        self._layers.pop(layer, None)

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None:
        self.bounds = bounds
        self.padding = padding

    def sync_view(self, center: Optional[GeoPoint], zoom: Optional[int]) -> None:
        """Record the view the user navigated to (as reported by st_folium)."""
        if center is None or zoom is None:
            return
        if center == self.center and zoom == self.zoom:
            return
        self.center, self.zoom = center, int(zoom)
        self.bounds = None

    def dispose(self) -> None:
        self._layers.clear()
        self.bounds = None
        self.disposed = True

    def to_folium(self) -> folium.Map:
        m = folium.Map(location=list(self.center.as_latlng()), zoom_start=self.zoom,
                       tiles=None, control_scale=True)
        folium.TileLayer(tiles=self.tiles_url, attr=self.attribution, name="OpenStreetMap").add_to(m)

        for kind, spec in self._layers.values():
            if kind == "polyline":
                folium.PolyLine(**spec).add_to(m)
            else:
                folium.Marker(
                    spec["location"],
                    tooltip=spec["tooltip"] or None,
                    icon=folium.Icon(color=spec["color"]),
                ).add_to(m)

        if self.bounds is not None:
            m.fit_bounds([list(self.bounds[0]), list(self.bounds[1])], padding=self.padding)
        return m


def folium_surface_factory(tiles_url: str = OSM_TILES, attribution: str = OSM_ATTRIBUTION):
    def factory(center: GeoPoint, zoom: int) -> FoliumSurface:
        return FoliumSurface(center, zoom, tiles_url=tiles_url, attribution=attribution)
    return factory


# ══════════════════════════════════════════════════════════════════════
# RENDERER
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MapView:
    """What the page should show: a map surface, a placeholder, or an error."""

    surface: Optional[object] = None
    placeholder: Optional[str] = None
    error: Optional[str] = None


class RouteMapRenderer:
    def __init__(self, surface_factory: Callable[[GeoPoint, int], MapSurface], *,
                 zoom: int = 13, padding: Tuple[int, int] = (40, 40)):
        self._factory = surface_factory
        self.zoom = zoom
        self.padding = padding
        self.surface: Optional[MapSurface] = None
        self.has_fitted_bounds = False
        self._planned_layer = None
        self._travelled_layer = None
        self._marker_layers: List[object] = []

    @property
    def is_initialized(self) -> bool:
        return self.surface is not None

    def ensure_initialized(self, center: Optional[GeoPoint]) -> bool:
        """Create the surface on first call with a centre. No-op once it exists."""
        if self.surface is not None:
            return True
        if center is None:
            return False
        self.surface = self._factory(center, self.zoom)
        log.debug("Map surface created at %s", center)
        return True

    def update(self, planned: Sequence, travelled: Sequence, current=None,
               start: Optional[GeoPoint] = None, end: Optional[GeoPoint] = None) -> None:
        surface = self.surface
        if surface is None:
            return

        if self._planned_layer is not None:
            surface.remove_layer(self._planned_layer)
            self._planned_layer = None
        if self._travelled_layer is not None:
            surface.remove_layer(self._travelled_layer)
            self._travelled_layer = None

        drawable: List[GeoPoint] = []

        if len(planned) >= 2:
            points = as_geopoints(planned)
            self._planned_layer = surface.add_polyline(points, PLANNED_STYLE)
            drawable.extend(points)

        if len(travelled) >= 2:
            points = as_geopoints(travelled)
            self._travelled_layer = surface.add_polyline(points, TRAVELLED_STYLE)
            drawable.extend(points)

        for layer in self._marker_layers:
            surface.remove_layer(layer)
        self._marker_layers = []

        for point, tooltip, color in ((start, "Origem", "green"), (end, "Destino", "red")):
            if point is not None:
                self._marker_layers.append(surface.add_marker(point, tooltip, color))
                drawable.append(GeoPoint(point.lat, point.lng))

        if current is not None:
            here = GeoPoint(current.lat, current.lng)
            self._marker_layers.append(surface.add_marker(here, _position_tooltip(current), "blue"))
            drawable.append(here)

        if not self.has_fitted_bounds and len(drawable) >= 2:
            surface.fit_bounds(compute_bounds(drawable), self.padding)
            self.has_fitted_bounds = True

    def view(self, planned: Sequence, travelled: Sequence, current=None,
             start: Optional[GeoPoint] = None, end: Optional[GeoPoint] = None,
             error: Optional[str] = None) -> MapView:
        """Initialise if possible, redraw, and say what to display."""
        center = center_for(planned, travelled, (current, start, end))
        if not self.ensure_initialized(center):
            if error:
                return MapView(error=error)
            return MapView(placeholder=WAITING_MESSAGE)

        self.update(planned, travelled, current, start=start, end=end)
        return MapView(surface=self.surface, error=error)

    def dispose(self) -> None:
        if self.surface is not None:
            self.surface.dispose()
        self.surface = None
        self._planned_layer = None
        self._travelled_layer = None
        self._marker_layers = []
        self.has_fitted_bounds = False


def _position_tooltip(current) -> str:
    if getattr(current, "source", None) == SOURCE_IP:
        return "Posição actual (IP aproximado)"
    return "Posição actual"
