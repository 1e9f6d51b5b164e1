"""
trip_map_page.py

"Mapa da viagem" page: planned driving route between two picked or
recorded locations.

What this page does
───────────────────
  • Cascading Província → Município → Bairro pickers for origin/destination
  • Recorded trips from Supabase (when configured) as a shortcut
  • Nominatim geocoding + OSRM route, drawn with folium
  • Distance / estimated time summary
"""

from typing import Optional, Tuple

import streamlit as st
from streamlit_folium import st_folium

from fleet_route_map.locations import municipality_names, neighbourhood_names, province_names
from fleet_route_map.models import GeoPoint, build_label
from fleet_route_map.osm_routing import format_distance, format_duration
from fleet_route_map.route_map import FoliumSurface, RouteMapRenderer
from fleet_route_map.services import MapServices
from fleet_route_map.supabase_integration import trips_dataframe
from fleet_route_map.trip_route import MSG_NO_LABELS, PlannedRoute, prepare_planned_route


# ══════════════════════════════════════════════════════════════════════
# SHARED WIDGETS
# ══════════════════════════════════════════════════════════════════════

def location_picker(title: str, key: str) -> Tuple[str, str, str]:
    """Three dependent selectboxes; returns (province, municipality, neighbourhood)."""
    st.markdown(f"**{title}**")
    c1, c2, c3 = st.columns(3)
    with c1:
        provincia = st.selectbox("Província", [""] + province_names(), key=f"{key}_prov")
    with c2:
        municipio = st.selectbox("Município", [""] + municipality_names(provincia),
                                 key=f"{key}_mun", disabled=not provincia)
    with c3:
        bairro = st.selectbox("Bairro", [""] + neighbourhood_names(provincia, municipio),
                              key=f"{key}_bairro", disabled=not municipio)
    return provincia, municipio, bairro


def planned_route_for(origem: str, destino: str, services: MapServices, key: str) -> PlannedRoute:
    """Planned route for the label pair, recomputed only when a label changes."""
    state_key = f"{key}_planned"
    cached = st.session_state.get(state_key)
    if cached is not None and cached[0] == (origem, destino):
        return cached[1]

    with st.spinner("A preparar o mapa da viagem..."):
        planned = prepare_planned_route(origem, destino, services.resolver, services.planner)
    st.session_state[state_key] = ((origem, destino), planned)
    return planned


def renderer_for(key: str, services: MapServices, labels: Tuple[str, str]) -> RouteMapRenderer:
    """
    Renderer kept across reruns. A new label pair disposes the old surface
    so the new route gets its own one-time auto-fit.
    """
    renderer_key, labels_key = f"{key}_renderer", f"{key}_labels"
    renderer = st.session_state.get(renderer_key)
    if renderer is None:
        renderer = services.new_renderer()
        st.session_state[renderer_key] = renderer
    if st.session_state.get(labels_key) != labels:
        renderer.dispose()
        st.session_state[labels_key] = labels
    return renderer


def show_surface(surface: FoliumSurface, key: str, height: int = 420) -> None:
    out = st_folium(surface.to_folium(), key=key, width=None, height=height,
                    returned_objects=["center", "zoom"])
    center = (out or {}).get("center")
    if center:
        surface.sync_view(GeoPoint(center["lat"], center["lng"]), (out or {}).get("zoom"))


# ══════════════════════════════════════════════════════════════════════
# TRIP ROUTE MAP
# ══════════════════════════════════════════════════════════════════════

def render_trip_route_map(origem: str, destino: str, services: MapServices, key: str = "trip_map") -> Optional[PlannedRoute]:
    if not origem or not destino:
        st.caption(MSG_NO_LABELS)
        return None

    planned = planned_route_for(origem, destino, services, key)
    if planned.error:
        st.error(planned.error)
        return planned

    renderer = renderer_for(key, services, (origem, destino))
    view = renderer.view(planned.points, [], start=planned.start, end=planned.end)
    if view.surface is None:
        st.info(view.error or view.placeholder)
        return planned

    show_surface(view.surface, key)
    st.caption("Este mapa utiliza dados abertos do OpenStreetMap e rota calculada pelo OSRM.")
    c1, c2 = st.columns(2)
    c1.metric("Distância", format_distance(planned.route.distance_km))
    c2.metric("Tempo estimado", format_duration(planned.route.duration_min))
    return planned


def render_trip_map_page(services: MapServices) -> None:
    """Entry point called by the dashboard."""
    st.title("Mapa da viagem")

    origem, destino = "", ""
    trips = services.trips.trips_with_route() if services.trips is not None else []
    if trips:
        with st.expander("Viagens registadas", expanded=False):
            st.dataframe(trips_dataframe(trips), use_container_width=True, hide_index=True)
        choice = st.selectbox("Abrir viagem registada", ["—"] + [t.title for t in trips], key="trip_pick")
        if choice != "—":
            trip = next(t for t in trips if t.title == choice)
            origem, destino = trip.origem_label, trip.destino_label

    if not origem:
        origem = build_label(*location_picker("Origem", "trip_origem"))
        destino = build_label(*location_picker("Destino", "trip_destino"))

    st.markdown("---")
    if origem and destino:
        st.markdown(f"**{origem}** → **{destino}**")
    render_trip_route_map(origem, destino, services)
