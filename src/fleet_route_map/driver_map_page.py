"""
driver_map_page.py

"Viagem em curso" page for drivers: start a trip, follow the live position
and compare the travelled path against the planned OSRM route.

Position sources
────────────────
  • GPS receiver on a serial port (FLEET_MAP_GPS_PORT), NMEA 0183
  • Manual position reports (sidebar form), e.g. relayed by phone
  • No sensor: approximate position from the public IP only
"""

import streamlit as st

from fleet_route_map.live_location import LiveLocationTracker, TrackingSession
from fleet_route_map.models import SOURCE_GPS, build_label
from fleet_route_map.route_map import MAP_CAPTION
from fleet_route_map.sensors import POSITION_UNAVAILABLE, ManualPositionSensor, NmeaSerialSensor
from fleet_route_map.services import MapServices
from fleet_route_map.trip_map_page import location_picker, planned_route_for, renderer_for, show_surface

SENSOR_SERIAL = "Receptor GPS (porta série)"
SENSOR_MANUAL = "Posição manual"
SENSOR_NONE = "Sem sensor (localização por IP)"


def _sensor_for(choice: str, services: MapServices):
    if choice == SENSOR_SERIAL:
        return NmeaSerialSensor(services.config.gps_port, services.config.gps_baudrate)
    if choice == SENSOR_MANUAL:
        return ManualPositionSensor()
    return None


def _tracking_session(choice: str, services: MapServices) -> TrackingSession:
    """One tracker per sensor choice, kept in session state."""
    current = st.session_state.get("drv_session")
    if current is not None and st.session_state.get("drv_sensor_choice") == choice:
        return current
    if current is not None:
        current.stop()
        current.tracker.close()

    sensor = _sensor_for(choice, services)
    tracker = LiveLocationTracker(sensor, services.ip_locator)
    session = TrackingSession(tracker)
    st.session_state.drv_session = session
    st.session_state.drv_sensor = sensor
    st.session_state.drv_sensor_choice = choice
    return session


def _manual_position_form(sensor: ManualPositionSensor) -> None:
    with st.sidebar.form("drv_manual_fix"):
        st.subheader("Reportar posição")
        lat = st.number_input("Latitude", value=-8.8390, format="%.6f")
        lng = st.number_input("Longitude", value=13.2894, format="%.6f")
        accuracy = st.number_input("Precisão (m)", value=10.0, min_value=0.0)
        if st.form_submit_button("Enviar posição"):
            sensor.push_fix(lat, lng, accuracy)
    if st.sidebar.button("Sinal GPS perdido"):
        sensor.push_error(POSITION_UNAVAILABLE, "reported by driver")


def _render_live_map(session: TrackingSession, services: MapServices, origem: str, destino: str) -> None:
    state = session.tracker.state
    planned = planned_route_for(origem, destino, services, "drv_map") if origem and destino else None

    if state.is_loading:
        st.caption("A obter localização...")
    if state.error:
        st.warning(state.error)
    if state.position is not None:
        p = state.position
        fonte = "GPS" if p.source == SOURCE_GPS else "IP aproximado"
        st.caption(f"Última posição: lat {p.lat:.4f} · lng {p.lng:.4f} ({fonte})")

    renderer = renderer_for("drv_map", services, (origem, destino))
    view = renderer.view(
        planned.points if planned else (),
        session.travelled_points,
        session.current_position,
        error=planned.error if planned else None,
    )
    if view.surface is None:
        st.info(view.error or view.placeholder)
        return
    if view.error:
        st.error(view.error)
    show_surface(view.surface, "drv_map", height=360)
    st.caption(MAP_CAPTION)


def render_driver_map_page(services: MapServices) -> None:
    """Entry point called by the dashboard."""
    st.title("Viagem em curso")

    choices = [SENSOR_MANUAL, SENSOR_NONE]
    if services.config.gps_port:
        choices.insert(0, SENSOR_SERIAL)
    choice = st.sidebar.radio("Fonte de localização", choices, key="drv_sensor_radio")
    session = _tracking_session(choice, services)
    if isinstance(st.session_state.drv_sensor, ManualPositionSensor):
        _manual_position_form(st.session_state.drv_sensor)

    if not session.active:
        origem = build_label(*location_picker("Origem", "drv_origem"))
        destino = build_label(*location_picker("Destino", "drv_destino"))
        if st.button("Iniciar viagem", type="primary", disabled=not (origem and destino)):
            st.session_state.drv_labels = (origem, destino)
            session.start()
            st.rerun()
        return

    origem, destino = st.session_state.get("drv_labels", ("", ""))
    st.markdown(f"**{origem}** → **{destino}**")
    if st.button("Concluir viagem"):
        session.stop()
        renderer = st.session_state.pop("drv_map_renderer", None)
        if renderer is not None:
            renderer.dispose()
        st.session_state.pop("drv_map_labels", None)
        st.rerun()

    @st.fragment(run_every="5s")
    def live_panel():
        _render_live_map(session, services, origem, destino)

    live_panel()
