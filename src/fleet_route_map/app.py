"""
app.py - Fleet route maps

Run:
    streamlit run src/fleet_route_map/app.py

Pages:
- Mapa da viagem:   planned OSRM route between two locations or a recorded trip
- Viagem em curso:  live driver position over the planned route

Configuration comes from the environment (see config.py); Supabase
credentials can also be given in .streamlit/secrets.toml.
"""

from dataclasses import replace

import streamlit as st

from fleet_route_map.config import load_config
from fleet_route_map.driver_map_page import render_driver_map_page
from fleet_route_map.logging_config import configure
from fleet_route_map.services import MapServices, build_services
from fleet_route_map.trip_map_page import render_trip_map_page

PAGES = {
    "Mapa da viagem": render_trip_map_page,
    "Viagem em curso": render_driver_map_page,
}


@st.cache_resource
def get_services() -> MapServices:
    """Services shared by every session of the app."""
    config = load_config()
    if not config.supabase_url:
        try:
            secrets = dict(st.secrets)
        except FileNotFoundError:
            secrets = {}
        if secrets.get("SUPABASE_URL"):
            config = replace(config, supabase_url=secrets["SUPABASE_URL"],
                             supabase_key=secrets.get("SUPABASE_KEY"))
    configure(config.log_level)
    return build_services(config)


def main() -> None:
    st.set_page_config(page_title="Frota · Mapas", page_icon="🚚", layout="wide")
    services = get_services()

    with st.sidebar:
        st.title("Frota")
        page = st.radio("Página", list(PAGES), key="page")
        st.caption("Mapas: © OpenStreetMap contributors · Rotas: OSRM")

    PAGES[page](services)


if __name__ == "__main__":
    main()
