"""
fleet_route_map

Route and live-tracking maps for the fleet dashboard:
Nominatim geocoding, OSRM driving routes, GPS/IP live position and
folium rendering, wired into Streamlit pages.
"""

__version__ = "0.1.0"
