"""
models.py

Value types shared by the geocoder, the router, the live tracker and the
map renderer.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

LABEL_SEPARATOR = " · "

SOURCE_GPS = "gps"
SOURCE_IP = "ip"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def as_latlng(self) -> Tuple[float, float]:
        """(lat, lng) pair, the order folium/Leaflet expect."""
        return (self.lat, self.lng)


@dataclass(frozen=True)
class RouteResult:
    """Driving route between two resolved endpoints."""

    points: Tuple[GeoPoint, ...]
    distance_km: float
    duration_min: float

    @property
    def is_drawable(self) -> bool:
        # a single point cannot be drawn as a path
        return len(self.points) >= 2


@dataclass(frozen=True)
class LiveSample:
    """
    One live position sample.

    source is "gps" for on-device fixes and "ip" for the approximate
    IP-geolocation fallback; accuracy (metres) is only known for GPS.
    """

    lat: float
    lng: float
    source: str
    accuracy: Optional[float] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lng)


# ══════════════════════════════════════════════════════════════════════
# LOCATION LABELS
# ══════════════════════════════════════════════════════════════════════

def build_label(*segments: Optional[str]) -> str:
    """
    Join hierarchy segments (province, municipality, neighbourhood) into a
    location label, e.g. "Luanda · Viana · Zango 3". Empty segments are
    skipped; order is preserved.
    """
    return LABEL_SEPARATOR.join(s.strip() for s in segments if s and s.strip())


def split_label(label: str) -> List[str]:
    """Inverse of build_label, tolerant of odd spacing around the separator."""
    if not label:
        return []
    return [part.strip() for part in label.split("·") if part.strip()]


# ══════════════════════════════════════════════════════════════════════
# TRAJECTORY
# ══════════════════════════════════════════════════════════════════════

def travelled_points(samples: Sequence[LiveSample]) -> List[LiveSample]:
    """
    Samples used to draw the travelled trajectory.

    Only GPS samples are kept so the line does not jump between the coarse
    IP position and the first GPS fix. If no GPS sample arrived yet the full
    sequence is returned instead of an empty trajectory.
    """
    gps = [s for s in samples if s.source == SOURCE_GPS]
    return gps if gps else list(samples)


def as_geopoints(points: Iterable) -> List[GeoPoint]:
    """Normalise anything with .lat/.lng (GeoPoint, LiveSample) to GeoPoints."""
    return [GeoPoint(p.lat, p.lng) for p in points]
