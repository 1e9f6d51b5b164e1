"""
supabase_integration.py

Read-only access to recorded trips in the fleet Supabase project, so the
trip map can be opened for a past or running trip.

Only the route labels matter here; the table is owned by the dashboard's
CRUD screens:

    trips (id, driver_name, status, start_date, end_date,
           origem_label, destino_label, ...)

Row level security decides which trips the key can see.
"""

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional

import pandas as pd
from supabase import Client, create_client

from fleet_route_map.config import MapServicesConfig

log = logging.getLogger("fleet_route_map.supabase_integration")

TRIP_COLUMNS = "id, driver_name, status, start_date, end_date, origem_label, destino_label"

STATUS_LABELS = {
    "planeada": "Planeada",
    "em_andamento": "Em andamento",
    "concluida": "Concluída",
    "cancelada": "Cancelada",
}


@dataclass(frozen=True)
class TripLabels:
    id: str
    driver_name: str
    status: str
    start_date: Optional[str]
    end_date: Optional[str]
    origem_label: str
    destino_label: str

    @property
    def has_route(self) -> bool:
        return bool(self.origem_label and self.destino_label)

    @property
    def title(self) -> str:
        origem = self.origem_label or "Origem"
        destino = self.destino_label or "Destino"
        return f"{origem} → {destino}"


def get_supabase_client(config: MapServicesConfig) -> Optional[Client]:
    """Client for the configured project; None when URL/key are unset or rejected."""
    if not (config.supabase_url and config.supabase_key):
        return None
    try:
        return create_client(config.supabase_url, config.supabase_key)
    except Exception as e:
        log.warning("Supabase unavailable, recorded trips disabled: %s", e)
        return None


class TripLabelStore:
    def __init__(self, client: Client):
        self._client = client

    def recent_trips(self, limit: int = 50, driver_id: Optional[str] = None) -> List[TripLabels]:
        """Newest trips first. Backend failures are logged and give an empty list."""
        try:
            query = self._client.table("trips").select(TRIP_COLUMNS)
            if driver_id:
                query = query.eq("driver_id", driver_id)
            response = query.order("start_date", desc=True).limit(limit).execute()
        except Exception as e:
            log.warning("Supabase trips fetch failed: %s", e)
            return []

        trips = []
        for row in response.data or []:
            trips.append(TripLabels(
                id=str(row.get("id", "")),
                driver_name=row.get("driver_name") or "",
                status=row.get("status") or "",
                start_date=row.get("start_date"),
                end_date=row.get("end_date"),
                origem_label=(row.get("origem_label") or "").strip(),
                destino_label=(row.get("destino_label") or "").strip(),
            ))
        return trips

    def trips_with_route(self, limit: int = 50, driver_id: Optional[str] = None) -> List[TripLabels]:
        return [t for t in self.recent_trips(limit, driver_id) if t.has_route]


def trips_dataframe(trips: List[TripLabels]) -> pd.DataFrame:
    """Table for the trip picker."""
    df = pd.DataFrame([asdict(t) for t in trips],
                      columns=["id", "driver_name", "status", "start_date", "end_date",
                               "origem_label", "destino_label"])
    df["status"] = df["status"].map(lambda s: STATUS_LABELS.get(s, s))
    return df.rename(columns={
        "driver_name": "Motorista",
        "status": "Estado",
        "start_date": "Início",
        "end_date": "Fim",
        "origem_label": "Origem",
        "destino_label": "Destino",
    })
