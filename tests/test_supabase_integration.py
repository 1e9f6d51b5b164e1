from types import SimpleNamespace

from fleet_route_map.config import MapServicesConfig
from fleet_route_map.services import build_services
from fleet_route_map.supabase_integration import (
    TRIP_COLUMNS,
    TripLabels,
    TripLabelStore,
    get_supabase_client,
    trips_dataframe,
)

ROWS = [
    {"id": 7, "driver_name": "Adelino", "status": "em_andamento", "start_date": "2026-10-18",
     "end_date": None, "origem_label": " Luanda · Viana · Zango 3 ", "destino_label": "Luanda · Belas · Benfica"},
    {"id": 6, "driver_name": "Joana", "status": "planeada", "start_date": "2026-10-17",
     "end_date": None, "origem_label": "Huíla · Lubango", "destino_label": None},
]


class FakeQuery:
    """Records the postgrest-style call chain."""

    def __init__(self, rows, fail=False):
        self.rows = rows
        self.fail = fail
        self.chain = []

    def table(self, name):
        self.chain.append(("table", name))
        return self

    def select(self, columns):
        self.chain.append(("select", columns))
        return self

    def eq(self, column, value):
        self.chain.append(("eq", column, value))
        return self

    def order(self, column, desc=False):
        self.chain.append(("order", column, desc))
        return self

    def limit(self, n):
        self.chain.append(("limit", n))
        return self

    def execute(self):
        if self.fail:
            raise RuntimeError("JWT expired")
        return SimpleNamespace(data=self.rows)


def test_recent_trips_query_and_mapping():
    client = FakeQuery(ROWS)
    trips = TripLabelStore(client).recent_trips(limit=10)

    assert client.chain == [
        ("table", "trips"),
        ("select", TRIP_COLUMNS),
        ("order", "start_date", True),
        ("limit", 10),
    ]
    assert trips[0] == TripLabels("7", "Adelino", "em_andamento", "2026-10-18", None,
                                  "Luanda · Viana · Zango 3", "Luanda · Belas · Benfica")
    assert trips[1].destino_label == ""
    assert trips[1].title == "Huíla · Lubango → Destino"


def test_driver_filter():
    client = FakeQuery(ROWS)
    TripLabelStore(client).recent_trips(driver_id="d-1")
    assert ("eq", "driver_id", "d-1") in client.chain


def test_only_trips_with_both_labels_are_mappable():
    trips = TripLabelStore(FakeQuery(ROWS)).trips_with_route()
    assert [t.id for t in trips] == ["7"]


def test_backend_failure_gives_empty_list():
    assert TripLabelStore(FakeQuery(ROWS, fail=True)).recent_trips() == []


def test_no_client_without_credentials():
    assert get_supabase_client(MapServicesConfig()) is None
    assert get_supabase_client(MapServicesConfig(supabase_url="https://x.supabase.co")) is None


def test_trips_dataframe_labels():
    trips = TripLabelStore(FakeQuery(ROWS)).recent_trips()
    df = trips_dataframe(trips)

    assert list(df.columns) == ["id", "Motorista", "Estado", "Início", "Fim", "Origem", "Destino"]
    assert df["Estado"].tolist() == ["Em andamento", "Planeada"]


def test_trips_dataframe_empty():
    df = trips_dataframe([])
    assert df.empty
    assert "Origem" in df.columns


def test_bad_supabase_url_disables_recorded_trips():
    config = MapServicesConfig(supabase_url="not-a-url", supabase_key="k")
    assert get_supabase_client(config) is None
    assert build_services(config).trips is None
