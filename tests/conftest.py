import pytest
import requests

from fleet_route_map.models import GeoPoint


class FakeResponse:
    def __init__(self, payload=None, status_code=200, reason="OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} {self.reason}", response=self)


class FakeSession:
    """
    Stand-in for requests.Session. `handler(url, params)` returns a
    FakeResponse or raises; every call is recorded.
    """

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params or {}, "headers": headers or {}, "timeout": timeout})
        return self.handler(url, params or {})

    @property
    def queries(self):
        return [c["params"].get("q") for c in self.calls]


class ImmediateExecutor:
    def submit(self, fn, *args):
        fn(*args)


class DeferredExecutor:
    """Holds submitted work until run_all(), to simulate a slow request."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args):
        self.pending.append((fn, args))

    def run_all(self):
        pending, self.pending = self.pending, []
        for fn, args in pending:
            fn(*args)


class RecordingSurface:
    def __init__(self, center, zoom):
        self.center = center
        self.zoom = zoom
        self.layers = {}
        self.added = []
        self.fit_calls = []
        self.disposed = False
        self._next = 0

    def _add(self, kind, payload):
        self._next += 1
        self.layers[self._next] = (kind, payload)
        self.added.append((kind, payload))
        return self._next

    def add_polyline(self, points, style):
        return self._add("polyline", {"points": list(points), "style": style})

    def add_marker(self, point, tooltip="", color="blue"):
        return self._add("marker", {"point": point, "tooltip": tooltip})

    def remove_layer(self, layer):
        self.layers.pop(layer, None)

    def fit_bounds(self, bounds, padding):
        self.fit_calls.append((bounds, padding))

    def dispose(self):
        self.layers.clear()
        self.disposed = True

    def active(self, kind):
        return [payload for k, payload in self.layers.values() if k == kind]


class SurfaceFactory:
    def __init__(self):
        self.created = []

    def __call__(self, center, zoom):
        surface = RecordingSurface(center, zoom)
        self.created.append(surface)
        return surface


@pytest.fixture
def surface_factory():
    return SurfaceFactory()


@pytest.fixture
def luanda():
    return GeoPoint(-8.8390, 13.2894)


@pytest.fixture
def benfica():
    return GeoPoint(-8.9470, 13.1790)
