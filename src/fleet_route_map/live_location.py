"""
live_location.py

Live driver position: continuous GPS sampling with a one-shot IP fallback.

Phases of one activation
────────────────────────
  IDLE         – not enabled, no sensor subscription
  ACQUIRING    – enabled, waiting for the first GPS fix
  GPS_ACTIVE   – at least one GPS fix received
  IP_FALLBACK  – GPS failed; one IP-geolocation lookup issued
  DEACTIVATED  – disabled again / torn down; late results are dropped

The IP lookup runs at most once per activation, whatever the number of
GPS errors. GPS fixes and the IP result are not ordered: whichever is
applied last is the exposed position. Disabling and enabling again starts
a fresh activation (new cancel token, guard reset).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import requests

from fleet_route_map.config import MapServicesConfig
from fleet_route_map.models import SOURCE_GPS, SOURCE_IP, LiveSample, travelled_points
from fleet_route_map.sensors import POSITION_UNAVAILABLE, SensorError, SensorFix, WatchOptions

log = logging.getLogger("fleet_route_map.live_location")

LOCATION_ERROR = "Não foi possível obter a localização."

TRACKING_OPTIONS = WatchOptions(enable_high_accuracy=True, maximum_age_s=5.0, timeout_s=10.0)


class LocationUnavailable(Exception):
    """The IP-geolocation service answered without usable coordinates."""


class TrackerPhase(Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    GPS_ACTIVE = "gps_active"
    IP_FALLBACK = "ip_fallback"
    DEACTIVATED = "deactivated"


@dataclass(frozen=True)
class LiveLocationState:
    position: Optional[LiveSample] = None
    is_loading: bool = False
    error: Optional[str] = None


class CancelToken:
    """Set once when the activation that owns it ends."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# ══════════════════════════════════════════════════════════════════════
# IP GEOLOCATION
# ══════════════════════════════════════════════════════════════════════

class IpLocator:
    """Approximate position from the public IP (ipapi.co)."""

    def __init__(self, session: Optional[requests.Session] = None,
                 config: Optional[MapServicesConfig] = None):
        self._session = session if session is not None else requests
        self._cfg = config if config is not None else MapServicesConfig()

    def locate(self) -> LiveSample:
        """
        Raises:
            requests.RequestException: transport failure or HTTP error status.
            LocationUnavailable: payload without usable latitude/longitude.
        """
        r = self._session.get(
            self._cfg.ip_lookup_url,
            headers={"User-Agent": self._cfg.user_agent},
            timeout=self._cfg.request_timeout_s,
        )
        r.raise_for_status()
        try:
            data = r.json()
        except ValueError as e:
            raise LocationUnavailable(f"invalid IP lookup payload: {e}") from e

        if not isinstance(data, dict) or data.get("latitude") is None or data.get("longitude") is None:
            raise LocationUnavailable("IP lookup returned no coordinates")
        try:
            return LiveSample(lat=float(data["latitude"]), lng=float(data["longitude"]), source=SOURCE_IP)
        except (TypeError, ValueError) as e:
            raise LocationUnavailable(f"non-numeric IP lookup coordinates: {e}") from e


# ══════════════════════════════════════════════════════════════════════
# TRACKER
# ══════════════════════════════════════════════════════════════════════

class _Activation:
    def __init__(self):
        self.token = CancelToken()
        self.ip_requested = False
        self.watch_handle = None


class LiveLocationTracker:
    """
    Reactive live-position state with one activation flag.

    sensor:     object with watch_position/clear_watch, or None when the
                device has no position sensor (goes straight to IP fallback)
    ip_locator: object with locate() -> LiveSample
    executor:   runs the IP lookup off the caller's thread; anything with
                submit(fn, *args). Defaults to a private single worker.
    """

    def __init__(self, sensor, ip_locator, *, executor=None, options: WatchOptions = TRACKING_OPTIONS):
        self._sensor = sensor
        self._ip_locator = ip_locator
        self._options = options
        self._owns_executor = executor is None
        self._executor = executor if executor is not None else ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ip-lookup")

        self._lock = threading.RLock()
        self._state = LiveLocationState()
        self._phase = TrackerPhase.IDLE
        self._activation: Optional[_Activation] = None
        self._listeners: List[Callable[[LiveSample], None]] = []

    # ── public state ────────────────────────────────────────────────────

    @property
    def state(self) -> LiveLocationState:
        with self._lock:
            return self._state

    @property
    def phase(self) -> TrackerPhase:
        with self._lock:
            return self._phase

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._activation is not None

    def subscribe(self, callback: Callable[[LiveSample], None]) -> Callable[[], None]:
        """Call `callback` with every newly exposed sample. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    # ── activation ──────────────────────────────────────────────────────

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.activate()
        else:
            self.deactivate()

    def activate(self) -> None:
        with self._lock:
            if self._activation is not None:
                return
            activation = _Activation()
            self._activation = activation
            self._phase = TrackerPhase.ACQUIRING
            self._state = LiveLocationState(position=self._state.position, is_loading=True, error=None)

        token = activation.token
        if self._sensor is None:
            log.info("No position sensor available, using IP geolocation")
            self._on_gps_error(token, SensorError(POSITION_UNAVAILABLE, "no position sensor"))
            return

        handle = self._sensor.watch_position(
            lambda fix: self._on_gps_fix(token, fix),
            lambda err: self._on_gps_error(token, err),
            self._options,
        )
        with self._lock:
            stale = token.cancelled
            if not stale:
                activation.watch_handle = handle
        if stale:
            # deactivated from inside a synchronous callback
            self._sensor.clear_watch(handle)

    def deactivate(self) -> None:
        with self._lock:
            activation = self._activation
            if activation is None:
                return
            self._activation = None
            activation.token.cancel()
            handle, activation.watch_handle = activation.watch_handle, None
            self._phase = TrackerPhase.DEACTIVATED
            self._state = LiveLocationState(position=self._state.position, is_loading=False,
                                            error=self._state.error)
        if handle is not None and self._sensor is not None:
            self._sensor.clear_watch(handle)

    def close(self) -> None:
        """Teardown: stop sampling and release the private executor."""
        self.deactivate()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # ── callbacks ───────────────────────────────────────────────────────

    def _on_gps_fix(self, token: CancelToken, fix: SensorFix) -> None:
        sample = LiveSample(lat=fix.latitude, lng=fix.longitude, accuracy=fix.accuracy, source=SOURCE_GPS)
        self._commit(token, sample, TrackerPhase.GPS_ACTIVE)

    def _on_gps_error(self, token: CancelToken, err: SensorError) -> None:
        with self._lock:
            if token.cancelled:
                return
            activation = self._activation
            if activation.ip_requested:
                self._state = LiveLocationState(position=self._state.position, is_loading=False,
                                                error=self._state.error)
                return
            activation.ip_requested = True
            self._phase = TrackerPhase.IP_FALLBACK

        log.info("GPS unavailable (%s %s), falling back to IP geolocation", err.code, err.message)
        self._executor.submit(self._run_ip_lookup, token)

    def _run_ip_lookup(self, token: CancelToken) -> None:
        try:
            sample = self._ip_locator.locate()
        except (requests.RequestException, LocationUnavailable, ValueError) as e:
            log.warning("IP geolocation failed: %s", e)
            self._fail(token)
            return
        except Exception:
            log.exception("Unexpected error during IP geolocation")
            self._fail(token)
            return
        self._commit(token, sample, None)

    def _fail(self, token: CancelToken) -> None:
        with self._lock:
            if token.cancelled:
                return
            self._state = LiveLocationState(position=self._state.position, is_loading=False,
                                            error=LOCATION_ERROR)

    def _commit(self, token: CancelToken, sample: LiveSample, phase: Optional[TrackerPhase]) -> None:
        with self._lock:
            if token.cancelled:
                return
            self._state = LiveLocationState(position=sample, is_loading=False, error=self._state.error)
            if phase is not None:
                self._phase = phase
            listeners = list(self._listeners)
        for cb in listeners:
            cb(sample)


# ══════════════════════════════════════════════════════════════════════
# TRIP SESSION
# ══════════════════════════════════════════════════════════════════════

class TrackingSession:
    """
    Trajectory of the current trip: every exposed sample, in arrival order,
    while tracking is on. Kept in memory only and dropped on stop.
    """

    def __init__(self, tracker: LiveLocationTracker):
        self.tracker = tracker
        self._lock = threading.Lock()
        self._samples: List[LiveSample] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self.active:
            return
        with self._lock:
            self._samples = []
        self._unsubscribe = self.tracker.subscribe(self._append)
        self.tracker.activate()

    def stop(self) -> None:
        if not self.active:
            return
        self.tracker.deactivate()
        self._unsubscribe()
        self._unsubscribe = None
        with self._lock:
            self._samples = []

    def _append(self, sample: LiveSample) -> None:
        with self._lock:
            self._samples.append(sample)

    @property
    def samples(self) -> List[LiveSample]:
        with self._lock:
            return list(self._samples)

    @property
    def travelled_points(self) -> List[LiveSample]:
        return travelled_points(self.samples)

    @property
    def current_position(self) -> Optional[LiveSample]:
        points = self.travelled_points
        return points[-1] if points else None
