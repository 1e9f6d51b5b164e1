"""
sensors.py

Position sensors the live tracker can watch.

A sensor offers a continuous subscription in the style of the browser
geolocation API:

    handle = sensor.watch_position(on_fix, on_error, options)
    ...
    sensor.clear_watch(handle)

on_fix receives a SensorFix, on_error a SensorError. Callbacks may be
invoked from a background thread.

    ManualPositionSensor  – fixes pushed by the host app (form input, tests)
    NmeaSerialSensor      – USB/UART GPS receiver speaking NMEA 0183
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import serial

log = logging.getLogger("fleet_route_map.sensors")

PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

# Typical GPS user equivalent range error, metres per unit of HDOP
UERE_M = 5.0


@dataclass(frozen=True)
class SensorFix:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: float = 0.0


@dataclass(frozen=True)
class SensorError:
    code: int
    message: str = ""


@dataclass(frozen=True)
class WatchOptions:
    enable_high_accuracy: bool = True
    maximum_age_s: float = 5.0
    timeout_s: float = 10.0


FixCallback = Callable[[SensorFix], None]
ErrorCallback = Callable[[SensorError], None]


# ══════════════════════════════════════════════════════════════════════
# MANUAL (PUSH) SENSOR
# ══════════════════════════════════════════════════════════════════════

class ManualPositionSensor:
    """
    Sensor fed by the host application.

    A watcher registered while a cached fix is younger than the watcher's
    maximum_age_s receives that fix straight away.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._watchers: Dict[int, Tuple[FixCallback, ErrorCallback, WatchOptions]] = {}
        self._last_fix: Optional[SensorFix] = None

    def watch_position(self, on_fix: FixCallback, on_error: ErrorCallback,
                       options: Optional[WatchOptions] = None) -> int:
        options = options or WatchOptions()
        with self._lock:
            handle = next(self._ids)
            self._watchers[handle] = (on_fix, on_error, options)
            cached = self._last_fix
        if cached is not None and self._clock() - cached.timestamp <= options.maximum_age_s:
            on_fix(cached)
        return handle

    def clear_watch(self, handle: int) -> None:
        with self._lock:
            self._watchers.pop(handle, None)

    @property
    def watcher_count(self) -> int:
        with self._lock:
            return len(self._watchers)

    def push_fix(self, latitude: float, longitude: float, accuracy: Optional[float] = None) -> SensorFix:
        fix = SensorFix(latitude, longitude, accuracy, timestamp=self._clock())
        with self._lock:
            self._last_fix = fix
            callbacks = [w[0] for w in self._watchers.values()]
        for cb in callbacks:
            cb(fix)
        return fix

    def push_error(self, code: int = POSITION_UNAVAILABLE, message: str = "") -> None:
        err = SensorError(code, message)
        with self._lock:
            callbacks = [w[1] for w in self._watchers.values()]
        for cb in callbacks:
            cb(err)


# ══════════════════════════════════════════════════════════════════════
# NMEA PARSING
# ══════════════════════════════════════════════════════════════════════

def nmea_to_decimal(coord: str, direction: str) -> Optional[float]:
    """ddmm.mmmm / dddmm.mmmm + hemisphere -> signed decimal degrees."""
    if not coord or not direction or "." not in coord:
        return None
    before_dot = coord.split(".", 1)[0]
    if len(before_dot) < 3:
        return None
    deg_len = len(before_dot) - 2
    try:
        deg = int(coord[:deg_len])
        minutes = float(coord[deg_len:])
    except ValueError:
        return None
    decimal = deg + minutes / 60.0
    return -decimal if direction in ("S", "W") else decimal


def parse_nmea(line: str) -> Optional[SensorFix]:
    """
    Position from a $--RMC or $--GGA sentence, or None when the sentence
    carries no valid fix (RMC status V, GGA quality 0, empty fields).
    GGA gives an accuracy estimate from HDOP; RMC does not.
    """
    line = line.strip()
    if not line.startswith("$"):
        return None
    if "*" in line:
        line = line.split("*", 1)[0]
    parts = line.split(",")
    kind = parts[0][3:]

    try:
        if kind == "RMC" and len(parts) >= 7:
            if parts[2].upper() != "A":
                return None
            lat = nmea_to_decimal(parts[3], parts[4])
            lon = nmea_to_decimal(parts[5], parts[6])
            accuracy = None
        elif kind == "GGA" and len(parts) >= 9:
            if not parts[6] or int(parts[6]) == 0:
                return None
            lat = nmea_to_decimal(parts[2], parts[3])
            lon = nmea_to_decimal(parts[4], parts[5])
            accuracy = float(parts[8]) * UERE_M if parts[8] else None
        else:
            return None
    except ValueError:
        return None

    if lat is None or lon is None:
        return None
    return SensorFix(lat, lon, accuracy)


# ══════════════════════════════════════════════════════════════════════
# SERIAL GPS RECEIVER
# ══════════════════════════════════════════════════════════════════════

class NmeaSerialSensor:
    """GPS receiver on a serial port. One reader thread per watch."""

    def __init__(self, port: str, baudrate: int = 9600, clock: Callable[[], float] = time.time):
        self.port = port
        self.baudrate = baudrate
        self._clock = clock
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._readers: Dict[int, Tuple[threading.Thread, threading.Event]] = {}

    def watch_position(self, on_fix: FixCallback, on_error: ErrorCallback,
                       options: Optional[WatchOptions] = None) -> int:
        options = options or WatchOptions()
        stop = threading.Event()
        handle = next(self._ids)
        reader = threading.Thread(
            target=self._read_loop,
            args=(on_fix, on_error, options, stop),
            name=f"nmea-{self.port}-{handle}",
            daemon=True,
        )
        with self._lock:
            self._readers[handle] = (reader, stop)
        reader.start()
        return handle

    def clear_watch(self, handle: int) -> None:
        with self._lock:
            entry = self._readers.pop(handle, None)
        if entry is None:
            return
        reader, stop = entry
        stop.set()
        if reader is not threading.current_thread():
            reader.join(timeout=2.0)

    def _read_loop(self, on_fix: FixCallback, on_error: ErrorCallback,
                   options: WatchOptions, stop: threading.Event) -> None:
        try:
            port = serial.Serial(self.port, self.baudrate, timeout=1)
        except serial.SerialException as e:
            log.warning("Cannot open GPS receiver on %s: %s", self.port, e)
            on_error(SensorError(POSITION_UNAVAILABLE, str(e)))
            return

        with port:
            last_fix_at = self._clock()
            while not stop.is_set():
                try:
                    raw = port.readline()
                except serial.SerialException as e:
                    log.warning("GPS receiver on %s failed: %s", self.port, e)
                    on_error(SensorError(POSITION_UNAVAILABLE, str(e)))
                    return

                fix = parse_nmea(raw.decode("ascii", errors="ignore")) if raw else None
                now = self._clock()
                if fix is not None:
                    last_fix_at = now
                    if not stop.is_set():
                        on_fix(SensorFix(fix.latitude, fix.longitude, fix.accuracy, timestamp=now))
                elif now - last_fix_at > options.timeout_s:
                    last_fix_at = now
                    if not stop.is_set():
                        on_error(SensorError(TIMEOUT, f"no fix within {options.timeout_s:.0f}s"))
