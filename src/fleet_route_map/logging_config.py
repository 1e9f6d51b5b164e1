import logging

from rich.logging import RichHandler

LOGGER_NAME = "fleet_route_map"


def configure(level: str = "INFO") -> None:
    """Route the package loggers through rich. Safe to call on every Streamlit rerun."""
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in log.handlers):
        log.addHandler(RichHandler(rich_tracebacks=True, show_time=False, show_path=False))
