"""Environment-driven settings and Swiss Ephemeris initialization."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import swisseph as swe

from qimen.errors import InputValidationError


DEFAULT_EPHE_PATH = str(Path(__file__).parent.parent / "ephe")
DEFAULT_UTC_OFFSET = 8.0  # Beijing time; the calendar is reckoned on the 120°E meridian
DEFAULT_STYLE = "rotating"
DEFAULT_SUB_PERIOD_METHOD = "pair"

_swe_status: Optional[dict] = None


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def ephe_path() -> str:
    return os.getenv("QIMEN_EPHE_PATH", DEFAULT_EPHE_PATH)


def utc_offset() -> float:
    """Civil-time offset from UTC, in hours, that request times are read in."""
    raw = os.getenv("QIMEN_UTC_OFFSET")
    if raw is None or not raw.strip():
        return DEFAULT_UTC_OFFSET
    try:
        offset = float(raw)
    except ValueError:
        raise InputValidationError(f"QIMEN_UTC_OFFSET must be a number of hours, got {raw!r}") from None
    if not -12.0 <= offset <= 14.0:
        raise InputValidationError(f"QIMEN_UTC_OFFSET out of range: {offset}")
    return offset


def default_style() -> str:
    return os.getenv("QIMEN_DEFAULT_STYLE", DEFAULT_STYLE).strip()


def default_sub_period_method() -> str:
    return os.getenv("QIMEN_DEFAULT_SUB_PERIOD_METHOD", DEFAULT_SUB_PERIOD_METHOD).strip()


def _probe_ephemeris_backend(log: logging.Logger) -> dict[str, Any]:
    """Check whether Swiss Ephemeris files are used or the Moshier fallback is active."""
    status: dict[str, Any] = {
        "ephemeris_backend": "unknown",
        "ephemeris_verified": False,
        "ephemeris_retflag": None,
    }
    try:
        _, retflag = swe.calc_ut(swe.julday(2000, 1, 1, 12.0), swe.SUN, swe.FLG_SWIEPH)
    except swe.Error as exc:
        log.warning("Failed to probe ephemeris backend: %s", exc)
        status["probe_error"] = str(exc)
        return status

    status["ephemeris_retflag"] = int(retflag)
    if retflag & swe.FLG_MOSEPH:
        status["ephemeris_backend"] = "moshier"
    elif retflag & swe.FLG_SWIEPH:
        status["ephemeris_backend"] = "swieph"
        status["ephemeris_verified"] = True
    return status


def initialize_swe_context(logger: Optional[logging.Logger] = None, force: bool = False) -> dict[str, Any]:
    """Point Swiss Ephemeris at its data files once per process.

    Returns a status dictionary describing the active backend. The Moshier
    analytic ephemeris is accurate enough for solar terms and new moons, so
    missing data files only produce a warning unless QIMEN_REQUIRE_SWIEPH
    is set.
    """
    global _swe_status
    if _swe_status is not None and not force:
        return _swe_status

    log = logger or logging.getLogger(__name__)
    path = ephe_path()
    require_swieph = _is_truthy(os.getenv("QIMEN_REQUIRE_SWIEPH", "0"))

    swe.set_ephe_path(path)
    status: dict[str, Any] = {"ephemeris_path": path, "require_swieph": require_swieph}
    status.update(_probe_ephemeris_backend(log))

    if not status["ephemeris_verified"]:
        if require_swieph:
            raise RuntimeError(
                "Swiss Ephemeris data files are not available. "
                f"Configured path: {path}. Backend: {status['ephemeris_backend']}."
            )
        log.warning("Swiss Ephemeris files not found under %s; using %s backend",
                    path, status["ephemeris_backend"])

    _swe_status = status
    return status
