"""
Location-aware time helpers: time zone lookup and true solar time.

China keeps a single clock on the 120°E meridian. For places well away
from the zone meridian the clock differs from the Sun's own time, and the
hour pillar should follow the Sun.
"""

from datetime import datetime

from zoneinfo import ZoneInfo

import swisseph as swe
from timezonefinder import TimezoneFinder

_tf = TimezoneFinder()


def standard_utc_offset(latitude: float, longitude: float, local_time: datetime) -> float:
    """
    Standard (non-DST) UTC offset in hours of the zone containing a point.

    Daylight saving is stripped, so China's 1986-1991 summer time reads as
    +8, the meridian the calendar is reckoned on.

    Raises:
        ValueError: the coordinates fall outside every known time zone
    """
    tz_name = _tf.timezone_at(lat=latitude, lng=longitude)
    if tz_name is None:
        raise ValueError(f"Could not determine timezone for ({latitude}, {longitude})")

    aware = local_time.replace(tzinfo=ZoneInfo(tz_name))
    offset = aware.utcoffset().total_seconds()
    dst = aware.dst()
    if dst is not None:
        offset -= dst.total_seconds()
    return offset / 3600


def lmt_correction(longitude: float, standard_meridian: float = 120.0) -> float:
    """
    Local Mean Time correction in minutes (negative = subtract from clock time).

    Example:
        Nanning (108.37°E): (108.37 - 120.0) * 4 = -46.52 min
    """
    return (longitude - standard_meridian) * 4.0


def equation_of_time(jd_ut: float) -> float:
    """Apparent minus mean solar time, in minutes."""
    return swe.time_equ(jd_ut) * 1440.0


def true_solar_correction(longitude: float, utc_offset: float, jd_ut: float) -> float:
    """Minutes to add to clock time to get apparent solar time."""
    return lmt_correction(longitude, utc_offset * 15.0) + equation_of_time(jd_ut)
