"""
Calendar collaborator built on the Swiss Ephemeris.

Resolves a civil moment into everything the chart engine needs:
- the four sexagenary pillars
- the most recent of the 24 solar terms (节气) at or before the moment
- the Chinese lunar date, and lunar → solar conversion for lunar input

Times are civil time at a fixed UTC offset (Beijing time unless
QIMEN_UTC_OFFSET or the request's coordinates say otherwise). Solar terms
are exact Sun longitude crossings; lunar months run from the local day of
one new moon to the next.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Optional, Protocol

import swisseph as swe

from qimen import config, location
from qimen.sexagenary import (
    Pillar,
    day_pillar,
    hour_pillar,
    month_pillar,
    year_pillar,
)

logger = logging.getLogger(__name__)

_FLAGS = swe.FLG_SWIEPH | swe.FLG_SPEED
SYNODIC_MONTH = 29.530588853
_JDN_ORDINAL_OFFSET = 1721425  # date(1, 1, 1).toordinal() == 1 is JDN 1721426


# ============================================================
# SOLAR TERM COMPUTATION
# ============================================================
#
# Each of the 24 terms is the Sun reaching a multiple of 15° of ecliptic
# longitude. Terms at multiples of 30° are the principal terms (中气) that
# decide leap months; the others are the jie (节) that open pillar months.

# (longitude, chinese, pinyin)
SOLAR_TERMS = (
    (285, "小寒", "Xiao Han"),
    (300, "大寒", "Da Han"),
    (315, "立春", "Li Chun"),
    (330, "雨水", "Yu Shui"),
    (345, "惊蛰", "Jing Zhe"),
    (0, "春分", "Chun Fen"),
    (15, "清明", "Qing Ming"),
    (30, "谷雨", "Gu Yu"),
    (45, "立夏", "Li Xia"),
    (60, "小满", "Xiao Man"),
    (75, "芒种", "Mang Zhong"),
    (90, "夏至", "Xia Zhi"),
    (105, "小暑", "Xiao Shu"),
    (120, "大暑", "Da Shu"),
    (135, "立秋", "Li Qiu"),
    (150, "处暑", "Chu Shu"),
    (165, "白露", "Bai Lu"),
    (180, "秋分", "Qiu Fen"),
    (195, "寒露", "Han Lu"),
    (210, "霜降", "Shuang Jiang"),
    (225, "立冬", "Li Dong"),
    (240, "小雪", "Xiao Xue"),
    (255, "大雪", "Da Xue"),
    (270, "冬至", "Dong Zhi"),
)

TERM_BY_LONGITUDE = {lon: name for lon, name, _ in SOLAR_TERMS}


def sun_longitude(jd_ut: float) -> float:
    result, _flag = swe.calc_ut(jd_ut, swe.SUN, _FLAGS)
    return result[0]


def previous_solar_term(jd_ut: float) -> tuple:
    """
    The most recent solar term at or before ``jd_ut``.

    Returns:
        (term name, Julian Day of the crossing)
    """
    term_lon = (math.floor(sun_longitude(jd_ut) / 15.0) * 15) % 360
    # The Sun never takes more than ~16 days to cover 15°.
    jd_cross = swe.solcross_ut(float(term_lon), jd_ut - 17.0, 0)
    if jd_cross > jd_ut:
        # Rounding right at the boundary; the moment itself is the crossing.
        jd_cross = jd_ut
    return TERM_BY_LONGITUDE[term_lon], jd_cross


def li_chun(year: int) -> float:
    """Julian Day of Li Chun (Sun at 315°) in the given Gregorian year."""
    return swe.solcross_ut(315.0, swe.julday(year, 1, 1, 0), 0)


def sun_longitude_to_month_branch_index(sun_lon: float) -> int:
    """
    Pillar month branch from the Sun's longitude.

    Li Chun (315°) opens the Tiger month (寅, index 2); each month spans 30°.
    """
    adjusted = (sun_lon - 315) % 360
    return (int(adjusted // 30) + 2) % 12


# ============================================================
# TIME CONVERSION
# ============================================================

def local_to_jd(day: date, hour: int, minute: int, utc_offset: float) -> float:
    """Julian Day (UT) for a civil time at ``utc_offset`` hours from UTC."""
    return swe.julday(day.year, day.month, day.day, hour + minute / 60.0 - utc_offset)


def jd_to_local_date(jd_ut: float, utc_offset: float) -> date:
    return _day_number_to_date(_local_day_number(jd_ut, utc_offset))


def _local_day_number(jd_ut: float, utc_offset: float) -> int:
    """Julian Day Number of the civil date containing ``jd_ut``."""
    return math.floor(jd_ut + 0.5 + utc_offset / 24.0)


def _day_number_to_date(day_number: int) -> date:
    return date.fromordinal(day_number - _JDN_ORDINAL_OFFSET)


def _date_to_day_number(day: date) -> int:
    return day.toordinal() + _JDN_ORDINAL_OFFSET


def _day_start_jd(day_number: int, utc_offset: float) -> float:
    """UT Julian Day of local midnight opening ``day_number``."""
    return day_number - 0.5 - utc_offset / 24.0


# ============================================================
# LUNAR CALENDAR
# ============================================================

MONTH_NAMES = ("正", "二", "三", "四", "五", "六", "七", "八", "九", "十", "冬", "腊")
DAY_NAMES = (
    "初一", "初二", "初三", "初四", "初五", "初六", "初七", "初八", "初九", "初十",
    "十一", "十二", "十三", "十四", "十五", "十六", "十七", "十八", "十九", "二十",
    "廿一", "廿二", "廿三", "廿四", "廿五", "廿六", "廿七", "廿八", "廿九", "三十",
)


@dataclass(frozen=True)
class LunarDate:
    year: int
    month: int  # 1-12
    day: int  # 1-30
    is_leap: bool = False

    def __str__(self):
        leap = "闰" if self.is_leap else ""
        return f"{self.year}年{leap}{MONTH_NAMES[self.month - 1]}月{DAY_NAMES[self.day - 1]}"

    def to_dict(self):
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "is_leap": self.is_leap,
            "label": str(self),
        }


def _elongation(jd_ut: float) -> tuple:
    """Moon minus Sun longitude in degrees [0, 360), and its rate in °/day."""
    sun, _ = swe.calc_ut(jd_ut, swe.SUN, _FLAGS)
    moon, _ = swe.calc_ut(jd_ut, swe.MOON, _FLAGS)
    return (moon[0] - sun[0]) % 360.0, moon[3] - sun[3]


def _refine_new_moon(jd_guess: float) -> float:
    """Newton iteration onto the new moon nearest ``jd_guess``."""
    jd = jd_guess
    for _ in range(20):
        elongation, rate = _elongation(jd)
        correction = (((elongation + 180.0) % 360.0) - 180.0) / rate
        jd -= correction
        if abs(correction) < 1e-6:
            break
    return jd


def new_moon_on_or_before(jd_ut: float) -> float:
    elongation, _ = _elongation(jd_ut)
    new_moon = _refine_new_moon(jd_ut - elongation / 12.19)
    if new_moon > jd_ut:
        new_moon = _refine_new_moon(new_moon - SYNODIC_MONTH)
    return new_moon


def _winter_solstice(year: int) -> float:
    return swe.solcross_ut(270.0, swe.julday(year, 11, 1, 0), 0)


@lru_cache(maxsize=64)
def lunar_months(base_year: int, utc_offset: float) -> tuple:
    """
    Lunar months from the one holding the winter solstice of ``base_year``
    up to, not including, the one holding the next winter solstice.

    Returns:
        Tuple of (month number, is_leap, first day number, next month's
        first day number), day numbers being local Julian Day Numbers.
    """
    def month_start(day_number: int) -> tuple:
        new_moon = new_moon_on_or_before(_day_start_jd(day_number + 1, utc_offset) - 1e-7)
        return new_moon, _local_day_number(new_moon, utc_offset)

    first_nm, first_day = month_start(_local_day_number(_winter_solstice(base_year), utc_offset))
    _, stop_day = month_start(_local_day_number(_winter_solstice(base_year + 1), utc_offset))

    starts = [first_day]
    new_moon = first_nm
    while True:
        new_moon = _refine_new_moon(new_moon + SYNODIC_MONTH)
        start = _local_day_number(new_moon, utc_offset)
        starts.append(start)
        if start >= stop_day:
            break

    spans = list(zip(starts[:-1], starts[1:]))
    leap_index = None
    if len(spans) == 13:
        for k, (start, end) in enumerate(spans[1:], start=1):
            before = math.floor(sun_longitude(_day_start_jd(start, utc_offset)) / 30.0)
            after = math.floor(sun_longitude(_day_start_jd(end, utc_offset)) / 30.0)
            if before == after:  # no principal term inside this month
                leap_index = k
                break

    months = []
    number = 11
    for k, (start, end) in enumerate(spans):
        is_leap = k == leap_index
        if k > 0 and not is_leap:
            number = number % 12 + 1
        months.append((number, is_leap, start, end))
    return tuple(months)


def solar_to_lunar(day: date, utc_offset: float) -> LunarDate:
    day_number = _date_to_day_number(day)
    base_year = day.year
    months = lunar_months(base_year, utc_offset)
    if day_number < months[0][2]:
        base_year -= 1
        months = lunar_months(base_year, utc_offset)
    for number, is_leap, start, end in months:
        if start <= day_number < end:
            year = base_year if number >= 11 else base_year + 1
            return LunarDate(year, number, day_number - start + 1, is_leap)
    raise ValueError(f"Could not place {day.isoformat()} in a lunar month")


def lunar_to_solar(year: int, month: int, day: int, is_leap: bool, utc_offset: float) -> date:
    """
    Convert a lunar date to the Gregorian calendar.

    Raises ValueError when the lunar year has no such (leap) month or the
    month is shorter than ``day``.
    """
    base_year = year if month >= 11 else year - 1
    for number, leap, start, end in lunar_months(base_year, utc_offset):
        if number == month and leap == is_leap:
            if not 1 <= day <= end - start:
                raise ValueError(
                    f"Lunar {'leap ' if is_leap else ''}month {month} of {year} has {end - start} days, got day {day}"
                )
            return _day_number_to_date(start + day - 1)
    raise ValueError(f"Lunar year {year} has no {'leap ' if is_leap else ''}month {month}")


# ============================================================
# CALENDAR PROVIDER
# ============================================================

@dataclass(frozen=True)
class CalendarInfo:
    """Everything the engine reads from the calendar for one moment."""
    solar_date: date
    hour: int
    minute: int
    lunar: Optional[LunarDate]
    year_pillar: Pillar
    month_pillar: Pillar
    day_pillar: Pillar
    hour_pillar: Pillar
    solar_term: str
    solar_term_date: date
    utc_offset: float = 8.0
    solar_time_correction: float = 0.0  # minutes added to clock time for the day/hour pillars

    def to_dict(self):
        return {
            "solar_date": self.solar_date.isoformat(),
            "time": f"{self.hour:02d}:{self.minute:02d}",
            "utc_offset": self.utc_offset,
            "solar_time_correction_minutes": round(self.solar_time_correction, 2),
            "lunar": self.lunar.to_dict() if self.lunar else None,
            "pillars": {
                "year": self.year_pillar.to_dict(),
                "month": self.month_pillar.to_dict(),
                "day": self.day_pillar.to_dict(),
                "hour": self.hour_pillar.to_dict(),
            },
            "solar_term": self.solar_term,
            "solar_term_date": self.solar_term_date.isoformat(),
        }


class CalendarProvider(Protocol):
    def resolve(self, request) -> CalendarInfo:
        ...


class SwissEphemerisCalendar:
    """
    Default calendar provider.

    The year pillar turns at the exact Li Chun crossing and the month branch
    follows the Sun's longitude. The day pillar follows the civil date; the
    23:00 hour already belongs to the next day's 子 hour, so its stem is
    taken from the following day while the day pillar stays put.

    When the request carries a longitude, the day and hour pillars are read
    from true solar time instead of the clock. A latitude as well selects
    the standard offset of the zone the point lies in.
    """

    def __init__(self, utc_offset: Optional[float] = None):
        config.initialize_swe_context()
        self.utc_offset = config.utc_offset() if utc_offset is None else utc_offset

    def resolve(self, request) -> CalendarInfo:
        minute = request.minute or 0
        longitude = getattr(request, "longitude", None)
        latitude = getattr(request, "latitude", None)

        lunar = None
        if request.is_lunar:
            lunar = LunarDate(request.year, request.month, request.day, request.leap_month)
            solar = lunar_to_solar(request.year, request.month, request.day,
                                   request.leap_month, self.utc_offset)
        else:
            solar = date(request.year, request.month, request.day)
        clock = datetime(solar.year, solar.month, solar.day, request.hour, minute)

        offset = self.utc_offset
        if longitude is not None and latitude is not None:
            offset = location.standard_utc_offset(latitude, longitude, clock)
        jd = local_to_jd(solar, request.hour, minute, offset)

        correction = 0.0
        if longitude is not None:
            correction = location.true_solar_correction(longitude, offset, jd)
        local = clock + timedelta(minutes=correction)

        if lunar is None:
            lunar = solar_to_lunar(local.date(), offset)

        effective_year = solar.year if jd >= li_chun(solar.year) else solar.year - 1
        yp = year_pillar(effective_year)
        mp = month_pillar(yp.stem.index, sun_longitude_to_month_branch_index(sun_longitude(jd)))
        dp = day_pillar(local.date())
        zi_day = dp if local.hour != 23 else day_pillar(local.date() + timedelta(days=1))
        hp = hour_pillar(zi_day.stem.index, local.hour)

        term, term_jd = previous_solar_term(jd)
        info = CalendarInfo(
            solar_date=local.date(),
            hour=local.hour,
            minute=local.minute,
            lunar=lunar,
            year_pillar=yp,
            month_pillar=mp,
            day_pillar=dp,
            hour_pillar=hp,
            solar_term=term,
            solar_term_date=jd_to_local_date(term_jd, offset),
            utc_offset=offset,
            solar_time_correction=correction,
        )
        logger.debug("Resolved %s %02d:%02d (UTC%+g, %+.1f min) → %s %s %s %s, term %s (%s)",
                     solar.isoformat(), request.hour, minute, offset, correction,
                     yp, mp, dp, hp, term, info.solar_term_date.isoformat())
        return info
