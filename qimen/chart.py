"""
Qimen Dunjia chart engine.

compute_chart() validates a request, asks the calendar for pillars and the
solar term, then builds the chart leaf-first:

    period → earth plate → leader/void → heaven plate
           → stars/gates/deities → grid → formations

Every call is independent; nothing is cached between charts except the
calendar's own lunar month tables.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional, Union

from qimen import config
from qimen.astro_calendar import CalendarInfo, CalendarProvider, SwissEphemerisCalendar
from qimen.errors import InputValidationError
from qimen.formations import recognize_formations
from qimen.grid import Grid, assemble_grid
from qimen.leader import LeaderInfo, resolve_leader
from qimen.periods import ChartGranularity, Period, SubPeriodMethod, resolve_period
from qimen.plates import ChartStyle, Layout, earth_layout, heaven_layout, ring_for
from qimen.sexagenary import disguised_stem
from qimen.shensha import find_shensha, shensha_by_region
from qimen.spirits import ChiefInfo, lay_spirits

logger = logging.getLogger(__name__)


# ============================================================
# REQUEST
# ============================================================

@dataclass(frozen=True)
class ChartRequest:
    year: int
    month: int
    day: int
    hour: int
    minute: Optional[int] = None
    is_lunar: bool = False
    leap_month: bool = False  # only read when is_lunar is set
    granularity: Union[ChartGranularity, str] = ChartGranularity.HOUR
    style: Union[ChartStyle, str, None] = None  # None → QIMEN_DEFAULT_STYLE
    sub_period_method: Union[SubPeriodMethod, str, None] = None  # None → QIMEN_DEFAULT_SUB_PERIOD_METHOD
    latitude: Optional[float] = None
    longitude: Optional[float] = None  # enables true solar time for day/hour pillars


def _check_coordinate(name: str, value, limit: float) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputValidationError(f"{name} must be a number, got {value!r}")
    if not -limit <= value <= limit:
        raise InputValidationError(f"{name} must be between {-limit} and {limit}, got {value}")


def _check_int(name: str, value, low: int, high: int) -> None:
    # bool is an int subclass; True must not pass as hour 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise InputValidationError(f"{name} must be between {low} and {high}, got {value}")


def _check_bool(name: str, value) -> None:
    if not isinstance(value, bool):
        raise InputValidationError(f"{name} must be a boolean, got {value!r}")


def _coerce_enum(name: str, value, enum_cls):
    """Accept an enum member or its exact string value, nothing else."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.value == value:
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise InputValidationError(f"{name} must be one of {allowed}; got {value!r}")


def validate_request(request: ChartRequest) -> ChartRequest:
    """
    Check every field and return a copy with enums resolved.

    Raises InputValidationError on the first bad field. Nothing is
    clamped or coerced beyond mapping enum string values to members.
    """
    _check_int("year", request.year, 1900, 2100)
    _check_int("month", request.month, 1, 12)
    _check_int("day", request.day, 1, 31)
    _check_int("hour", request.hour, 0, 23)
    if request.minute is not None:
        _check_int("minute", request.minute, 0, 59)
    _check_bool("is_lunar", request.is_lunar)
    _check_bool("leap_month", request.leap_month)
    _check_coordinate("latitude", request.latitude, 90.0)
    _check_coordinate("longitude", request.longitude, 180.0)
    if request.latitude is not None and request.longitude is None:
        raise InputValidationError("latitude given without longitude")

    style = config.default_style() if request.style is None else request.style
    method = config.default_sub_period_method() if request.sub_period_method is None else request.sub_period_method
    return dataclasses.replace(
        request,
        granularity=_coerce_enum("granularity", request.granularity, ChartGranularity),
        style=_coerce_enum("style", style, ChartStyle),
        sub_period_method=_coerce_enum("sub_period_method", method, SubPeriodMethod),
    )


# ============================================================
# RESULT
# ============================================================

@dataclass(frozen=True)
class ChartResult:
    request: ChartRequest
    calendar: CalendarInfo
    period: Period
    leader: LeaderInfo
    chief: ChiefInfo
    earth: Layout
    heaven: Layout
    grid: Grid
    formations: tuple
    shensha: tuple
    day_stem_region: int  # heaven region of the day stem
    hour_stem_region: int  # heaven region of the hour stem

    @property
    def void_regions(self) -> tuple:
        return tuple(cell.region for cell in self.grid if cell.is_void)

    @property
    def horse_region(self) -> int:
        return next(cell.region for cell in self.grid if cell.is_horse)

    @property
    def shensha_by_region(self) -> dict:
        return shensha_by_region(self.shensha)

    def to_dict(self):
        return {
            "style": self.request.style.value,
            "calendar": self.calendar.to_dict(),
            "period": self.period.to_dict(),
            "leader": self.leader.to_dict(),
            "chief": self.chief.to_dict(),
            "earth_plate": self.earth.to_dict(),
            "heaven_plate": self.heaven.to_dict(),
            "grid": self.grid.to_dict(),
            "void_regions": list(self.void_regions),
            "horse_region": self.horse_region,
            "day_stem_region": self.day_stem_region,
            "hour_stem_region": self.hour_stem_region,
            "formations": [f.to_dict() for f in self.formations],
            "shensha": {
                str(region): [s.to_dict() for s in spirits]
                for region, spirits in self.shensha_by_region.items()
            },
        }


# ============================================================
# ENGINE
# ============================================================

def compute_chart(request: ChartRequest, calendar: Optional[CalendarProvider] = None) -> ChartResult:
    """
    Compute a full chart for one moment.

    Args:
        request: the moment and chart options
        calendar: pillar/solar-term provider; the Swiss Ephemeris
            calendar is used when omitted

    Returns:
        ChartResult
    """
    request = validate_request(request)
    if calendar is None:
        calendar = SwissEphemerisCalendar()
    info = calendar.resolve(request)

    period = resolve_period(info, request.granularity, request.sub_period_method)
    earth = earth_layout(period.configuration_number, period.direction)
    leader = resolve_leader(period.reference, earth)
    heaven = heaven_layout(request.style, earth, period.reference, period.direction)
    spirits = lay_spirits(leader.chief_region, period.reference, period.direction,
                          ring_for(request.style))
    grid = assemble_grid(earth, heaven, spirits, leader.void_branches, info.day_pillar)

    hour_pair = info.hour_pillar if request.granularity is ChartGranularity.HOUR else None
    formations = recognize_formations(
        grid, spirits.chief, earth, heaven,
        instrument=leader.instrument,
        day_stem=info.day_pillar.stem.chinese,
        hour_pair=hour_pair,
    )
    logger.debug("%s %s chart for %s: leader %s, chief region %d, %d formations",
                 request.style.value, request.granularity.value, period.reference.chinese,
                 leader.leader.chinese, leader.chief_region, len(formations))

    return ChartResult(
        request=request,
        calendar=info,
        period=period,
        leader=leader,
        chief=spirits.chief,
        earth=earth,
        heaven=heaven,
        grid=grid,
        formations=formations,
        shensha=find_shensha(info, earth, leader.instrument),
        day_stem_region=heaven.region_of(disguised_stem(info.day_pillar).chinese),
        hour_stem_region=heaven.region_of(disguised_stem(info.hour_pillar).chinese),
    )
