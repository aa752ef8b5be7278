"""
Period resolution: which half-year regime (dun) and configuration number
(ju) govern a chart.

Hour and day charts read the solar term in force and pick one of its three
sub-periods (上元 / 中元 / 下元). Month charts use the term that opens the
pillar month; year charts count the year pair around the cycle.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from qimen.errors import TableLookupError
from qimen.sexagenary import Pillar, decade_leader

logger = logging.getLogger(__name__)


class Direction(Enum):
    YANG = "yang"  # forward stepping, winter solstice to summer solstice
    YIN = "yin"

    @property
    def forward(self) -> bool:
        return self is Direction.YANG

    @property
    def chinese(self) -> str:
        return "阳遁" if self is Direction.YANG else "阴遁"


class ChartGranularity(Enum):
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class SubPeriodMethod(Enum):
    PAIR = "pair"                  # 拆补: the day pair's decade picks the sub-period
    ELAPSED_DAYS = "elapsed_days"  # 茅山: days since the term picks it


SUB_PERIOD_NAMES = ("上元", "中元", "下元")


@dataclass(frozen=True)
class TermConfiguration:
    term: str
    direction: Direction
    configurations: tuple  # configuration number for sub-periods 0, 1, 2


def _row(term, direction, upper, middle, lower):
    return term, TermConfiguration(term, direction, (upper, middle, lower))


SOLAR_TERM_TABLE = dict([
    _row("冬至", Direction.YANG, 1, 7, 4),
    _row("小寒", Direction.YANG, 2, 8, 5),
    _row("大寒", Direction.YANG, 3, 9, 6),
    _row("立春", Direction.YANG, 8, 5, 2),
    _row("雨水", Direction.YANG, 9, 6, 3),
    _row("惊蛰", Direction.YANG, 1, 7, 4),
    _row("春分", Direction.YANG, 3, 9, 6),
    _row("清明", Direction.YANG, 4, 1, 7),
    _row("谷雨", Direction.YANG, 5, 2, 8),
    _row("立夏", Direction.YANG, 4, 1, 7),
    _row("小满", Direction.YANG, 5, 2, 8),
    _row("芒种", Direction.YANG, 6, 3, 9),
    _row("夏至", Direction.YIN, 9, 3, 6),
    _row("小暑", Direction.YIN, 8, 2, 5),
    _row("大暑", Direction.YIN, 7, 1, 4),
    _row("立秋", Direction.YIN, 2, 5, 8),
    _row("处暑", Direction.YIN, 1, 4, 7),
    _row("白露", Direction.YIN, 9, 3, 6),
    _row("秋分", Direction.YIN, 7, 1, 4),
    _row("寒露", Direction.YIN, 6, 9, 3),
    _row("霜降", Direction.YIN, 5, 8, 2),
    _row("立冬", Direction.YIN, 6, 9, 3),
    _row("小雪", Direction.YIN, 5, 8, 2),
    _row("大雪", Direction.YIN, 4, 7, 1),
])

# Decade leader of the day pair → sub-period
LEADER_SUB_PERIODS = {
    "甲子": 0, "甲午": 0,
    "甲戌": 1, "甲辰": 1,
    "甲申": 2, "甲寅": 2,
}

# Branch of the month/year pair → sub-period
BRANCH_SUB_PERIODS = {
    "子": 0, "午": 0, "卯": 0, "酉": 0,
    "寅": 1, "申": 1, "巳": 1, "亥": 1,
    "辰": 2, "戌": 2, "丑": 2, "未": 2,
}

# Month branch → the jie term that opens that month
MONTH_TERMS = {
    "寅": "立春", "卯": "惊蛰", "辰": "清明", "巳": "立夏",
    "午": "芒种", "未": "小暑", "申": "立秋", "酉": "白露",
    "戌": "寒露", "亥": "立冬", "子": "大雪", "丑": "小寒",
}


def term_configuration(term: str) -> TermConfiguration:
    """Direction and configuration triple for a solar term name."""
    try:
        return SOLAR_TERM_TABLE[term]
    except KeyError:
        raise TableLookupError(f"Unknown solar term: {term!r}") from None


def sub_period_by_pair(day_pair: Pillar) -> int:
    return LEADER_SUB_PERIODS[decade_leader(day_pair).chinese]


def sub_period_by_elapsed_days(target: date, term_date: date) -> int:
    """
    Sub-period from days elapsed since the term began.

    The term's first day counts as day 1: days 1-5 → 0, 6-10 → 1,
    11 and later → 2. A target before the term start falls back to 0.
    """
    elapsed = (target - term_date).days + 1
    if elapsed <= 5:
        return 0
    if elapsed <= 10:
        return 1
    return 2


def sub_period_by_branch(pair: Pillar) -> int:
    return BRANCH_SUB_PERIODS[pair.branch.chinese]


@dataclass(frozen=True)
class Period:
    granularity: ChartGranularity
    term: str
    direction: Direction
    sub_period: int
    configuration_number: int
    reference: Pillar

    def to_dict(self):
        return {
            "granularity": self.granularity.value,
            "solar_term": self.term,
            "direction": self.direction.value,
            "direction_chinese": self.direction.chinese,
            "sub_period": self.sub_period,
            "sub_period_name": SUB_PERIOD_NAMES[self.sub_period],
            "configuration_number": self.configuration_number,
            "reference_pair": self.reference.chinese,
        }


def reference_pillar(info, granularity: ChartGranularity) -> Pillar:
    """The pillar a chart of the given granularity is cast for."""
    return {
        ChartGranularity.HOUR: info.hour_pillar,
        ChartGranularity.DAY: info.day_pillar,
        ChartGranularity.MONTH: info.month_pillar,
        ChartGranularity.YEAR: info.year_pillar,
    }[granularity]


def resolve_period(info, granularity: ChartGranularity, method: SubPeriodMethod) -> Period:
    """
    Work out the regime and configuration number for a chart.

    Args:
        info: resolved CalendarInfo for the moment
        granularity: which pillar the chart is cast for
        method: sub-period method for hour and day charts
    """
    reference = reference_pillar(info, granularity)

    if granularity is ChartGranularity.YEAR:
        row = term_configuration(info.solar_term)
        sub_period = sub_period_by_branch(reference)
        period = Period(granularity, row.term, row.direction, sub_period,
                        reference.cycle_index % 9 + 1, reference)
    elif granularity is ChartGranularity.MONTH:
        row = term_configuration(MONTH_TERMS[reference.branch.chinese])
        sub_period = sub_period_by_branch(reference)
        period = Period(granularity, row.term, row.direction, sub_period,
                        row.configurations[sub_period], reference)
    else:
        row = term_configuration(info.solar_term)
        if method is SubPeriodMethod.PAIR:
            sub_period = sub_period_by_pair(info.day_pillar)
        else:
            sub_period = sub_period_by_elapsed_days(info.solar_date, info.solar_term_date)
        period = Period(granularity, row.term, row.direction, sub_period,
                        row.configurations[sub_period], reference)

    logger.debug("%s chart: %s %s %s, configuration %d, reference %s",
                 granularity.value, period.term, period.direction.chinese,
                 SUB_PERIOD_NAMES[period.sub_period], period.configuration_number,
                 reference.chinese)
    return period
