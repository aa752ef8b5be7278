from datetime import date

import pytest

from qimen.astro_calendar import CalendarInfo, LunarDate
from qimen.sexagenary import pair_from_chinese


class FixedCalendar:
    """Calendar provider that always answers with the same moment."""

    def __init__(self, info):
        self.info = info
        self.requests = []

    def resolve(self, request):
        self.requests.append(request)
        return self.info


def make_info(year="壬申", month="甲辰", day="戊子", hour="丙辰",
              term="清明", term_date=date(1992, 4, 4), solar_date=date(1992, 4, 12)):
    return CalendarInfo(
        solar_date=solar_date,
        hour=7,
        minute=30,
        lunar=LunarDate(1992, 3, 10),
        year_pillar=pair_from_chinese(year, "year"),
        month_pillar=pair_from_chinese(month, "month"),
        day_pillar=pair_from_chinese(day, "day"),
        hour_pillar=pair_from_chinese(hour, "hour"),
        solar_term=term,
        solar_term_date=term_date,
    )


@pytest.fixture
def april_1992():
    """1992-04-12 07:30 Beijing time: 壬申 甲辰 戊子 丙辰, term 清明."""
    return FixedCalendar(make_info())


@pytest.fixture(autouse=True)
def _clean_qimen_env(monkeypatch):
    for name in ("QIMEN_DEFAULT_STYLE", "QIMEN_DEFAULT_SUB_PERIOD_METHOD",
                 "QIMEN_UTC_OFFSET", "QIMEN_REQUIRE_SWIEPH"):
        monkeypatch.delenv(name, raising=False)
