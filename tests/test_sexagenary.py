"""Tests for the sexagenary cycle, decades and pillar computation."""

import unittest
from datetime import date

import pytest

from qimen import sexagenary
from qimen.errors import TableLookupError
from qimen.sexagenary import (
    DECADE_LEADERS,
    SEXAGENARY_CYCLE,
    day_pillar,
    decade_leader,
    disguised_stem,
    hour_branch_index,
    hour_pillar,
    instrument_for,
    month_pillar,
    pair_from_chinese,
    void_branches,
    year_pillar,
)


class TestDecades(unittest.TestCase):
    def test_cycle_splits_into_six_decades(self) -> None:
        counts = {}
        for pair in SEXAGENARY_CYCLE:
            leader = decade_leader(pair).chinese
            counts[leader] = counts.get(leader, 0) + 1
        self.assertEqual(sorted(counts), sorted(l.chinese for l in DECADE_LEADERS))
        self.assertTrue(all(n == 10 for n in counts.values()))

    def test_instruments_are_distinct(self) -> None:
        instruments = [instrument_for(leader).chinese for leader in DECADE_LEADERS]
        self.assertEqual(instruments, ["戊", "己", "庚", "辛", "壬", "癸"])

    def test_void_branches(self) -> None:
        voids = [tuple(b.chinese for b in void_branches(l)) for l in DECADE_LEADERS]
        self.assertEqual(voids[0], ("戌", "亥"))
        self.assertEqual(voids[3], ("辰", "巳"))
        self.assertEqual(len({b for pair in voids for b in pair}), 12)

    def test_leader_of_mid_decade_pair(self) -> None:
        self.assertEqual(decade_leader(pair_from_chinese("丙辰")).chinese, "甲寅")
        self.assertEqual(decade_leader(pair_from_chinese("戊子")).chinese, "甲申")
        self.assertEqual(decade_leader(pair_from_chinese("癸亥")).chinese, "甲寅")

    def test_instrument_rejects_non_leader(self) -> None:
        with self.assertRaises(TableLookupError):
            instrument_for(pair_from_chinese("乙丑"))


def test_cycle_index():
    assert pair_from_chinese("甲子").cycle_index == 0
    assert pair_from_chinese("丙辰").cycle_index == 52
    assert pair_from_chinese("癸亥").cycle_index == 59
    assert [p.cycle_index for p in SEXAGENARY_CYCLE] == list(range(60))


@pytest.mark.parametrize("text", ["甲丑", "子甲", "甲", "甲子子", "X子"])
def test_pair_from_chinese_rejects_bad_pairs(text):
    with pytest.raises(TableLookupError):
        pair_from_chinese(text)


def test_position_does_not_affect_equality():
    assert pair_from_chinese("丙辰", "hour") == pair_from_chinese("丙辰", "day")


def test_disguised_stem():
    assert disguised_stem(pair_from_chinese("甲子")).chinese == "戊"
    assert disguised_stem(pair_from_chinese("甲寅")).chinese == "癸"
    assert disguised_stem(pair_from_chinese("丙辰")).chinese == "丙"


def test_year_pillar():
    assert year_pillar(1992).chinese == "壬申"
    assert year_pillar(1984).chinese == "甲子"
    assert year_pillar(2024).chinese == "甲辰"


def test_month_pillar_five_tigers():
    # 壬 year opens on 壬寅; the 辰 month is two months later.
    assert month_pillar(8, 4).chinese == "甲辰"
    assert month_pillar(0, 2).chinese == "丙寅"
    assert month_pillar(4, 1).chinese == "乙丑"


def test_day_pillar():
    assert day_pillar(date(1986, 6, 19)).chinese == "甲子"
    assert day_pillar(date(1992, 4, 12)).chinese == "戊子"
    assert day_pillar(date(1986, 6, 20)).chinese == "乙丑"


def test_hour_branch_boundaries():
    assert hour_branch_index(23) == 0
    assert hour_branch_index(0) == 0
    assert hour_branch_index(1) == 1
    assert hour_branch_index(2) == 1
    assert hour_branch_index(7) == 4
    assert hour_branch_index(22) == 11


def test_hour_pillar_five_rats():
    assert hour_pillar(4, 7).chinese == "丙辰"
    assert hour_pillar(0, 0).chinese == "甲子"
    assert hour_pillar(1, 23).chinese == "丙子"


def test_day_pillar_follows_julian_day_offset():
    assert sexagenary._JDN_SEXAGENARY_OFFSET == 20
    first = day_pillar(date(1992, 4, 12)).cycle_index
    for n in range(1, 61):
        later = day_pillar(date.fromordinal(date(1992, 4, 12).toordinal() + n))
        assert later.cycle_index == (first + n) % 60
