"""Tests for the earth and heaven plates and the decade leader."""

import unittest

import pytest

from qimen.errors import TableLookupError
from qimen.leader import resolve_leader
from qimen.periods import Direction
from qimen.plates import (
    MARKERS,
    ChartStyle,
    Layout,
    earth_layout,
    flying_heaven_layout,
    heaven_anchor,
    heaven_layout,
    rotating_heaven_layout,
)
from qimen.rings import REGIONS
from qimen.sexagenary import pair_from_chinese


class TestEarthLayout(unittest.TestCase):
    def test_every_configuration_is_a_bijection(self) -> None:
        for direction in Direction:
            for number in range(1, 10):
                layout = earth_layout(number, direction)
                self.assertEqual(sorted(layout.by_region), list(REGIONS))
                self.assertEqual(sorted(layout.by_region.values()), sorted(MARKERS))
                self.assertEqual(layout.marker_at(5), "乙")

    def test_wu_sits_on_configuration_region(self) -> None:
        for number in (1, 2, 3, 4, 6, 7, 8, 9):
            self.assertEqual(earth_layout(number, Direction.YANG).marker_at(number), "戊")
            self.assertEqual(earth_layout(number, Direction.YIN).marker_at(number), "戊")

    def test_configuration_five_lays_from_kun(self) -> None:
        self.assertEqual(earth_layout(5, Direction.YANG).marker_at(2), "戊")

    def test_yang_seven(self) -> None:
        layout = earth_layout(7, Direction.YANG)
        self.assertEqual(
            layout.to_dict(),
            {"1": "庚", "2": "丙", "3": "壬", "4": "癸", "5": "乙",
             "6": "己", "7": "戊", "8": "辛", "9": "丁"},
        )

    def test_yin_one_walks_backward(self) -> None:
        layout = earth_layout(1, Direction.YIN)
        self.assertEqual(layout.marker_at(1), "戊")
        self.assertEqual(layout.marker_at(6), "己")
        self.assertEqual(layout.marker_at(7), "庚")

    def test_center_stem_reports_kun(self) -> None:
        self.assertEqual(earth_layout(7, Direction.YANG).region_of("乙"), 2)


def test_layout_rejects_partial_placement():
    with pytest.raises(ValueError):
        Layout.from_regions({1: "戊", 2: "己"})


def test_region_of_unknown_stem():
    with pytest.raises(TableLookupError):
        earth_layout(1, Direction.YANG).region_of("甲")


def test_heaven_anchor_replaces_jia():
    earth = earth_layout(7, Direction.YANG)
    assert heaven_anchor(earth, pair_from_chinese("丙辰")) == 2
    # 甲寅 hides behind 癸
    assert heaven_anchor(earth, pair_from_chinese("甲寅")) == 4


def test_flying_heaven():
    earth = earth_layout(7, Direction.YANG)
    heaven = flying_heaven_layout(earth, pair_from_chinese("丙辰"), Direction.YANG)
    assert heaven.to_dict() == {
        "1": "辛", "2": "戊", "3": "癸", "4": "丁", "5": "丙",
        "6": "庚", "7": "己", "8": "壬", "9": "乙",
    }
    assert heaven.region_of("丙") == 2


def test_rotating_heaven():
    earth = earth_layout(7, Direction.YANG)
    heaven = rotating_heaven_layout(earth, pair_from_chinese("丙辰"), Direction.YANG)
    assert heaven.to_dict() == {
        "1": "辛", "2": "戊", "3": "癸", "4": "丁", "5": "乙",
        "6": "庚", "7": "己", "8": "壬", "9": "丙",
    }


@pytest.mark.parametrize("style", list(ChartStyle))
@pytest.mark.parametrize("direction", list(Direction))
def test_heaven_is_always_a_bijection(style, direction):
    for number in range(1, 10):
        earth = earth_layout(number, direction)
        for pair in ("甲子", "乙丑", "庚午", "癸亥"):
            heaven = heaven_layout(style, earth, pair_from_chinese(pair), direction)
            assert sorted(heaven.by_region.values()) == sorted(MARKERS)


def test_reference_on_wu_leaves_heaven_on_earth():
    earth = earth_layout(3, Direction.YANG)
    heaven = rotating_heaven_layout(earth, pair_from_chinese("甲子"), Direction.YANG)
    assert heaven.by_region == earth.by_region


def test_resolve_leader():
    earth = earth_layout(7, Direction.YANG)
    leader = resolve_leader(pair_from_chinese("丙辰"), earth)
    assert leader.leader.chinese == "甲寅"
    assert leader.instrument == "癸"
    assert leader.void_branches == ("子", "丑")
    assert leader.chief_region == 4


def test_leader_chief_region_never_center():
    for number in range(1, 10):
        earth = earth_layout(number, Direction.YIN)
        for pair in ("甲子", "甲戌", "甲申", "甲午", "甲辰", "甲寅"):
            assert resolve_leader(pair_from_chinese(pair), earth).chief_region != 5


def test_flying_direction_changes_layout():
    earth = earth_layout(7, Direction.YANG)
    reference = pair_from_chinese("丙辰")
    yang = flying_heaven_layout(earth, reference, Direction.YANG)
    yin = flying_heaven_layout(earth, reference, Direction.YIN)
    assert yang.marker_at(2) == yin.marker_at(2) == "戊"
    assert yang.by_region != yin.by_region


def test_placed_region_keeps_center():
    earth = earth_layout(7, Direction.YANG)
    assert earth.placed_region("乙") == 5
    assert earth.region_of("乙") == 2
    with pytest.raises(TableLookupError):
        earth.placed_region("甲")
