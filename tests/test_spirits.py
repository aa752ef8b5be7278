"""Tests for star, gate and deity distribution."""

import pytest

from qimen.periods import Direction
from qimen.rings import LUOSHU_RING, PHYSICAL_RING
from qimen.sexagenary import pair_from_chinese
from qimen.spirits import (
    DEITY_ORDER,
    GATE_ORDER,
    STAR_ORDER,
    borrowed_star,
    chief_displacement,
    lay_spirits,
)


def test_borrowed_star():
    assert borrowed_star("禽") == "芮"
    assert borrowed_star("蓬") == "蓬"


def test_chief_displacement():
    # 辰 is branch index 4: four slots on from 巽 (4) lands on 乾 (6)
    assert chief_displacement(4, pair_from_chinese("丙辰"), Direction.YANG, LUOSHU_RING) == 6
    assert chief_displacement(4, pair_from_chinese("甲子"), Direction.YANG, LUOSHU_RING) == 4
    assert chief_displacement(1, pair_from_chinese("乙丑"), Direction.YIN, LUOSHU_RING) == 6


def test_april_1992_layouts():
    spirits = lay_spirits(4, pair_from_chinese("丙辰"), Direction.YANG, PHYSICAL_RING)
    assert dict(spirits.stars) == {
        1: "心", 2: "芮", 3: "任", 4: "英", 5: "禽", 6: "辅", 7: "冲", 8: "柱", 9: "蓬",
    }
    assert dict(spirits.gates) == {
        1: "景", 2: "生", 3: "惊", 4: "开", 5: "生", 6: "杜", 7: "伤", 8: "死", 9: "休",
    }
    assert dict(spirits.deities) == {
        1: "腾蛇", 2: "九地", 3: "六合", 4: "白虎", 5: "九地",
        6: "值符", 7: "九天", 8: "太阴", 9: "玄武",
    }
    assert spirits.chief.star == "辅"
    assert spirits.chief.gate == "杜"
    assert spirits.chief.star_home == spirits.chief.gate_home == 4
    assert spirits.chief.star_arrived == spirits.chief.gate_arrived == 6


@pytest.mark.parametrize("direction", list(Direction))
@pytest.mark.parametrize("chief_region", [1, 2, 3, 4, 6, 7, 8, 9])
def test_every_member_placed_once(direction, chief_region):
    for pair in ("甲子", "丁卯", "壬申", "癸亥"):
        spirits = lay_spirits(chief_region, pair_from_chinese(pair), direction, PHYSICAL_RING)
        outer = [r for r in range(1, 10) if r != 5]
        assert sorted(spirits.stars[r] for r in outer) == sorted(STAR_ORDER)
        assert sorted(spirits.gates[r] for r in outer) == sorted(GATE_ORDER)
        assert sorted(spirits.deities[r] for r in outer) == sorted(DEITY_ORDER)
        assert spirits.stars[5] == "禽"
        assert spirits.gates[5] == spirits.gates[2]
        assert spirits.deities[5] == spirits.deities[2]
        assert spirits.deities[spirits.chief.star_arrived] == "值符"


def test_chief_on_kun_with_qin_leads_as_rui():
    spirits = lay_spirits(2, pair_from_chinese("甲子"), Direction.YANG, LUOSHU_RING)
    assert spirits.chief.star == "芮"
    assert spirits.stars[2] == "芮"
    assert spirits.gates[2] == "死"
