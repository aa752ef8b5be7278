"""
Nine stars, eight gates and eight deities.

Each set has a home-region table. The member whose home is the chief
region leads the set; it moves to the arrived region found by chief
displacement, and the rest follow in the set's own traversal order.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from qimen.periods import Direction
from qimen.rings import CENTER, CENTER_ALIAS, LUOSHU_RING, Ring
from qimen.sexagenary import Element, Pillar


# ============================================================
# SYMBOL DEFINITIONS
# ============================================================

@dataclass(frozen=True)
class Star:
    chinese: str
    pinyin: str
    element: Element
    home: int

    @property
    def full_name(self) -> str:
        return "天" + self.chinese


@dataclass(frozen=True)
class Gate:
    chinese: str
    pinyin: str
    element: Element
    home: int

    @property
    def full_name(self) -> str:
        return self.chinese + "门"


@dataclass(frozen=True)
class Deity:
    chinese: str
    pinyin: str


STARS = (
    Star("蓬", "Peng", Element.WATER, 1),
    Star("芮", "Rui", Element.EARTH, 2),
    Star("冲", "Chong", Element.WOOD, 3),
    Star("辅", "Fu", Element.WOOD, 4),
    Star("禽", "Qin", Element.EARTH, 5),
    Star("心", "Xin", Element.METAL, 6),
    Star("柱", "Zhu", Element.METAL, 7),
    Star("任", "Ren", Element.EARTH, 8),
    Star("英", "Ying", Element.FIRE, 9),
)

GATES = (
    Gate("休", "Xiu", Element.WATER, 1),
    Gate("生", "Sheng", Element.EARTH, 8),
    Gate("伤", "Shang", Element.WOOD, 3),
    Gate("杜", "Du", Element.WOOD, 4),
    Gate("景", "Jing", Element.FIRE, 9),
    Gate("死", "Si", Element.EARTH, 2),
    Gate("惊", "Jing", Element.METAL, 7),
    Gate("开", "Kai", Element.METAL, 6),
)

DEITIES = (
    Deity("值符", "Zhi Fu"),
    Deity("腾蛇", "Teng She"),
    Deity("太阴", "Tai Yin"),
    Deity("六合", "Liu He"),
    Deity("白虎", "Bai Hu"),
    Deity("玄武", "Xuan Wu"),
    Deity("九地", "Jiu Di"),
    Deity("九天", "Jiu Tian"),
)

STAR_BY_CHINESE = {s.chinese: s for s in STARS}
GATE_BY_CHINESE = {g.chinese: g for g in GATES}
STAR_BY_HOME = {s.home: s for s in STARS}
GATE_BY_HOME = {g.home: g for g in GATES}

# Traversal orders. 禽 is not on the ring.
STAR_ORDER = ("蓬", "芮", "冲", "辅", "心", "柱", "任", "英")
GATE_ORDER = tuple(g.chinese for g in GATES)
DEITY_ORDER = tuple(d.chinese for d in DEITIES)

PINNED_STAR = "禽"
PINNED_STAR_PROXY = "芮"


def borrowed_star(star: str) -> str:
    """Ring member a star stands as: 禽 borrows 芮, its fellow earth star."""
    return PINNED_STAR_PROXY if star == PINNED_STAR else star


# ============================================================
# CHIEF DISPLACEMENT
# ============================================================

def chief_displacement(chief_region: int, reference: Pillar, direction: Direction, ring: Ring) -> int:
    """Step the chief region by the reference branch's zero-based index."""
    return ring.step(chief_region, reference.branch.index, direction.forward)


@dataclass(frozen=True)
class ChiefInfo:
    star: str  # 值符 star
    star_home: int
    star_arrived: int
    gate: str  # 值使 gate
    gate_home: int
    gate_arrived: int

    def to_dict(self):
        return {
            "star": self.star,
            "star_home": self.star_home,
            "star_arrived": self.star_arrived,
            "gate": self.gate,
            "gate_home": self.gate_home,
            "gate_arrived": self.gate_arrived,
        }


# ============================================================
# DISTRIBUTIONS
# ============================================================

def _distribute(order: tuple, leader: str, arrived: int, ring: Ring, forward: bool) -> dict:
    offset = order.index(leader)
    return {ring.step(arrived, k - offset, forward): member for k, member in enumerate(order)}


def star_layout(chief_region: int, arrived: int, direction: Direction, ring: Ring) -> dict:
    chief = borrowed_star(STAR_BY_HOME[chief_region].chinese)
    placement = _distribute(STAR_ORDER, chief, arrived, ring, direction.forward)
    placement[CENTER] = PINNED_STAR
    return placement


def gate_layout(chief_region: int, arrived: int, direction: Direction, ring: Ring) -> dict:
    chief = GATE_BY_HOME[chief_region].chinese
    placement = _distribute(GATE_ORDER, chief, arrived, ring, direction.forward)
    placement[CENTER] = placement[CENTER_ALIAS]
    return placement


def deity_layout(arrived: int, direction: Direction) -> dict:
    """值符 follows the chief star; deities always walk the Luoshu ring."""
    placement = _distribute(DEITY_ORDER, DEITY_ORDER[0], arrived, LUOSHU_RING, direction.forward)
    placement[CENTER] = placement[CENTER_ALIAS]
    return placement


@dataclass(frozen=True)
class SpiritLayouts:
    stars: Mapping[int, str]
    gates: Mapping[int, str]
    deities: Mapping[int, str]
    chief: ChiefInfo


def lay_spirits(chief_region: int, reference: Pillar, direction: Direction, ring: Ring) -> SpiritLayouts:
    arrived = chief_displacement(chief_region, reference, direction, ring)
    star = STAR_BY_HOME[chief_region]
    gate = GATE_BY_HOME[chief_region]
    chief = ChiefInfo(
        star=star.chinese,
        star_home=star.home,
        star_arrived=arrived,
        gate=gate.chinese,
        gate_home=gate.home,
        gate_arrived=arrived,
    )
    return SpiritLayouts(
        stars=MappingProxyType(star_layout(chief_region, arrived, direction, ring)),
        gates=MappingProxyType(gate_layout(chief_region, arrived, direction, ring)),
        deities=MappingProxyType(deity_layout(arrived, direction)),
        chief=chief,
    )
