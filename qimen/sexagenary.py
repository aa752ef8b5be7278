"""
Sexagenary (Ganzhi) cycle utilities.

Handles:
- Heavenly stem and earthly branch definitions
- The 60-pair cycle and pair parsing
- Decade leader (xun shou), its instrument stem and its void branches
- Pillar computation (year / month / day / hour)

Everything here is a fixed table or a pure function over one.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

import swisseph as swe

from qimen.errors import TableLookupError


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return self.chinese


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str
    element: Element
    polarity: Polarity
    index: int  # 0-11 in the cycle

    def __str__(self):
        return self.chinese


@dataclass(frozen=True)
class Pillar:
    """A stem/branch pair. ``position`` labels where it came from and is
    ignored when comparing pairs."""
    stem: HeavenlyStem
    branch: EarthlyBranch
    position: str = field(default="", compare=False)

    @property
    def chinese(self) -> str:
        return self.stem.chinese + self.branch.chinese

    @property
    def cycle_index(self) -> int:
        """Position 0-59 in the sexagenary cycle (甲子 = 0)."""
        return (6 * self.stem.index - 5 * self.branch.index) % 60

    def __str__(self):
        return self.chinese

    def to_dict(self):
        return {
            "position": self.position,
            "chinese": self.chinese,
            "stem": {
                "chinese": self.stem.chinese,
                "pinyin": self.stem.pinyin,
                "element": self.stem.element.value,
                "polarity": self.stem.polarity.value,
            },
            "branch": {
                "chinese": self.branch.chinese,
                "pinyin": self.branch.pinyin,
                "animal": self.branch.animal,
                "element": self.branch.element.value,
                "polarity": self.branch.polarity.value,
            },
            "cycle_index": self.cycle_index,
        }


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = (
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
)

EARTHLY_BRANCHES = (
    EarthlyBranch("子", "Zi", "Rat", Element.WATER, Polarity.YANG, 0),
    EarthlyBranch("丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, 1),
    EarthlyBranch("寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, 2),
    EarthlyBranch("卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, 3),
    EarthlyBranch("辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, 4),
    EarthlyBranch("巳", "Si", "Snake", Element.FIRE, Polarity.YIN, 5),
    EarthlyBranch("午", "Wu", "Horse", Element.FIRE, Polarity.YANG, 6),
    EarthlyBranch("未", "Wei", "Goat", Element.EARTH, Polarity.YIN, 7),
    EarthlyBranch("申", "Shen", "Monkey", Element.METAL, Polarity.YANG, 8),
    EarthlyBranch("酉", "You", "Rooster", Element.METAL, Polarity.YIN, 9),
    EarthlyBranch("戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, 10),
    EarthlyBranch("亥", "Hai", "Pig", Element.WATER, Polarity.YIN, 11),
)

# Lookup helpers
STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}

SEXAGENARY_CYCLE = tuple(
    Pillar(HEAVENLY_STEMS[i % 10], EARTHLY_BRANCHES[i % 12]) for i in range(60)
)

# (JDN + 20) % 60 is a day's position in the cycle
_JDN_SEXAGENARY_OFFSET = 20

# Control cycle: Wood → Earth → Water → Fire → Metal → Wood
CONTROL_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}


def stem(chinese: str) -> HeavenlyStem:
    try:
        return STEM_BY_CHINESE[chinese]
    except KeyError:
        raise TableLookupError(f"Unknown heavenly stem: {chinese!r}") from None


def branch(chinese: str) -> EarthlyBranch:
    try:
        return BRANCH_BY_CHINESE[chinese]
    except KeyError:
        raise TableLookupError(f"Unknown earthly branch: {chinese!r}") from None


def pair_from_chinese(text: str, position: str = "") -> Pillar:
    """Parse a two-character pair such as "丙辰".

    Raises TableLookupError for unknown characters and for combinations
    outside the cycle (a yang stem only pairs with a yang branch).
    """
    if len(text) != 2:
        raise TableLookupError(f"Sexagenary pair must be two characters: {text!r}")
    s, b = stem(text[0]), branch(text[1])
    if s.index % 2 != b.index % 2:
        raise TableLookupError(f"{text!r} is not part of the sexagenary cycle")
    return Pillar(s, b, position)


def controls(attacker: Element, target: Element) -> bool:
    return CONTROL_CYCLE[attacker] == target


# ============================================================
# DECADES (旬)
# ============================================================
#
# The cycle splits into six runs of ten pairs, each opened by a 甲 pair.
# 甲 never shows on a plate; it hides behind the decade's instrument stem.
# The two branches the decade never reaches are its void (空亡).

DECADE_LEADERS = tuple(SEXAGENARY_CYCLE[i] for i in range(0, 60, 10))

INSTRUMENTS = {
    "甲子": "戊",
    "甲戌": "己",
    "甲申": "庚",
    "甲午": "辛",
    "甲辰": "壬",
    "甲寅": "癸",
}

VOID_BRANCHES = {
    "甲子": ("戌", "亥"),
    "甲戌": ("申", "酉"),
    "甲申": ("午", "未"),
    "甲午": ("辰", "巳"),
    "甲辰": ("寅", "卯"),
    "甲寅": ("子", "丑"),
}


def decade_leader(pair: Pillar) -> Pillar:
    """The 甲 pair that opens the ten-pair block containing ``pair``."""
    index = pair.cycle_index
    return SEXAGENARY_CYCLE[index - index % 10]


def _leader_key(leader: Pillar) -> str:
    key = leader.chinese
    if key not in INSTRUMENTS:
        raise TableLookupError(f"{key!r} is not a decade leader")
    return key


def instrument_for(leader: Pillar) -> HeavenlyStem:
    """The stem a decade leader hides behind (甲子 → 戊 ...)."""
    return STEM_BY_CHINESE[INSTRUMENTS[_leader_key(leader)]]


def void_branches(leader: Pillar) -> tuple:
    """The two branches left empty by a decade (甲子 → 戌, 亥 ...)."""
    return tuple(BRANCH_BY_CHINESE[b] for b in VOID_BRANCHES[_leader_key(leader)])


def disguised_stem(pair: Pillar) -> HeavenlyStem:
    """Stem of ``pair`` as it appears on a plate.

    甲 is never placed on the earth layout, so a 甲 pair is represented by
    the instrument of its own decade. Any other stem stands for itself.
    """
    if pair.stem.chinese != "甲":
        return pair.stem
    return instrument_for(decade_leader(pair))


# ============================================================
# PILLAR COMPUTATION
# ============================================================

def year_pillar(effective_year: int) -> Pillar:
    """
    Year pillar for a solar year that has already been shifted back
    when the moment falls before Li Chun.

    Year 4 CE was Jia Zi, the start of the cycle.
    """
    return Pillar(
        stem=HEAVENLY_STEMS[(effective_year - 4) % 10],
        branch=EARTHLY_BRANCHES[(effective_year - 4) % 12],
        position="year",
    )


def month_pillar(year_stem_index: int, month_branch_index: int) -> Pillar:
    """
    Month pillar by the Five Tigers rule (五虎遁).

    Args:
        year_stem_index: index of the year's heavenly stem (0-9)
        month_branch_index: index of the month's earthly branch (0-11),
            the Tiger month (寅) being index 2
    """
    tiger_start_stems = {
        0: 2, 5: 2,   # 甲/己 year → 丙寅
        1: 4, 6: 4,   # 乙/庚 year → 戊寅
        2: 6, 7: 6,   # 丙/辛 year → 庚寅
        3: 8, 8: 8,   # 丁/壬 year → 壬寅
        4: 0, 9: 0,   # 戊/癸 year → 甲寅
    }
    months_from_tiger = (month_branch_index - 2) % 12
    stem_index = (tiger_start_stems[year_stem_index] + months_from_tiger) % 10
    return Pillar(
        stem=HEAVENLY_STEMS[stem_index],
        branch=EARTHLY_BRANCHES[month_branch_index],
        position="month",
    )


def day_pillar(day: date) -> Pillar:
    """
    Day pillar from the Julian Day Number.

    (int(jdn) + 20) % 60 gives the sexagenary index; 1986-06-19 is 甲子.
    """
    jdn = int(swe.julday(day.year, day.month, day.day, 0))
    pair = SEXAGENARY_CYCLE[(jdn + _JDN_SEXAGENARY_OFFSET) % 60]
    return Pillar(pair.stem, pair.branch, "day")


def hour_branch_index(hour: int) -> int:
    """Two-hour block: 23:00-00:59 is 子 (0), 01:00-02:59 is 丑 (1) ..."""
    if hour == 23 or hour == 0:
        return 0
    return ((hour + 1) // 2) % 12


def hour_pillar(day_stem_index: int, hour: int) -> Pillar:
    """
    Hour pillar by the Five Rats rule (五鼠遁).

    ``day_stem_index`` must already be the stem of the day the 子 hour
    opens: for 23:00 that is the following day.
    """
    zi_start_stems = {
        0: 0, 5: 0,   # 甲/己 day → 甲子 hour
        1: 2, 6: 2,   # 乙/庚 day → 丙子 hour
        2: 4, 7: 4,   # 丙/辛 day → 戊子 hour
        3: 6, 8: 6,   # 丁/壬 day → 庚子 hour
        4: 8, 9: 8,   # 戊/癸 day → 壬子 hour
    }
    branch_index = hour_branch_index(hour)
    stem_index = (zi_start_stems[day_stem_index] + branch_index) % 10
    return Pillar(
        stem=HEAVENLY_STEMS[stem_index],
        branch=EARTHLY_BRANCHES[branch_index],
        position="hour",
    )
