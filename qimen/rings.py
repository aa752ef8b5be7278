"""
Ring topology of the nine regions (palaces).

The grid is numbered by the Luoshu magic square:

    4  9  2
    3  5  7
    8  1  6

Markers travel around the grid along fixed cyclic orders. Two orders skip
the center: the Luoshu flying order and the physical (compass) order, whose
reverse direction is tabulated on its own. A third order walks all nine
regions including the center. Any 8-slot ring treats region 5 as region 2.
"""

from dataclasses import dataclass

from qimen.errors import TableLookupError
from qimen.sexagenary import Element


CENTER = 5
CENTER_ALIAS = 2  # the center borrows Kun (2) on every 8-slot ring
REGIONS = (1, 2, 3, 4, 5, 6, 7, 8, 9)


def normalize_center(region: int) -> int:
    """Map region 5 onto region 2; every other region passes through."""
    if region not in REGIONS:
        raise TableLookupError(f"Unknown region: {region!r}")
    return CENTER_ALIAS if region == CENTER else region


# ============================================================
# RING DEFINITIONS
# ============================================================

@dataclass(frozen=True)
class Ring:
    """A cyclic traversal order over the regions.

    ``forward_order`` is walked for yang (forward) stepping and
    ``backward_order`` for yin (backward) stepping. Both start at region 1.
    """
    name: str
    forward_order: tuple
    backward_order: tuple
    includes_center: bool = False

    def __post_init__(self):
        if sorted(self.forward_order) != sorted(self.backward_order):
            raise ValueError(f"Ring {self.name}: directions cover different regions")

    def __len__(self):
        return len(self.forward_order)

    def _order(self, forward: bool) -> tuple:
        return self.forward_order if forward else self.backward_order

    def _key(self, region: int) -> int:
        if self.includes_center:
            if region not in REGIONS:
                raise TableLookupError(f"Unknown region: {region!r}")
            return region
        return normalize_center(region)

    def index_of(self, region: int, forward: bool = True) -> int:
        """Zero-based position of ``region`` in the given direction."""
        return self._order(forward).index(self._key(region))

    def region_at(self, index: int, forward: bool = True) -> int:
        """Region at ``index``; any integer is wrapped onto the ring."""
        order = self._order(forward)
        return order[index % len(order)]

    def step(self, region: int, n: int, forward: bool = True) -> int:
        """Walk ``n`` slots from ``region`` in the given direction."""
        return self.region_at(self.index_of(region, forward) + n, forward)


# Luoshu flying order 1→8→3→4→9→2→7→6; backward is the same cycle reversed.
LUOSHU_RING = Ring(
    name="luoshu",
    forward_order=(1, 8, 3, 4, 9, 2, 7, 6),
    backward_order=(1, 6, 7, 2, 9, 4, 3, 8),
)

# Compass order around the grid: Kan, Gen, Zhen, Xun, Li, Kun, Dui, Qian.
# Counter-clockwise walk is kept as its own table.
PHYSICAL_RING = Ring(
    name="physical",
    forward_order=(1, 8, 3, 4, 9, 2, 7, 6),
    backward_order=(1, 6, 7, 2, 9, 4, 3, 8),
)

# Luoshu order passing through the center between 4 and 9.
LUOSHU_RING_9 = Ring(
    name="luoshu9",
    forward_order=(1, 8, 3, 4, 5, 9, 2, 7, 6),
    backward_order=(1, 6, 7, 2, 9, 5, 4, 3, 8),
    includes_center=True,
)


# ============================================================
# REGION METADATA
# ============================================================

REGION_NAMES = {
    1: "坎", 2: "坤", 3: "震", 4: "巽", 5: "中",
    6: "乾", 7: "兑", 8: "艮", 9: "离",
}

REGION_ELEMENTS = {
    1: Element.WATER,
    2: Element.EARTH,
    3: Element.WOOD,
    4: Element.WOOD,
    5: Element.EARTH,
    6: Element.METAL,
    7: Element.METAL,
    8: Element.EARTH,
    9: Element.FIRE,
}

# Corner regions hold two branches; the center shares Kun's.
REGION_BRANCHES = {
    1: ("子",),
    2: ("未", "申"),
    3: ("卯",),
    4: ("辰", "巳"),
    5: ("未", "申"),
    6: ("戌", "亥"),
    7: ("酉",),
    8: ("丑", "寅"),
    9: ("午",),
}

BRANCH_REGIONS = {
    "子": 1, "丑": 8, "寅": 8, "卯": 3, "辰": 4, "巳": 4,
    "午": 9, "未": 2, "申": 2, "酉": 7, "戌": 6, "亥": 6,
}

OPPOSITE_REGIONS = {1: 9, 9: 1, 3: 7, 7: 3, 4: 6, 6: 4, 2: 8, 8: 2}


def region_for_branch(branch: str) -> int:
    try:
        return BRANCH_REGIONS[branch]
    except KeyError:
        raise TableLookupError(f"Unknown branch: {branch!r}") from None


def opposite_region(region: int):
    """Region across the grid, or None for the center."""
    if region not in REGIONS:
        raise TableLookupError(f"Unknown region: {region!r}")
    return OPPOSITE_REGIONS.get(region)
