"""
Earth and heaven plates: where the nine stems sit on the grid.

The earth plate is laid from the configuration number. The heaven plate
re-anchors the same sequence at the earth region of the reference stem,
either flying through all nine regions (飞盘) or rotating around the eight
outer regions with 乙 held in the center (转盘).
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from qimen.errors import TableLookupError
from qimen.periods import Direction
from qimen.rings import (
    CENTER,
    LUOSHU_RING,
    LUOSHU_RING_9,
    PHYSICAL_RING,
    REGIONS,
    Ring,
    normalize_center,
)
from qimen.sexagenary import Pillar, disguised_stem


class ChartStyle(Enum):
    FLYING = "flying"      # 飞盘
    ROTATING = "rotating"  # 转盘


# Three wonders and six instruments in layout order: markers 1-9.
MARKERS = ("戊", "己", "庚", "辛", "壬", "癸", "丁", "丙", "乙")
INSTRUMENT_STEMS = MARKERS[:6]
WONDER_STEMS = ("乙", "丙", "丁")


def ring_for(style: ChartStyle) -> Ring:
    """The 8-slot ring a style walks for its heaven plate and spirits."""
    return PHYSICAL_RING if style is ChartStyle.ROTATING else LUOSHU_RING


@dataclass(frozen=True)
class Layout:
    """A bijection between the nine markers and the nine regions.

    ``by_region`` maps region → stem; ``by_marker`` maps stem → region with
    the center already aliased to region 2, so it never yields 5.
    """
    by_region: Mapping[int, str]
    by_marker: Mapping[str, int]

    @classmethod
    def from_regions(cls, placement: dict) -> "Layout":
        if sorted(placement) != list(REGIONS) or sorted(placement.values()) != sorted(MARKERS):
            raise ValueError(f"Not a full nine-region layout: {placement}")
        by_marker = {marker: normalize_center(region) for region, marker in placement.items()}
        return cls(
            by_region=MappingProxyType(dict(sorted(placement.items()))),
            by_marker=MappingProxyType(by_marker),
        )

    def marker_at(self, region: int) -> str:
        return self.by_region[region]

    def region_of(self, stem: str) -> int:
        try:
            return self.by_marker[stem]
        except KeyError:
            raise TableLookupError(f"Stem {stem!r} is not on the plate") from None

    def placed_region(self, stem: str) -> int:
        """Region that actually holds ``stem``; may be the center."""
        for region, marker in self.by_region.items():
            if marker == stem:
                return region
        raise TableLookupError(f"Stem {stem!r} is not on the plate")

    def to_dict(self):
        return {str(region): marker for region, marker in self.by_region.items()}


def _lay_eight(start: int, ring: Ring, forward: bool) -> dict:
    placement = {ring.step(start, i, forward): marker for i, marker in enumerate(MARKERS[:8])}
    placement[CENTER] = MARKERS[8]
    return placement


# ============================================================
# EARTH PLATE
# ============================================================

def earth_layout(configuration_number: int, direction: Direction) -> Layout:
    """
    Lay 戊 on the configuration-number region and continue around the
    Luoshu ring, forward for yang and backward for yin. 乙 always takes
    the center.
    """
    start = normalize_center(configuration_number)
    return Layout.from_regions(_lay_eight(start, LUOSHU_RING, direction.forward))


# ============================================================
# HEAVEN PLATE
# ============================================================

def heaven_anchor(earth: Layout, reference: Pillar) -> int:
    """Earth region of the reference pair's stem, 甲 standing in as its instrument."""
    return earth.region_of(disguised_stem(reference).chinese)


def flying_heaven_layout(earth: Layout, reference: Pillar, direction: Direction) -> Layout:
    """Lay all nine markers from the anchor through the 9-slot ring."""
    anchor = heaven_anchor(earth, reference)
    placement = {
        LUOSHU_RING_9.step(anchor, i, direction.forward): marker
        for i, marker in enumerate(MARKERS)
    }
    return Layout.from_regions(placement)


def rotating_heaven_layout(earth: Layout, reference: Pillar, direction: Direction) -> Layout:
    """Lay eight markers from the anchor around the physical ring; 乙 stays central."""
    anchor = heaven_anchor(earth, reference)
    return Layout.from_regions(_lay_eight(anchor, PHYSICAL_RING, direction.forward))


def heaven_layout(style: ChartStyle, earth: Layout, reference: Pillar, direction: Direction) -> Layout:
    if style is ChartStyle.FLYING:
        return flying_heaven_layout(earth, reference, direction)
    return rotating_heaven_layout(earth, reference, direction)
