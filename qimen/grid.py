"""Merge plates and spirits into the nine-region grid."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from qimen.plates import Layout
from qimen.rings import REGION_BRANCHES, REGION_ELEMENTS, REGION_NAMES, REGIONS, region_for_branch
from qimen.sexagenary import Element, Pillar
from qimen.spirits import SpiritLayouts

# Day branch triad → horse branch (驿马)
HORSE_BRANCHES = {
    "申": "寅", "子": "寅", "辰": "寅",
    "寅": "申", "午": "申", "戌": "申",
    "亥": "巳", "卯": "巳", "未": "巳",
    "巳": "亥", "酉": "亥", "丑": "亥",
}


@dataclass(frozen=True)
class RegionCell:
    region: int
    name: str
    earth: str
    heaven: str
    gate: str
    star: str
    deity: str
    element: Element
    is_void: bool
    is_horse: bool

    def to_dict(self):
        return {
            "region": self.region,
            "name": self.name,
            "earth": self.earth,
            "heaven": self.heaven,
            "gate": self.gate,
            "star": self.star,
            "deity": self.deity,
            "element": self.element.value,
            "is_void": self.is_void,
            "is_horse": self.is_horse,
        }


@dataclass(frozen=True)
class Grid:
    cells: Mapping[int, RegionCell]

    def __getitem__(self, region: int) -> RegionCell:
        return self.cells[region]

    def __iter__(self):
        return iter(self.cells[r] for r in REGIONS)

    def to_dict(self):
        return {str(r): cell.to_dict() for r, cell in self.cells.items()}


def horse_region(day_pillar: Pillar) -> int:
    return region_for_branch(HORSE_BRANCHES[day_pillar.branch.chinese])


def void_regions(void_branches: tuple) -> tuple:
    return tuple(r for r in REGIONS if any(b in void_branches for b in REGION_BRANCHES[r]))


def assemble_grid(earth: Layout, heaven: Layout, spirits: SpiritLayouts,
                  void_branches: tuple, day_pillar: Pillar) -> Grid:
    voids = void_regions(void_branches)
    horse = horse_region(day_pillar)
    cells = {
        r: RegionCell(
            region=r,
            name=REGION_NAMES[r],
            earth=earth.marker_at(r),
            heaven=heaven.marker_at(r),
            gate=spirits.gates[r],
            star=spirits.stars[r],
            deity=spirits.deities[r],
            element=REGION_ELEMENTS[r],
            is_void=r in voids,
            is_horse=r == horse,
        )
        for r in REGIONS
    }
    return Grid(MappingProxyType(cells))
