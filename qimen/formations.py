"""
Formation (格局) recognition over an assembled grid.

Most formations are rows of data: a single-region rule names the heaven
stem, earth stem, gate, star, deity or region it needs, and any cell that
satisfies every named field produces the formation. Stem-pair, harmony,
hour and day/hour tables work the same way. Only the repetition and
reversal checks (伏吟 / 反吟) look across the whole grid.

Output is a duplicate-free tuple in a fixed order, so identical charts
always compare equal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from qimen.grid import Grid, RegionCell
from qimen.plates import INSTRUMENT_STEMS, WONDER_STEMS, Layout
from qimen.rings import (
    LUOSHU_RING,
    OPPOSITE_REGIONS,
    REGION_ELEMENTS,
    region_for_branch,
)
from qimen.sexagenary import Pillar, controls
from qimen.spirits import GATES, ChiefInfo


class FormationType(Enum):
    AUSPICIOUS = "auspicious"
    INAUSPICIOUS = "inauspicious"
    NEUTRAL = "neutral"


AUS = FormationType.AUSPICIOUS
BAD = FormationType.INAUSPICIOUS
NEUTRAL = FormationType.NEUTRAL


@dataclass(frozen=True)
class Formation:
    name: str
    kind: FormationType
    description: str
    regions: tuple = ()

    def to_dict(self):
        return {
            "name": self.name,
            "type": self.kind.value,
            "description": self.description,
            "regions": list(self.regions),
        }


def _sort_key(formation: Formation):
    return formation.regions, formation.name, formation.description


# ============================================================
# SINGLE-REGION RULES
# ============================================================

@dataclass(frozen=True)
class RegionRule:
    """
    A formation produced by one cell.

    Each non-empty field lists the values the cell may hold; empty fields
    are not checked. ``description`` is a format template over the cell
    (heaven, earth, gate, star, deity, name) and the hour branch.
    """
    name: str
    kind: FormationType
    description: str
    heaven: tuple = ()
    earth: tuple = ()
    gate: tuple = ()
    star: tuple = ()
    deity: tuple = ()
    regions: tuple = ()

    def matches(self, cell: RegionCell) -> bool:
        checks = (
            (self.heaven, cell.heaven),
            (self.earth, cell.earth),
            (self.gate, cell.gate),
            (self.star, cell.star),
            (self.deity, cell.deity),
            (self.regions, cell.region),
        )
        return all(not allowed or value in allowed for allowed, value in checks)

    def describe(self, cell: RegionCell, hour_branch: str = "") -> str:
        return self.description.format(
            heaven=cell.heaven,
            earth=cell.earth,
            gate=cell.gate,
            star=cell.star,
            deity=cell.deity,
            name=cell.name,
            hour_branch=hour_branch,
        )

    def emit(self, cell: RegionCell, hour_branch: str = "") -> Formation:
        return Formation(self.name, self.kind, self.describe(cell, hour_branch), (cell.region,))


AUSPICIOUS_GATES = ("开", "休", "生")
INAUSPICIOUS_GATES = ("死", "惊", "杜")

# Heaven stem → region where it is stored away (墓)
TOMB_REGIONS = {
    "乙": 2,
    "丙": 6, "丁": 6, "戊": 6, "己": 6,
    "庚": 8, "辛": 8,
    "壬": 4, "癸": 4,
}

# Instrument → region of the branch its decade leader punishes (三刑)
PUNISHMENT_REGIONS = {
    "戊": 3,  # 子刑卯
    "己": 2,  # 戌刑未
    "庚": 8,  # 申刑寅
    "辛": 9,  # 午自刑
    "壬": 4,  # 辰自刑
    "癸": 4,  # 寅刑巳
}


def _gate_oppression_rules() -> tuple:
    """门迫: a gate whose element controls the element of its region."""
    rules = []
    for gate in GATES:
        regions = tuple(
            r for r in LUOSHU_RING.forward_order if controls(gate.element, REGION_ELEMENTS[r])
        )
        if regions:
            rules.append(RegionRule("门迫", BAD, "{gate}门克{name}宫", gate=(gate.chinese,), regions=regions))
    return tuple(rules)


REGION_RULES = (
    RegionRule("三奇得使", AUS, "{heaven}奇临{gate}门于{name}宫",
               heaven=WONDER_STEMS, gate=AUSPICIOUS_GATES),
    RegionRule("三奇贵人", AUS, "{heaven}奇遇值符于{name}宫",
               heaven=WONDER_STEMS, deity=("值符",)),
    RegionRule("三奇得门", AUS, "{heaven}奇得{gate}门于{name}宫", heaven=("乙",), gate=("开",)),
    RegionRule("三奇得门", AUS, "{heaven}奇得{gate}门于{name}宫", heaven=("丙",), gate=("生",)),
    RegionRule("三奇得门", AUS, "{heaven}奇得{gate}门于{name}宫", heaven=("丁",), gate=("休",)),
    RegionRule("玉女守门", AUS, "丁奇临{gate}门遇{deity}于{name}宫",
               heaven=("丁",), gate=("开", "休"), deity=("太阴", "六合")),

    # 九遁
    RegionRule("天遁", AUS, "丙奇临生门天心于{name}宫", heaven=("丙",), gate=("生",), star=("心",)),
    RegionRule("地遁", AUS, "乙奇临开门遇地盘己于{name}宫", heaven=("乙",), gate=("开",), earth=("己",)),
    RegionRule("人遁", AUS, "丁奇临休门遇太阴于{name}宫", heaven=("丁",), gate=("休",), deity=("太阴",)),
    RegionRule("神遁", AUS, "丙奇临生门遇九天于{name}宫", heaven=("丙",), gate=("生",), deity=("九天",)),
    RegionRule("鬼遁", AUS, "乙奇临生门遇九地于{name}宫", heaven=("乙",), gate=("生",), deity=("九地",)),
    RegionRule("龙遁", AUS, "乙奇临休门遇六合于{name}宫", heaven=("乙",), gate=("休",), deity=("六合",)),
    RegionRule("虎遁", AUS, "乙奇临开门遇太阴于{name}宫", heaven=("乙",), gate=("开",), deity=("太阴",)),
    RegionRule("风遁", AUS, "乙奇临开门天辅于{name}宫", heaven=("乙",), gate=("开",), star=("辅",)),
    RegionRule("云遁", AUS, "乙奇临休门遇六合天芮于{name}宫",
               heaven=("乙",), gate=("休",), deity=("六合",), star=("芮",)),

    RegionRule("青龙逃走", AUS, "生门遇六合于{name}宫", gate=("生",), deity=("六合",)),
    RegionRule("白虎猖狂", BAD, "庚临开门遇白虎于{name}宫", heaven=("庚",), gate=("开",), deity=("白虎",)),
    RegionRule("天网四张", BAD, "戊临{gate}门于乾宫", heaven=("戊",), gate=("死", "惊"), regions=(6,)),
    RegionRule("地网盖", BAD, "癸临{gate}门于巽宫", heaven=("癸",), gate=("死", "杜"), regions=(4,)),
    RegionRule("天牢", BAD, "庚临杜门于{name}宫，主阻滞闭塞", heaven=("庚",), gate=("杜",)),
) + tuple(
    RegionRule("三奇入墓" if stem in WONDER_STEMS else "入墓", BAD, "{heaven}入墓于{name}宫",
               heaven=(stem,), regions=(region,))
    for stem, region in TOMB_REGIONS.items()
) + tuple(
    RegionRule("六仪击刑", BAD, "{heaven}击刑于{name}宫", heaven=(stem,), regions=(region,))
    for stem, region in PUNISHMENT_REGIONS.items()
) + _gate_oppression_rules()

# Checked only at the region of the hour branch, on hour charts.
HOUR_REGION_RULES = (
    RegionRule("天显时格", AUS, "{heaven}奇临{gate}门于{hour_branch}时宫",
               heaven=WONDER_STEMS, gate=AUSPICIOUS_GATES),
    RegionRule("地私门格", BAD, "{heaven}临{gate}门于{hour_branch}时宫",
               heaven=INSTRUMENT_STEMS, gate=INAUSPICIOUS_GATES),
)


# ============================================================
# STEM PAIRS (天盘干加地盘干)
# ============================================================

# (heaven, earth): (name, type, description)
STEM_PAIR_RULES = {
    ("戊", "丙"): ("青龙返首", AUS, "戊加丙，青龙回首，动作大吉"),
    ("丙", "戊"): ("飞鸟跌穴", AUS, "丙加戊，飞鸟跌穴，百事可为"),
    ("丁", "戊"): ("青龙耀明", AUS, "丁加戊，青龙耀明，宜谒贵求名"),
    ("丙", "乙"): ("日月并行", AUS, "丙加乙，日月并行，公谋私为皆吉"),
    ("乙", "丙"): ("奇仪顺遂", AUS, "乙加丙，奇仪顺遂，吉星迁官进职"),
    ("乙", "丁"): ("奇仪相佐", AUS, "乙加丁，奇仪相佐，文书事吉"),
    ("丁", "乙"): ("烧田种", AUS, "丁加乙，贵人加官，常人得财"),
    ("丙", "丁"): ("星奇朱雀", AUS, "丙加丁，贵人文书吉利"),
    ("丁", "丙"): ("星随月转", AUS, "丁加丙，贵人越级高升"),
    ("丁", "丁"): ("奇入太阴", AUS, "丁加丁，文书即至，喜事遂心"),
    ("己", "戊"): ("犬遇青龙", AUS, "己加戊，门吉则谋望遂意"),

    ("乙", "乙"): ("日奇伏吟", NEUTRAL, "乙加乙，不宜谒贵求名，只可安分守身"),

    ("乙", "辛"): ("龙逃走", BAD, "乙加辛，青龙逃走，人亡财破"),
    ("辛", "乙"): ("虎猖狂", BAD, "辛加乙，白虎猖狂，家败人伤"),
    ("丁", "癸"): ("朱雀投江", BAD, "丁加癸，文书口舌俱凶"),
    ("癸", "丁"): ("螣蛇夭矫", BAD, "癸加丁，文书官司，火焚难逃"),
    ("庚", "丙"): ("太白入荧", BAD, "庚加丙，占贼必来，为客进利"),
    ("丙", "庚"): ("荧入太白", BAD, "丙加庚，门户破败，盗贼耗失"),
    ("庚", "癸"): ("大格", BAD, "庚加癸，行人不至，车破马伤"),
    ("庚", "壬"): ("小格", BAD, "庚加壬，远行迷失道路"),
    ("庚", "己"): ("刑格", BAD, "庚加己，官司被重刑"),
    ("庚", "戊"): ("天乙伏宫", BAD, "庚加戊，百事不可谋"),
    ("戊", "庚"): ("天乙飞宫", BAD, "戊加庚，吉事不吉，凶事更凶"),
    ("庚", "庚"): ("太白同宫", BAD, "庚加庚，官灾横祸，兄弟相攻"),
    ("辛", "辛"): ("辛仪伏吟", BAD, "辛加辛，公废私就，讼狱自罹罪名"),
    ("戊", "戊"): ("戊仪伏吟", BAD, "戊加戊，凡事不利，道路闭塞"),
    ("壬", "壬"): ("蛇入地罗", BAD, "壬加壬，外人缠绕，内事索索"),
    ("己", "己"): ("地户逢鬼", BAD, "己加己，病者必死，百事不遂"),
    ("壬", "癸"): ("幼女奸淫", BAD, "壬加癸，家有丑声"),
    ("癸", "壬"): ("复见螣蛇", BAD, "癸加壬，嫁娶重婚，后嫁无子"),
    ("辛", "庚"): ("白虎出力", BAD, "辛加庚，刀刃相接，主客相残"),
    ("己", "癸"): ("地刑玄武", BAD, "己加癸，男女疾病垂危"),
    ("辛", "壬"): ("凶蛇入狱", BAD, "辛加壬，两男争女，讼狱不息"),
    ("戊", "壬"): ("青龙入天牢", BAD, "戊加壬，凡阴阳事皆不吉"),
    ("己", "辛"): ("游魂入墓", BAD, "己加辛，易遭阴邪"),
    ("丙", "丙"): ("月奇悖师", BAD, "丙加丙，文书逼迫，破耗遗失"),
    ("乙", "庚"): ("日奇被刑", BAD, "乙加庚，争讼财产，夫妻怀私"),
    ("壬", "辛"): ("螣蛇相缠", BAD, "壬加辛，纵得吉门亦不能安"),
    ("己", "丁"): ("朱雀入墓", BAD, "己加丁，文书词讼先曲后直"),
}

# Five harmonies among the plate stems; 甲己 never shows on a plate.
STEM_HARMONY = {
    "乙": "庚", "庚": "乙",
    "丙": "辛", "辛": "丙",
    "丁": "壬", "壬": "丁",
    "戊": "癸", "癸": "戊",
}

# Day stem → the hour stem that strikes it (五不遇时)
FIVE_NON_MEETING = {
    "甲": "庚", "乙": "辛", "丙": "壬", "丁": "癸", "戊": "甲",
    "己": "乙", "庚": "丙", "辛": "丁", "壬": "戊", "癸": "己",
}


def _stem_pair_formations(grid: Grid):
    for cell in grid:
        row = STEM_PAIR_RULES.get((cell.heaven, cell.earth))
        if row:
            name, kind, description = row
            yield Formation(name, kind, f"{description}，于{cell.name}宫", (cell.region,))


def _harmony_formations(grid: Grid):
    for cell in grid:
        if cell.region == 5:
            continue
        if STEM_HARMONY.get(cell.heaven) == cell.earth:
            yield Formation(f"{cell.heaven}{cell.earth}合", AUS,
                            f"{cell.heaven}与{cell.earth}相合于{cell.name}宫", (cell.region,))


# ============================================================
# AGGREGATE PREDICATES
# ============================================================

def _repetition_formations(grid: Grid, chief: ChiefInfo):
    if chief.star_home == chief.star_arrived:
        yield Formation("星伏吟", NEUTRAL, "值符星临本宫", (chief.star_home,))
    if chief.gate_home == chief.gate_arrived:
        yield Formation("门伏吟", NEUTRAL, "值使门临本宫", (chief.gate_home,))
    if sum(1 for cell in grid if cell.heaven == cell.earth) >= 8:
        yield Formation("天地伏吟", NEUTRAL, "天盘地盘干支相同")


def _reversal_formations(grid: Grid, chief: ChiefInfo):
    if OPPOSITE_REGIONS.get(chief.star_home) == chief.star_arrived:
        yield Formation("星反吟", NEUTRAL, "值符星落对冲宫", (chief.star_arrived,))
    if OPPOSITE_REGIONS.get(chief.gate_home) == chief.gate_arrived:
        yield Formation("门反吟", NEUTRAL, "值使门落对冲宫", (chief.gate_arrived,))
    reversed_count = sum(
        1 for region, opposite in OPPOSITE_REGIONS.items()
        if grid[region].heaven == grid[opposite].earth
    )
    if reversed_count >= 6:
        yield Formation("天地反吟", NEUTRAL, "天盘干多落对冲宫地盘干位")


# ============================================================
# HOUR-CHART FORMATIONS
# ============================================================

def _plate_stem(stem: str, instrument: str) -> str:
    return instrument if stem == "甲" else stem


def _stem_label(stem: str, instrument: str) -> str:
    return f"甲(遁{instrument})" if stem == "甲" else stem


def _hour_formations(grid: Grid, earth: Layout, heaven: Layout, instrument: str,
                     day_stem: str, hour_pair: Pillar):
    hour_stem = hour_pair.stem.chinese
    hour_branch = hour_pair.branch.chinese

    if FIVE_NON_MEETING[day_stem] == hour_stem:
        yield Formation("五不遇时", BAD, f"时干{hour_stem}克日干{day_stem}")

    day_plate = _plate_stem(day_stem, instrument)
    hour_plate = _plate_stem(hour_stem, instrument)
    day_label = _stem_label(day_stem, instrument)
    hour_label = _stem_label(hour_stem, instrument)
    # Raw regions: a stem in the center does not sit on Kun here.
    hour_heaven = heaven.placed_region(hour_plate)
    day_heaven = heaven.placed_region(day_plate)
    if hour_heaven == earth.placed_region(day_plate):
        yield Formation("飞干格", BAD, f"时干{hour_label}飞临日干{day_label}地盘宫",
                        (hour_heaven,))
    if day_heaven == earth.placed_region(hour_plate):
        yield Formation("伏干格", BAD, f"日干{day_label}伏于时干{hour_label}地盘宫",
                        (day_heaven,))

    cell = grid[region_for_branch(hour_branch)]
    for rule in HOUR_REGION_RULES:
        if rule.matches(cell):
            yield rule.emit(cell, hour_branch)


def recognize_formations(grid: Grid, chief: ChiefInfo, earth: Layout, heaven: Layout,
                         instrument: str, day_stem: str,
                         hour_pair: Optional[Pillar] = None) -> tuple:
    """
    Run the whole catalog over a grid.

    Args:
        grid: assembled nine-region grid
        chief: chief star/gate with their home and arrived regions
        earth, heaven: the two plates
        instrument: instrument of the chart's decade leader, standing in
            for 甲 in the day/hour stem checks
        day_stem: stem of the day pillar
        hour_pair: the hour pillar on hour charts, None otherwise

    Returns:
        Tuple of distinct Formations sorted by (regions, name, description)
    """
    found = set()
    for cell in grid:
        for rule in REGION_RULES:
            if rule.matches(cell):
                found.add(rule.emit(cell))
    found.update(_stem_pair_formations(grid))
    found.update(_harmony_formations(grid))
    found.update(_repetition_formations(grid, chief))
    found.update(_reversal_formations(grid, chief))
    if hour_pair is not None:
        found.update(_hour_formations(grid, earth, heaven, instrument, day_stem, hour_pair))
    return tuple(sorted(found, key=_sort_key))
