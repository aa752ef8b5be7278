"""
Shen Sha (神煞): named spirits placed on the grid from the chart's pillars.

Most spirits are a branch looked up from one pillar (day stem, day branch,
month branch or year branch); the spirit lands on that branch's region.
A few are stems instead and land where the stem sits on the earth plate.
Like the formation catalog, every spirit is a row of data.
"""

from dataclasses import dataclass

from qimen.formations import AUS, BAD, NEUTRAL, FormationType
from qimen.plates import Layout
from qimen.rings import REGIONS, region_for_branch
from qimen.sexagenary import STEM_BY_CHINESE


@dataclass(frozen=True)
class ShenSha:
    name: str
    kind: FormationType
    description: str
    region: int

    def to_dict(self):
        return {
            "name": self.name,
            "type": self.kind.value,
            "description": self.description,
            "region": self.region,
        }


# ============================================================
# LOOKUP TABLES
# ============================================================

# Day stem → the two noble branches (甲戊庚牛羊, 乙己鼠猴乡 ...)
NOBLE_BRANCHES = {
    "甲": ("丑", "未"), "戊": ("丑", "未"), "庚": ("丑", "未"),
    "乙": ("子", "申"), "己": ("子", "申"),
    "丙": ("亥", "酉"), "丁": ("亥", "酉"),
    "壬": ("卯", "巳"), "癸": ("卯", "巳"),
    "辛": ("午", "寅"),
}

# Triad branch → the branch its triad travels to (驿马)
HORSE = {
    "寅": "申", "午": "申", "戌": "申",
    "申": "寅", "子": "寅", "辰": "寅",
    "亥": "巳", "卯": "巳", "未": "巳",
    "巳": "亥", "酉": "亥", "丑": "亥",
}

# Triad branch → the triad's storehouse (华盖)
CANOPY = {
    "寅": "戌", "午": "戌", "戌": "戌",
    "申": "辰", "子": "辰", "辰": "辰",
    "亥": "未", "卯": "未", "未": "未",
    "巳": "丑", "酉": "丑", "丑": "丑",
}

# Triad branch → peach blossom (咸池)
PEACH_BLOSSOM = {
    "寅": "卯", "午": "卯", "戌": "卯",
    "申": "酉", "子": "酉", "辰": "酉",
    "亥": "子", "卯": "子", "未": "子",
    "巳": "午", "酉": "午", "丑": "午",
}

# Month branch → heavenly virtue; four months take a branch instead of a stem
HEAVENLY_VIRTUE = {
    "寅": "丁", "卯": "申", "辰": "壬", "巳": "辛",
    "午": "亥", "未": "甲", "申": "癸", "酉": "寅",
    "戌": "丙", "亥": "乙", "子": "巳", "丑": "庚",
}

# Month branch → monthly virtue stem
MONTHLY_VIRTUE = {
    "寅": "丙", "午": "丙", "戌": "丙",
    "申": "壬", "子": "壬", "辰": "壬",
    "亥": "甲", "卯": "甲", "未": "甲",
    "巳": "庚", "酉": "庚", "丑": "庚",
}

# Day stem → salary branch (禄)
SALARY = {
    "甲": "寅", "乙": "卯", "丙": "巳", "丁": "午", "戊": "巳",
    "己": "午", "庚": "申", "辛": "酉", "壬": "亥", "癸": "子",
}

# Month branch → the branch before it (天医)
HEAVENLY_DOCTOR = {
    "寅": "丑", "卯": "寅", "辰": "卯", "巳": "辰",
    "午": "巳", "未": "午", "申": "未", "酉": "申",
    "戌": "酉", "亥": "戌", "子": "亥", "丑": "子",
}

# Yang day stem → blade branch; yin stems take none
BLADE = {"甲": "卯", "丙": "午", "戊": "午", "庚": "酉", "壬": "子"}


# ============================================================
# RULES
# ============================================================

@dataclass(frozen=True)
class BranchRule:
    """A spirit found by looking one pillar up in a branch table.

    ``source`` names the pillar field read: day_stem, day_branch,
    month_branch or year_branch. Table values may be one branch or a
    tuple of them. ``description`` may use {branch}.
    """
    name: str
    kind: FormationType
    description: str
    source: str
    table: dict


BRANCH_RULES = (
    BranchRule("天乙贵人", AUS, "最尊贵之神，主贵人相助、逢凶化吉（{branch}位）",
               "day_stem", NOBLE_BRANCHES),
    BranchRule("日马", NEUTRAL, "主迁动变化，出行奔波，求财谋事有动象（{branch}位）",
               "day_branch", HORSE),
    BranchRule("禄神", AUS, "主财禄、俸禄，利求财求官（{branch}位）", "day_stem", SALARY),
    BranchRule("桃花", NEUTRAL, "主姻缘、人缘、桃色，婚恋类事重点参考（{branch}位）",
               "day_branch", PEACH_BLOSSOM),
    BranchRule("天医", AUS, "主医药、治疗，疾病类事重点参考（{branch}位）",
               "month_branch", HEAVENLY_DOCTOR),
    BranchRule("羊刃", BAD, "主刚烈、冲动，凶煞之一，主意外伤灾（{branch}位）", "day_stem", BLADE),
)

VIRTUE_RULES = (
    ("天德", AUS, "化凶为吉，主有天助，逢难呈祥", HEAVENLY_VIRTUE),
    ("月德", AUS, "化凶为吉，主有贵人暗助", MONTHLY_VIRTUE),
)


def _pillar_keys(info) -> dict:
    return {
        "day_stem": info.day_pillar.stem.chinese,
        "day_branch": info.day_pillar.branch.chinese,
        "month_branch": info.month_pillar.branch.chinese,
        "year_branch": info.year_pillar.branch.chinese,
    }


def _branch_rule_spirits(keys: dict):
    for rule in BRANCH_RULES:
        found = rule.table.get(keys[rule.source])
        if found is None:
            continue
        branches = found if isinstance(found, tuple) else (found,)
        for b in branches:
            yield ShenSha(rule.name, rule.kind, rule.description.format(branch=b),
                          region_for_branch(b))


def _canopy_spirits(keys: dict):
    year_branch, day_branch = keys["year_branch"], keys["day_branch"]
    year_canopy = CANOPY[year_branch]
    yield ShenSha("华盖", NEUTRAL, f"年华盖（{year_canopy}位）", region_for_branch(year_canopy))
    day_canopy = CANOPY[day_branch]
    if day_branch != year_branch and day_canopy != year_canopy:
        yield ShenSha("华盖", NEUTRAL, f"日华盖（{day_canopy}位）", region_for_branch(day_canopy))


def _virtue_spirits(keys: dict, earth: Layout, instrument: str):
    for name, kind, description, table in VIRTUE_RULES:
        value = table[keys["month_branch"]]
        if value in STEM_BY_CHINESE:
            # 甲 hides behind the chart's instrument
            stem = instrument if value == "甲" else value
            yield ShenSha(name, kind, f"{description}（{value}干）", earth.placed_region(stem))
        else:
            yield ShenSha(name, kind, f"{description}（{value}位）", region_for_branch(value))


def find_shensha(info, earth: Layout, instrument: str) -> tuple:
    """
    Place every spirit for a chart.

    Args:
        info: resolved CalendarInfo; the year, month and day pillars are read
        earth: the earth plate, for spirits that are stems
        instrument: instrument of the chart's decade leader, standing in for 甲

    Returns:
        Tuple of ShenSha sorted by (region, name, description)
    """
    keys = _pillar_keys(info)
    found = list(_branch_rule_spirits(keys))
    found.extend(_canopy_spirits(keys))
    found.extend(_virtue_spirits(keys, earth, instrument))
    found.append(ShenSha("太岁", NEUTRAL, f"岁君所在，宜静不宜动（{keys['year_branch']}年）",
                         region_for_branch(keys["year_branch"])))
    found.append(ShenSha("丁马", AUS, "丁奇落宫，主文书信息，利考试文章", earth.placed_region("丁")))
    return tuple(sorted(set(found), key=lambda s: (s.region, s.name, s.description)))


def shensha_by_region(spirits: tuple) -> dict:
    """Group spirits by region; every region 1-9 is present."""
    grouped = {r: [] for r in REGIONS}
    for spirit in spirits:
        grouped[spirit.region].append(spirit)
    return {r: tuple(items) for r, items in grouped.items()}
