"""End-to-end chart tests against a fixed calendar."""

import json
import unittest

import pytest

from conftest import FixedCalendar, make_info
from qimen.chart import ChartRequest, compute_chart, validate_request
from qimen.errors import InputValidationError, QimenError
from qimen.formations import FormationType
from qimen.periods import ChartGranularity, SubPeriodMethod
from qimen.plates import ChartStyle


def _request(**overrides):
    fields = dict(year=1992, month=4, day=12, hour=7, minute=30,
                  style="flying", sub_period_method="pair")
    fields.update(overrides)
    return ChartRequest(**fields)


def _names_by_region(result):
    found = {}
    for formation in result.formations:
        found.setdefault(formation.regions, set()).add(formation.name)
    return found


class TestFlyingChart(unittest.TestCase):
    def setUp(self) -> None:
        self.result = compute_chart(_request(), FixedCalendar(make_info()))

    def test_period_and_leader(self) -> None:
        self.assertEqual(self.result.period.configuration_number, 7)
        self.assertEqual(self.result.leader.leader.chinese, "甲寅")
        self.assertEqual(self.result.leader.instrument, "癸")
        self.assertEqual(self.result.leader.chief_region, 4)
        self.assertEqual(self.result.chief.star_arrived, 6)

    def test_grid_cells(self) -> None:
        grid = self.result.grid
        self.assertEqual((grid[6].heaven, grid[6].earth, grid[6].gate, grid[6].star, grid[6].deity),
                         ("庚", "己", "杜", "辅", "值符"))
        self.assertEqual(grid[5].star, "禽")
        self.assertEqual(grid[5].heaven, "丙")
        self.assertEqual(grid[1].name, "坎")

    def test_markers_void_and_horse(self) -> None:
        self.assertEqual(self.result.void_regions, (1, 8))
        self.assertEqual(self.result.horse_region, 8)
        self.assertEqual(self.result.day_stem_region, 2)
        # 丙 flies into the center, which reports as Kun
        self.assertEqual(self.result.hour_stem_region, 2)

    def test_formations(self) -> None:
        self.assertEqual(_names_by_region(self.result), {
            (1,): {"白虎出力"},
            (2,): {"青龙返首", "伏干格"},
            (3,): {"门迫", "复见螣蛇"},
            (4,): {"三奇得使", "门迫", "朱雀投江", "天显时格"},
            (5,): {"三奇得使", "三奇得门", "日月并行"},
            (6,): {"刑格", "星反吟", "门反吟", "天牢"},
            (7,): {"犬遇青龙"},
            (8,): {"螣蛇相缠"},
            (9,): {"三奇得使", "门迫", "奇仪相佐"},
        })
        self.assertEqual(len(self.result.formations), 21)

    def test_formations_are_sorted_and_distinct(self) -> None:
        formations = self.result.formations
        keys = [(f.regions, f.name, f.description) for f in formations]
        self.assertEqual(keys, sorted(keys))
        self.assertEqual(len(set(formations)), len(formations))

    def test_formation_kinds(self) -> None:
        kinds = {f.name: f.kind for f in self.result.formations}
        self.assertIs(kinds["青龙返首"], FormationType.AUSPICIOUS)
        self.assertIs(kinds["天牢"], FormationType.INAUSPICIOUS)
        self.assertIs(kinds["星反吟"], FormationType.NEUTRAL)


class TestRotatingChart(unittest.TestCase):
    def setUp(self) -> None:
        self.result = compute_chart(_request(style="rotating"), FixedCalendar(make_info()))

    def test_heaven_plate(self) -> None:
        self.assertEqual(self.result.heaven.marker_at(5), "乙")
        self.assertEqual(self.result.heaven.marker_at(9), "丙")
        self.assertEqual(self.result.hour_stem_region, 9)
        self.assertEqual(self.result.day_stem_region, 2)

    def test_formations(self) -> None:
        found = _names_by_region(self.result)
        self.assertEqual(found[(5,)], {"三奇得使", "鬼遁", "日奇伏吟"})
        self.assertEqual(found[(9,)], {"三奇得使", "门迫", "星奇朱雀"})
        self.assertEqual(found[(2,)], {"青龙返首", "伏干格"})
        self.assertEqual(len(self.result.formations), 21)


def test_elapsed_days_method_changes_configuration():
    result = compute_chart(_request(sub_period_method="elapsed_days"), FixedCalendar(make_info()))
    assert result.period.configuration_number == 1
    assert result.earth.marker_at(1) == "戊"


def test_day_chart_has_no_hour_formations():
    result = compute_chart(_request(granularity="day"), FixedCalendar(make_info()))
    assert result.period.reference.chinese == "戊子"
    names = {f.name for f in result.formations}
    assert not names & {"天显时格", "地私门格", "伏干格", "飞干格", "五不遇时"}


def test_five_non_meeting_hour():
    # 戊 day, 甲 hour: 甲寅 hour in the 甲寅 decade
    info = make_info(hour="甲寅")
    result = compute_chart(_request(hour=3), FixedCalendar(info))
    assert "五不遇时" in {f.name for f in result.formations}


def test_compute_is_deterministic():
    first = compute_chart(_request(), FixedCalendar(make_info()))
    second = compute_chart(_request(), FixedCalendar(make_info()))
    assert first == second


def test_to_dict_is_json_serializable():
    data = compute_chart(_request(), FixedCalendar(make_info())).to_dict()
    text = json.dumps(data, ensure_ascii=False)
    assert '"style": "flying"' in text
    assert data["grid"]["6"]["deity"] == "值符"
    assert data["void_regions"] == [1, 8]
    assert data["period"]["configuration_number"] == 7


def test_calendar_receives_validated_request():
    calendar = FixedCalendar(make_info())
    compute_chart(_request(granularity="hour", style="rotating"), calendar)
    request = calendar.requests[0]
    assert request.granularity is ChartGranularity.HOUR
    assert request.style is ChartStyle.ROTATING
    assert request.sub_period_method is SubPeriodMethod.PAIR


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.setenv("QIMEN_DEFAULT_STYLE", "flying")
    monkeypatch.setenv("QIMEN_DEFAULT_SUB_PERIOD_METHOD", "elapsed_days")
    request = validate_request(ChartRequest(year=1992, month=4, day=12, hour=7))
    assert request.style is ChartStyle.FLYING
    assert request.sub_period_method is SubPeriodMethod.ELAPSED_DAYS


def test_built_in_defaults():
    request = validate_request(ChartRequest(year=1992, month=4, day=12, hour=7))
    assert request.style is ChartStyle.ROTATING
    assert request.sub_period_method is SubPeriodMethod.PAIR
    assert request.granularity is ChartGranularity.HOUR


@pytest.mark.parametrize("overrides", [
    {"hour": 24},
    {"hour": True},
    {"month": 0},
    {"day": 32},
    {"minute": 60},
    {"year": 1800},
    {"year": "1992"},
    {"style": "spinning"},
    {"granularity": "week"},
    {"sub_period_method": "PAIR"},
    {"is_lunar": 1},
    {"latitude": 91.0, "longitude": 120.0},
    {"longitude": -181.0},
    {"latitude": 30.0},
])
def test_invalid_requests_raise(overrides):
    calendar = FixedCalendar(make_info())
    with pytest.raises(InputValidationError):
        compute_chart(_request(**overrides), calendar)
    assert calendar.requests == []


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        validate_request(_request(month=13))
    assert issubclass(InputValidationError, QimenError)


def test_bad_default_style_in_environment(monkeypatch):
    monkeypatch.setenv("QIMEN_DEFAULT_STYLE", "sideways")
    with pytest.raises(InputValidationError):
        validate_request(ChartRequest(year=1992, month=4, day=12, hour=7))


def test_stem_in_center_is_not_on_kun_for_stem_formations():
    # 丙 flies into the center on heaven while sitting on Kun on earth
    info = make_info(day="丙戌", hour="丙申")
    result = compute_chart(_request(), FixedCalendar(info))
    assert result.heaven.placed_region("丙") == 5
    assert result.earth.placed_region("丙") == 2
    names = {f.name for f in result.formations}
    assert "飞干格" not in names
    assert "伏干格" not in names


def test_shensha_exposed_per_region():
    result = compute_chart(_request(), FixedCalendar(make_info()))
    grouped = result.shensha_by_region
    assert sorted(grouped) == list(range(1, 10))
    assert {s.name for s in grouped[3]} == {"天德", "月德", "天医"}
    data = result.to_dict()["shensha"]
    assert [s["name"] for s in data["9"]] == ["丁马", "羊刃"]
    assert data["1"] == []
