"""Tests for the Read Engine."""

from thinqmap.engine.descriptors import Descriptor
from thinqmap.engine.flatten import flatten
from thinqmap.engine.reader import ReadEngine, apply_bool_tokens, hm_to_minutes, translate_map


def _descriptor(read, type_="string"):
    return Descriptor.from_dict({"ident": "X", "type": type_, "read": read})


def test_first_populated_source_wins():
    descriptor = _descriptor({"sources": ["temperature.targetTemperature", "temperature.0.targetTemperature"]})
    status = flatten({"temperature": [{"targetTemperature": 21}]})

    assert ReadEngine().read(descriptor, status) == 21


def test_missing_sources_yield_none():
    descriptor = _descriptor({"sources": ["timer.relativeHourToStart"]})

    assert ReadEngine().read(descriptor, {}) is None
    assert ReadEngine().read(descriptor, {"timer.relativeHourToStart": None}) is None


def test_value_map_is_case_insensitive_by_default():
    descriptor = _descriptor({"sources": ["operation.airConOperationMode"], "map": {"POWER_ON": True, "POWER_OFF": False}})

    assert ReadEngine().read(descriptor, {"operation.airConOperationMode": "power_on"}) is True
    assert ReadEngine().read(descriptor, {"operation.airConOperationMode": "POWER_OFF"}) is False


def test_value_map_case_sensitivity_per_descriptor_and_engine():
    strict = _descriptor({"sources": ["mode"], "map": {"COOL": "Cooling"}, "mapCaseInsensitive": False})
    inherit = _descriptor({"sources": ["mode"], "map": {"COOL": "Cooling"}})

    assert ReadEngine().read(strict, {"mode": "cool"}) == "cool"
    assert ReadEngine(case_insensitive=False).read(inherit, {"mode": "cool"}) == "cool"
    assert ReadEngine(case_insensitive=False).read(inherit, {"mode": "COOL"}) == "Cooling"


def test_unmapped_value_passes_through():
    descriptor = _descriptor({"sources": ["runState.currentState"], "map": {"RUNNING": "Washing"}})

    assert ReadEngine().read(descriptor, {"runState.currentState": "RINSING"}) == "RINSING"


def test_array_selector_reads_matching_element(fridge_status):
    descriptor = _descriptor(
        {"array": {"container": "temperature", "where": {"locationName": "FREEZER"}, "path": "targetTemperature"}}
    )

    assert ReadEngine().read(descriptor, flatten(fridge_status)) == -18


def test_array_selector_with_tokens_and_map():
    status = flatten({"zones": [{"name": "A", "power": "ON"}, {"name": "B", "power": "OFF"}]})
    tokens = _descriptor(
        {"array": {"container": "zones", "where": {"name": "B"}, "path": "power", "string_true": ["ON"], "string_false": ["OFF"]}}
    )
    mapped = _descriptor({"array": {"container": "zones", "where": {"name": "A"}, "path": "power", "map": {"on": "Running"}}})

    assert ReadEngine().read(tokens, status) is False
    assert ReadEngine().read(mapped, status) == "Running"


def test_array_selector_without_match_falls_through_to_sources():
    descriptor = _descriptor(
        {
            "sources": ["zones.power"],
            "array": {"container": "zones", "where": {"name": "Z"}, "path": "power"},
        }
    )

    assert ReadEngine().read(descriptor, {"zones.0.name": "A", "zones.power": "ON"}) == "ON"


def test_composite_hm_to_minutes():
    descriptor = _descriptor(
        {"composite": {"combine": "hm_to_minutes", "parts": [{"path": "timer.remainHour"}, {"path": "timer.remainMinute"}]}}
    )

    assert ReadEngine().read(descriptor, {"timer.remainHour": 1, "timer.remainMinute": 5}) == 65
    assert ReadEngine().read(descriptor, {"timer.remainMinute": 40}) == 40
    assert ReadEngine().read(descriptor, {}) is None


def test_unknown_combinator_is_ignored():
    descriptor = _descriptor({"composite": {"combine": "sum", "parts": ["a", "b"]}, "sources": ["a"]})

    assert ReadEngine().read(descriptor, {"a": 3, "b": 4}) == 3


def test_sources_with_bool_tokens(washer_status):
    descriptor = _descriptor(
        {"sources": ["runState.currentState"], "string_true": ["running"], "string_false": ["END"]},
        type_="boolean",
    )

    assert ReadEngine().read(descriptor, flatten(washer_status)) is True
    assert ReadEngine().read(descriptor, {"runState.currentState": "END"}) is False
    assert ReadEngine().read(descriptor, {"runState.currentState": "PAUSE"}) == "PAUSE"


def test_map_is_tried_before_array():
    descriptor = _descriptor(
        {
            "sources": ["mode"],
            "map": {"A": "from map"},
            "array": {"container": "zones", "path": "mode"},
        }
    )
    status = {"mode": "A", "zones.0.mode": "from array"}

    assert ReadEngine().read(descriptor, status) == "from map"
    assert ReadEngine().read(descriptor, {"zones.0.mode": "from array"}) == "from array"


def test_helpers():
    assert hm_to_minutes("2", None) == 120
    assert translate_map(True, {"true": "On"}, case_insensitive=False) == "On"
    assert apply_bool_tokens("SET", (), ()) == "SET"
    assert apply_bool_tokens("set", ("SET",), ("UNSET",)) is True
