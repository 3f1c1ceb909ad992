"""Tests for the Plan Builder."""

from thinqmap.engine.descriptors import Descriptor, parse_descriptor_document
from thinqmap.engine.flatten import flatten
from thinqmap.engine.planner import PlanBuilder, action_enabled, default_digits, should_create, writable_keys
from thinqmap.engine.probe import ProfileProbe
from thinqmap.engine.reader import ReadEngine

DESCRIPTORS = [
    {
        "ident": "TIMER_START_REL_HOUR",
        "type": "integer",
        "create": {"when": "profileHasAny", "keys": ["timer.relativeHourToStart"]},
        "read": {"sources": ["timer.relativeHourToStart"]},
        "write": {"attribute": {"resource": "timer", "property": "relativeHourToStart"}},
        "action": {"enableWhen": "profile-writable-any"},
    },
    {
        "ident": "REMAINING_TIME",
        "type": "integer",
        "create": {"when": "statusHasAny", "keys": ["timer.remainHour"]},
        "read": {"composite": {"combine": "hm_to_minutes", "parts": ["timer.remainHour", "timer.remainMinute"]}},
    },
    {
        "ident": "DRYER_ONLY",
        "create": {"when": "profileHasAll", "keys": ["dryer.level", "dryer.mode"]},
        "action": {"enableWhen": "always"},
    },
    {
        "ident": "ALWAYS_ON",
        "type": "boolean",
        "action": {"enableWhen": "always"},
        "visibility": {"hidden": True},
    },
    {
        "ident": "TARGET_TEMPERATURE",
        "type": "float",
        "create": {"when": "profileHasAny", "keys": ["temperature.targetTemperature"]},
        "presentation": {
            "kind": "slider",
            "min": 16,
            "rangeFromProfile": {
                "min": ["temperature.targetTemperature.value.w.min"],
                "max": ["temperature.targetTemperature.value.w.max"],
                "step": ["temperature.targetTemperature.value.w.step"],
            },
        },
    },
    {
        "ident": "MODE",
        "presentation": {"kind": "buttons", "options": [{"value": "COOL", "caption": "Cool"}, {"value": "FAN"}]},
    },
]

PROFILE = {
    "property": {
        "timer": {"relativeHourToStart": {"type": "number", "mode": ["r", "w"]}},
        "temperature": {"targetTemperature": {"type": "range", "mode": ["r", "w"], "value": {"w": {"min": 18, "max": 30, "step": 0.5}}}},
    }
}

STATUS = {"timer": {"relativeHourToStart": 2, "remainHour": 1, "remainMinute": 10}}


def _plan(translate=None, profile=PROFILE, status=STATUS):
    builder = PlanBuilder(ReadEngine(), translate=translate)
    descriptors = parse_descriptor_document(DESCRIPTORS)
    return {e.ident: e for e in builder.build(descriptors, ProfileProbe(flatten(profile)), flatten(status))}


def test_plan_keeps_descriptor_order():
    builder = PlanBuilder(ReadEngine())
    plan = builder.build(parse_descriptor_document(DESCRIPTORS), ProfileProbe(flatten(PROFILE)), flatten(STATUS))

    assert [e.ident for e in plan] == [d["ident"] for d in DESCRIPTORS]


def test_create_rules_and_initial_values():
    plan = _plan()

    assert plan["TIMER_START_REL_HOUR"].should_create
    assert plan["TIMER_START_REL_HOUR"].initial_value == 2
    assert plan["REMAINING_TIME"].should_create
    assert plan["REMAINING_TIME"].initial_value == 70
    assert not plan["DRYER_ONLY"].should_create
    assert plan["DRYER_ONLY"].initial_value is None


def test_enable_action_requires_creation():
    plan = _plan()

    assert plan["TIMER_START_REL_HOUR"].enable_action
    assert plan["ALWAYS_ON"].enable_action
    assert not plan["DRYER_ONLY"].enable_action
    assert not plan["REMAINING_TIME"].enable_action


def test_hidden_flag_and_to_dict():
    entry = _plan()["ALWAYS_ON"]

    assert entry.hidden
    assert entry.to_dict() == {
        "ident": "ALWAYS_ON",
        "type": "boolean",
        "name": "ALWAYS_ON",
        "hidden": True,
        "shouldCreate": True,
        "presentation": None,
        "enableAction": True,
    }
    assert _plan()["TIMER_START_REL_HOUR"].to_dict()["initialValue"] == 2


def test_range_from_profile_fills_missing_values_and_digits():
    presentation = _plan()["TARGET_TEMPERATURE"].presentation

    assert presentation["range"] == {"min": 16, "max": 30, "step": 0.5}
    assert presentation["digits"] == 1


def test_names_and_captions_are_translated():
    captions = {"MODE": "Modus", "Cool": "Kühlen"}
    plan = _plan(translate=lambda text: captions.get(text, text))

    assert plan["MODE"].name == "Modus"
    assert plan["MODE"].presentation["options"] == [
        {"value": "COOL", "caption": "Kühlen"},
        {"value": "FAN", "caption": "FAN"},
    ]


def test_planning_is_idempotent():
    first = [e.to_dict() for e in _plan().values()]
    second = [e.to_dict() for e in _plan().values()]

    assert first == second


def test_empty_profile_only_creates_unconditional_descriptors():
    plan = _plan(profile=None, status=None)

    assert [ident for ident, e in plan.items() if e.should_create] == ["ALWAYS_ON", "MODE"]


def test_default_digits():
    assert default_digits(None) == 0
    assert default_digits(1) == 0
    assert default_digits(0.5) == 1
    assert default_digits(0.1) == 2


def test_writable_keys_fall_back_to_attribute_targets():
    descriptor = parse_descriptor_document(DESCRIPTORS)[0]

    assert writable_keys(descriptor) == ("timer.relativeHourToStart",)
    assert writable_keys(Descriptor(ident="X")) == ()


def test_profile_writable_any_without_writable_mode():
    descriptor = parse_descriptor_document(DESCRIPTORS)[0]
    read_only = ProfileProbe(flatten({"timer": {"relativeHourToStart": {"type": "number", "mode": ["r"]}}}))

    assert should_create(descriptor, read_only, {})
    assert not action_enabled(descriptor, read_only)
