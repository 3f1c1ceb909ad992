"""Tests for display names and enum captions."""

from thinqmap.i18n import EnumTranslator, PropertyNamer, camel_to_snake, humanize
from thinqmap.i18n.text import is_default_location, location_label


def test_text_helpers():
    assert camel_to_snake("relativeHourToStart") == "relative_hour_to_start"
    assert camel_to_snake("air-conJobMode") == "air_con_job_mode"
    assert humanize("VERY_BAD") == "Very Bad"
    assert humanize("targetTemperature") == "Target Temperature"
    assert location_label("DEEP_FREEZER") == "Deep freezer"
    assert is_default_location(None)
    assert is_default_location("main")
    assert not is_default_location("FREEZER")


def test_enum_translation_by_language():
    translator = EnumTranslator("de")

    assert translator.translate("currentJobMode", "COOL") == "Kühlen"
    assert translator.translate("current_job_mode", "COOL", language="en") == "Cool"
    assert translator.translate("totalPollutionLevel", "VERY_BAD") == "Sehr schlecht"


def test_unknown_token_is_humanized():
    translator = EnumTranslator()

    assert translator.translate("currentJobMode", "TURBO_BOOST") == "Turbo Boost"
    assert translator.translate("unknownProperty", "SOME_VALUE") == "Some Value"


def test_missing_language_falls_back_to_english():
    assert EnumTranslator("fr").translate("doorState", "CLOSE") == "Closed"


def test_translations_for_property():
    captions = EnumTranslator("de").translations_for("timerStatus")

    assert captions == {"SET": "Gesetzt", "UNSET": "Nicht gesetzt"}


def test_added_translations_stay_on_the_instance():
    first = EnumTranslator()
    first.add_translation("ecoMode", "ECO", en="Eco", de="Öko")

    assert first.translate("eco_mode", "ECO") == "Eco"
    assert first.translate("ecoMode", "ECO", language="de") == "Öko"
    assert EnumTranslator().translate("ecoMode", "ECO") == "Eco"
    assert EnumTranslator().translations_for("ecoMode") == {}


def test_property_names():
    namer = PropertyNamer("en")

    assert namer.name_for("targetTemperature", "temperature") == "Target Temperature"
    assert namer.name_for("targetTemperature", "temperature", "MAIN") == "Target Temperature"
    assert namer.name_for("targetTemperature", "temperature", "FREEZER") == "Freezer Target Temperature"
    assert namer.name_for("somethingNew", "resource") == "Something New"


def test_generic_properties_use_resource_name():
    assert PropertyNamer("en").name_for("currentState", "runState") == "Run State"
    assert PropertyNamer("de").name_for("currentState", "runState") == "Betriebszustand"
    assert PropertyNamer("en").name_for("value", "filterInfo") == "Filter Info"


def test_timer_names():
    namer = PropertyNamer("en")

    assert namer.name_for("relativeHourToStart", "timer") == "Start Time Relative (Hours)"
    assert namer.name_for("relativeMinuteToStop", "timer") == "Stop Time Relative (Minutes)"
    assert namer.name_for("relativeStartTimer", "timer") == "Timer Relative Start"
    assert namer.name_for("relativeStopTimer", "sleepTimer") == "Sleep Timer"
    assert namer.name_for("relativeHourToStop", "sleepTimer") == "Stop Time Sleep Timer Relative (Hours)"
    assert PropertyNamer("de").name_for("relativeHourToStart", "timer") == "Startzeit Relativ (Stunden)"
