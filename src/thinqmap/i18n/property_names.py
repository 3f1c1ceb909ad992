"""Human-readable names for auto-discovered properties."""

import re
from typing import Optional

from thinqmap.i18n.text import camel_to_snake, humanize, is_default_location, location_label

PROPERTY_NAMES: dict[str, dict[str, str]] = {
    "de": {
        "remote_control_enabled": "Fernsteuerung",
        "operation": "Power",
        "current_state": "Status",
        "run_state": "Betriebszustand",
        "door_state": "Türstatus",
        "remain_hour": "Verbleibende Stunden",
        "remain_minute": "Verbleibende Minuten",
        "remain_second": "Verbleibende Sekunden",
        "total_hour": "Gesamtdauer (Stunden)",
        "total_minute": "Gesamtdauer (Minuten)",
        "relative_hour_to_start": "Startzeit (Stunden)",
        "relative_minute_to_start": "Startzeit (Minuten)",
        "relative_hour_to_stop": "Stoppzeit (Stunden)",
        "relative_minute_to_stop": "Stoppzeit (Minuten)",
        "target_temperature": "Zieltemperatur",
        "current_temperature": "Ist-Temperatur",
        "cool_target_temperature": "Kühl-Zieltemperatur",
        "heat_target_temperature": "Heiz-Zieltemperatur",
        "temperature_unit": "Temperatur-Einheit",
        "current_humidity": "Aktuelle Luftfeuchtigkeit",
        "target_humidity": "Ziel-Luftfeuchtigkeit",
        "pm1": "Feinstaub PM1",
        "pm2": "Feinstaub PM2.5",
        "pm10": "Feinstaub PM10",
        "total_pollution_level": "Verschmutzungsstufe",
        "monitoring_enabled": "Überwachung aktiv",
        "wind_strength": "Windstärke",
        "battery_level": "Akkustand",
        "battery_percent": "Akku",
        "display_light": "Display-Beleuchtung",
        "power_save_enabled": "Energiesparmodus",
        "filter_remain_percent": "Filter-Restlaufzeit",
        "used_time": "Nutzungszeit",
        "operation_mode": "Betriebsmodus",
        "air_con_operation_mode": "Power",
        "current_job_mode": "Betriebsmodus",
        "rotate_up_down": "Vertikal schwenken",
        "rotate_left_right": "Horizontal schwenken",
    },
    "en": {
        "remote_control_enabled": "Remote Control",
        "operation": "Power",
        "current_state": "Current State",
        "run_state": "Run State",
        "door_state": "Door State",
        "remain_hour": "Remaining Hours",
        "remain_minute": "Remaining Minutes",
        "remain_second": "Remaining Seconds",
        "total_hour": "Total Hours",
        "total_minute": "Total Minutes",
        "relative_hour_to_start": "Start Time (Hours)",
        "relative_minute_to_start": "Start Time (Minutes)",
        "relative_hour_to_stop": "Stop Time (Hours)",
        "relative_minute_to_stop": "Stop Time (Minutes)",
        "target_temperature": "Target Temperature",
        "current_temperature": "Current Temperature",
        "cool_target_temperature": "Cool Target Temperature",
        "heat_target_temperature": "Heat Target Temperature",
        "temperature_unit": "Temperature Unit",
        "current_humidity": "Current Humidity",
        "target_humidity": "Target Humidity",
        "pm1": "PM1",
        "pm2": "PM2.5",
        "pm10": "PM10",
        "total_pollution_level": "Pollution Level",
        "monitoring_enabled": "Monitoring",
        "wind_strength": "Fan Speed",
        "battery_level": "Battery Level",
        "battery_percent": "Battery",
        "display_light": "Display Light",
        "power_save_enabled": "Power Save",
        "filter_remain_percent": "Filter Remaining",
        "used_time": "Used Time",
        "operation_mode": "Operation Mode",
        "air_con_operation_mode": "Power",
        "current_job_mode": "Operation Mode",
        "rotate_up_down": "Rotate Up Down",
        "rotate_left_right": "Rotate Left Right",
    },
}

# Property names too vague to stand alone; the resource name is used instead
GENERIC_PROPERTIES = frozenset({"current_state", "state", "status", "value", "enabled", "mode"})

_TIMER_RESOURCE = re.compile(r"^(timer|sleep_timer)$", re.IGNORECASE)

_TIMER_LABELS = {
    "de": {
        "sleep": "Sleep-Timer",
        "relative_start": "Timer Relativ Start",
        "relative_stop": "Timer Relativ Stop",
        "absolute_start": "Timer Absolut Start",
        "absolute_stop": "Timer Absolut Stop",
        "relative": "Relativ ",
        "absolute": "Absolut ",
        "start": "Startzeit",
        "stop": "Stoppzeit",
        "sleep_prefix": "Sleeptimer ",
        "hours": "(Stunden)",
        "minutes": "(Minuten)",
    },
    "en": {
        "sleep": "Sleep Timer",
        "relative_start": "Timer Relative Start",
        "relative_stop": "Timer Relative Stop",
        "absolute_start": "Timer Absolute Start",
        "absolute_stop": "Timer Absolute Stop",
        "relative": "Relative ",
        "absolute": "Absolute ",
        "start": "Start Time",
        "stop": "Stop Time",
        "sleep_prefix": "Sleep Timer ",
        "hours": "(Hours)",
        "minutes": "(Minutes)",
    },
}


class PropertyNamer:
    """Derive display names from resource/property names of a profile."""

    def __init__(self, language: str = "en", table: Optional[dict[str, str]] = None):
        self.language = language
        if table is None:
            table = PROPERTY_NAMES.get(language) or PROPERTY_NAMES["en"]
        self._table = dict(table)

    def name_for(self, property_name: str, resource: str, location: Optional[str] = None) -> str:
        prop = camel_to_snake(property_name)
        res = camel_to_snake(resource)

        if _TIMER_RESOURCE.match(res):
            label = self._timer_label(property_name, is_sleep="sleep" in res)
            if label:
                return label

        if prop in GENERIC_PROPERTIES:
            name = self._table.get(res) or humanize(resource)
        else:
            name = self._table.get(prop) or humanize(property_name)

        if not is_default_location(location):
            return f"{location_label(location)} {name}"
        return name

    def _timer_label(self, property_name: str, is_sleep: bool) -> Optional[str]:
        labels = _TIMER_LABELS.get(self.language) or _TIMER_LABELS["en"]
        lowered = property_name.lower()

        if is_sleep and re.search(r"relative.*stop.*timer", lowered):
            return labels["sleep"]
        if not is_sleep:
            for kind in ("relative_start", "relative_stop", "absolute_start", "absolute_stop"):
                scope, edge = kind.split("_")
                if re.search(rf"{scope}.*{edge}.*timer", lowered):
                    return labels[kind]

        scope = ""
        if "relative" in lowered:
            scope = labels["relative"]
        elif "absolute" in lowered:
            scope = labels["absolute"]

        match = re.search(r"(hour|minute)s?.*to.*(start|stop)", lowered)
        if not match:
            return None
        unit = labels["hours"] if match.group(1) == "hour" else labels["minutes"]
        prefix = labels["sleep_prefix"] if is_sleep else ""
        return f"{labels[match.group(2)]} {prefix}{scope}{unit}"
