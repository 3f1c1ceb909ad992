"""Display captions for enum tokens reported by ThinQ appliances."""

import copy
from typing import Optional

from thinqmap.i18n.text import camel_to_snake, humanize

# property (snake case) -> token -> language -> caption
ENUM_CAPTIONS: dict[str, dict[str, dict[str, str]]] = {
    "washer_operation_mode": {
        "START": {"de": "Starten", "en": "Start"},
        "STOP": {"de": "Stoppen", "en": "Stop"},
        "POWER_OFF": {"de": "Ausschalten", "en": "Power Off"},
        "PAUSE": {"de": "Pausieren", "en": "Pause"},
        "WAKE_UP": {"de": "Aufwecken", "en": "Wake Up"},
    },
    "dryer_operation_mode": {
        "START": {"de": "Starten", "en": "Start"},
        "STOP": {"de": "Stoppen", "en": "Stop"},
        "POWER_OFF": {"de": "Ausschalten", "en": "Power Off"},
        "WAKE_UP": {"de": "Aufwecken", "en": "Wake Up"},
    },
    "current_state": {
        "RUNNING": {"de": "Läuft", "en": "Running"},
        "PAUSE": {"de": "Pausiert", "en": "Paused"},
        "END": {"de": "Fertig", "en": "Finished"},
        "COMPLETE": {"de": "Abgeschlossen", "en": "Complete"},
        "ERROR": {"de": "Fehler", "en": "Error"},
        "INITIAL": {"de": "Bereit", "en": "Ready"},
        "RESERVED": {"de": "Reserviert", "en": "Reserved"},
        "RINSING": {"de": "Spülen", "en": "Rinsing"},
        "SPINNING": {"de": "Schleudern", "en": "Spinning"},
        "DRYING": {"de": "Trocknen", "en": "Drying"},
        "COOLING": {"de": "Abkühlen", "en": "Cooling"},
        "COOL_DOWN": {"de": "Abkühlen", "en": "Cool Down"},
        "SOAKING": {"de": "Einweichen", "en": "Soaking"},
        "PREWASH": {"de": "Vorwäsche", "en": "Pre-wash"},
        "DETECTING": {"de": "Erkennung", "en": "Detecting"},
        "FIRMWARE": {"de": "Firmware-Update", "en": "Firmware Update"},
        "POWER_OFF": {"de": "Ausgeschaltet", "en": "Power Off"},
        "OFF": {"de": "Aus", "en": "Off"},
        "ON": {"de": "An", "en": "On"},
        "REFRESHING": {"de": "Auffrischen", "en": "Refreshing"},
        "RINSE_HOLD": {"de": "Spülstopp", "en": "Rinse Hold"},
        "WRINKLE_CARE": {"de": "Knitterschutz", "en": "Wrinkle Care"},
        "SLEEP": {"de": "Schlafmodus", "en": "Sleep"},
    },
    "air_con_operation_mode": {
        "POWER_ON": {"de": "Einschalten", "en": "Power On"},
        "POWER_OFF": {"de": "Ausschalten", "en": "Power Off"},
    },
    "air_purifier_operation_mode": {
        "POWER_ON": {"de": "Einschalten", "en": "Power On"},
        "POWER_OFF": {"de": "Ausschalten", "en": "Power Off"},
    },
    "door_state": {
        "OPEN": {"de": "Offen", "en": "Open"},
        "CLOSE": {"de": "Geschlossen", "en": "Closed"},
        "CLOSED": {"de": "Geschlossen", "en": "Closed"},
    },
    "wind_strength": {
        "LOW": {"de": "Niedrig", "en": "Low"},
        "MID": {"de": "Mittel", "en": "Medium"},
        "HIGH": {"de": "Hoch", "en": "High"},
        "AUTO": {"de": "Automatik", "en": "Auto"},
        "POWER": {"de": "Maximum", "en": "Power"},
        "TURBO": {"de": "Turbo", "en": "Turbo"},
    },
    "battery_level": {
        "HIGH": {"de": "Hoch", "en": "High"},
        "MID": {"de": "Mittel", "en": "Medium"},
        "LOW": {"de": "Niedrig", "en": "Low"},
        "CHARGING": {"de": "Lädt", "en": "Charging"},
    },
    "temperature_unit": {
        "CELSIUS": {"de": "Celsius", "en": "Celsius"},
        "FAHRENHEIT": {"de": "Fahrenheit", "en": "Fahrenheit"},
        "C": {"de": "°C", "en": "°C"},
        "F": {"de": "°F", "en": "°F"},
    },
    "current_job_mode": {
        "COOL": {"de": "Kühlen", "en": "Cool"},
        "HEAT": {"de": "Heizen", "en": "Heat"},
        "AUTO": {"de": "Automatik", "en": "Auto"},
        "FAN": {"de": "Nur Lüfter", "en": "Fan Only"},
        "DRY": {"de": "Entfeuchten", "en": "Dry"},
        "AIR_DRY": {"de": "Entfeuchten", "en": "Air Dry"},
        "AIR_CLEAN": {"de": "Luftreinigung", "en": "Air Clean"},
        "AROMA": {"de": "Aroma", "en": "Aroma"},
        "MANUAL": {"de": "Manuell", "en": "Manual"},
        "SLEEP": {"de": "Schlafmodus", "en": "Sleep"},
    },
    "air_clean_operation_mode": {
        "START": {"de": "Starten", "en": "Start"},
        "STOP": {"de": "Stoppen", "en": "Stop"},
    },
    "total_pollution_level": {
        "INVALID": {"de": "Ungültig", "en": "Invalid"},
        "GOOD": {"de": "Gut", "en": "Good"},
        "NORMAL": {"de": "Normal", "en": "Normal"},
        "BAD": {"de": "Schlecht", "en": "Bad"},
        "VERY_BAD": {"de": "Sehr schlecht", "en": "Very Bad"},
    },
    "odor_level": {
        "GOOD": {"de": "Gut", "en": "Good"},
        "NORMAL": {"de": "Normal", "en": "Normal"},
        "BAD": {"de": "Schlecht", "en": "Bad"},
    },
    "monitoring_enabled": {
        "ALWAYS": {"de": "Immer", "en": "Always"},
        "ON_WORKING": {"de": "Bei Betrieb", "en": "On Working"},
    },
    "display_light": {
        "ON": {"de": "An", "en": "On"},
        "OFF": {"de": "Aus", "en": "Off"},
    },
    "timer_status": {
        "SET": {"de": "Gesetzt", "en": "Set"},
        "UNSET": {"de": "Nicht gesetzt", "en": "Unset"},
    },
}


class EnumTranslator:
    """Resolve enum tokens to captions, falling back to a humanized token.

    Each instance owns a copy of the caption table, so runtime additions
    never leak between translators.
    """

    def __init__(
        self,
        language: str = "en",
        table: Optional[dict[str, dict[str, dict[str, str]]]] = None,
    ):
        self.language = language
        self._table = copy.deepcopy(ENUM_CAPTIONS if table is None else table)

    def translate(self, property_name: str, token: str, language: Optional[str] = None) -> str:
        """Caption for ``token`` of ``property_name``.

        Args:
            property_name: Property name in any case style (``currentJobMode``)
            token: Raw enum token (``AIR_DRY``)
            language: Override for the translator's default language

        Returns:
            Translated caption, or the humanized token if none is known
        """
        lang = language or self.language
        captions = self._lookup(property_name).get(token)
        if not captions:
            return humanize(token)
        return captions.get(lang) or captions.get("en") or humanize(token)

    def translations_for(self, property_name: str, language: Optional[str] = None) -> dict[str, str]:
        """All known captions for a property, keyed by token."""
        lang = language or self.language
        return {
            token: captions.get(lang) or captions.get("en") or humanize(token)
            for token, captions in self._lookup(property_name).items()
        }

    def add_translation(self, property_name: str, token: str, **captions: str) -> None:
        """Register captions, e.g. ``add_translation("mode", "ECO", en="Eco", de="Öko")``."""
        key = camel_to_snake(property_name)
        self._table.setdefault(key, {})[token] = dict(captions)

    def _lookup(self, property_name: str) -> dict[str, dict[str, str]]:
        return self._table.get(camel_to_snake(property_name)) or self._table.get(property_name) or {}
