"""Case conversion helpers shared by identifiers and display names."""

import re

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def camel_to_snake(text: str) -> str:
    """``relativeHourToStart`` -> ``relative_hour_to_start``."""
    return _CAMEL_BOUNDARY.sub(r"\1_\2", text.replace("-", "_")).lower()


def humanize(text: str) -> str:
    """Turn snake, camel or upper-snake case into title case.

    ``VERY_BAD`` -> ``Very Bad``, ``targetTemperature`` -> ``Target Temperature``.
    """
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", text).replace("_", " ").replace("-", " ")
    return " ".join(word.capitalize() for word in spaced.split())


def location_label(location: str) -> str:
    """``FREEZER`` -> ``Freezer``."""
    return location.replace("_", " ").strip().capitalize()


def is_default_location(location: str | None) -> bool:
    return location is None or location.upper() == "MAIN"
