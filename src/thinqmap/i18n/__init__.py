"""Display names and enum captions for ThinQ properties."""

from thinqmap.i18n.enum_translator import EnumTranslator
from thinqmap.i18n.property_names import PropertyNamer
from thinqmap.i18n.text import camel_to_snake, humanize

__all__ = ["EnumTranslator", "PropertyNamer", "camel_to_snake", "humanize"]
