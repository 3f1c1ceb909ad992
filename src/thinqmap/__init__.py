"""ThinQ capability mapper: typed properties and control payloads from device profiles."""

__version__ = "0.1.0"
