"""Configuration loader for the capability engine."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.thinqmap/config.json"
DEFAULT_STATE_DIR = "~/.thinqmap"
BUNDLED_CAPABILITIES_DIR = Path(__file__).parent / "capabilities"
SUPPORTED_LANGUAGES = ("en", "de")


@dataclass
class EngineConfig:
    """Capability engine settings."""

    capabilities_dir: Path = field(default_factory=lambda: BUNDLED_CAPABILITIES_DIR)
    language: str = "en"
    enum_case_insensitive: bool = True
    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR).expanduser())

    def validate(self) -> None:
        """Validate the language and the capabilities directory."""
        if self.language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language {self.language!r}, expected one of {SUPPORTED_LANGUAGES}")
        if not self.capabilities_dir.is_dir():
            raise FileNotFoundError(f"capabilities directory not found at {self.capabilities_dir}")


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """Load engine configuration from file with environment variable overrides.

    Environment variables:
        THINQMAP_CONFIG_PATH: Override config file location
        THINQMAP_CAPABILITIES_DIR: Override the descriptor directory
        THINQMAP_LANGUAGE: Override the display language
        THINQMAP_STATE_DIR: Override the mock appliance state directory

    Args:
        config_path: Path to config JSON file. Defaults to ~/.thinqmap/config.json

    Returns:
        EngineConfig; defaults are used when the default file does not exist

    Raises:
        FileNotFoundError: If an explicitly requested config file is missing
    """
    explicit = config_path or os.environ.get("THINQMAP_CONFIG_PATH")
    config_file = Path(explicit or DEFAULT_CONFIG_PATH).expanduser()

    data: dict = {}
    if config_file.exists():
        with open(config_file) as f:
            data = json.load(f)
    elif explicit:
        raise FileNotFoundError(f"Engine config not found at {config_file}")

    capabilities_dir = os.environ.get("THINQMAP_CAPABILITIES_DIR", data.get("capabilities_dir"))
    state_dir = os.environ.get("THINQMAP_STATE_DIR", data.get("state_dir", DEFAULT_STATE_DIR))
    language = os.environ.get("THINQMAP_LANGUAGE", data.get("language", "en"))

    config = EngineConfig(
        capabilities_dir=Path(capabilities_dir).expanduser() if capabilities_dir else BUNDLED_CAPABILITIES_DIR,
        language=str(language).lower(),
        enum_case_insensitive=bool(data.get("enum_case_insensitive", True)),
        state_dir=Path(state_dir).expanduser(),
    )

    logger.info(f"Loaded engine config: capabilities={config.capabilities_dir}, language={config.language}")
    return config
