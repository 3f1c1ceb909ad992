"""Print the property plan the capability engine builds for a device.

Usage:
    uv run python scripts/show_plan.py profile.json
    uv run python scripts/show_plan.py profile.json --status status.json --type DEVICE_WASHER
    uv run python scripts/show_plan.py profile.json --set TIMER_START_REL_HOUR 2

Profile and status files may be raw cloud responses; ``response`` and
``profile`` envelopes are stripped.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from thinqmap.config import load_config
from thinqmap.devices.thinq_device import unwrap_profile, unwrap_status
from thinqmap.engine import CapabilityEngine

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def read_json(path: str):
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return json.load(f)


def parse_value(text: str):
    """Interpret a command line value as JSON, falling back to the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    try:
        config = load_config(args.config)
        if args.language:
            config.language = args.language.lower()
        config.validate()
        raw_profile = read_json(args.profile)
        status = unwrap_status(read_json(args.status)) if args.status else {}
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    device_type = args.type or (raw_profile.get("deviceType", "") if isinstance(raw_profile, dict) else "")
    engine = CapabilityEngine.from_config(config)
    capabilities = engine.prepare(device_type, unwrap_profile(raw_profile))

    if args.set:
        ident, value = args.set
        payload = capabilities.build_control_payload(ident, parse_value(value), status, capabilities.read_values(status))
        if payload is None:
            logger.error(f"{ident} is not handled by the capability engine")
            return 1
        print(json.dumps(payload, indent=2))
        return 0

    plan = capabilities.build_plan(status)
    if not args.all:
        plan = [entry for entry in plan if entry.should_create]
    print(json.dumps([entry.to_dict() for entry in plan], ensure_ascii=False, indent=2))
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Show the property plan for a ThinQ device profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("profile", help="Path to the device profile JSON")
    parser.add_argument("--status", default=None, help="Path to a status snapshot JSON")
    parser.add_argument(
        "--type",
        default=None,
        help="Device type, e.g. DEVICE_AIR_CONDITIONER (default: deviceType of the profile)",
    )
    parser.add_argument("--language", default=None, help="Display language (en or de)")
    parser.add_argument(
        "--set",
        nargs=2,
        metavar=("IDENT", "VALUE"),
        default=None,
        help="Print the control payload for setting IDENT to VALUE instead of the plan",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Include entries that would not be created",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to engine config file (default: ~/.thinqmap/config.json)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(main(args))
