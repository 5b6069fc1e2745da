"""
Command-line entry point.

Loads configuration, obtains a quote token (unless one is passed), streams
quotes for the configured symbols and exits once each has been seen.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

from .config.loader import ConfigLoader
from .delivery.stdout_delivery import StdoutQuoteDelivery
from .engine import QuoteSnapshotEngine
from .errors import AuthenticationError, ConfigurationError
from .logging.config import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dxfeed-snapshot",
        description="Print one quote per symbol from the dxLink feed, then exit.",
    )
    parser.add_argument("--config-dir", type=Path, help="Directory containing feed.yaml")
    parser.add_argument("--symbol", action="append", dest="symbols", metavar="SYMBOL",
                        help="Instrument symbol to track (repeatable); overrides feed.symbols")
    parser.add_argument("--channel", type=int, help="Feed channel number")
    parser.add_argument("--url", help="dxLink WebSocket URL")
    parser.add_argument("--token", help="Quote token; skips the REST login when given")
    parser.add_argument("--credentials", help="Credentials JSON file for the REST login")
    parser.add_argument("--format", choices=("json", "pretty"), help="Quote output format")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--log-json", action="store_true", default=None,
                        help="Emit logs as JSON")
    parser.add_argument("--check-config", action="store_true",
                        help="Validate configuration and exit")
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Translate command-line flags into a configuration override tree."""
    overrides: dict[str, dict[str, Any]] = {
        "feed": {}, "auth": {}, "logging": {}, "output": {},
    }

    if args.symbols:
        overrides["feed"]["symbols"] = args.symbols
    if args.channel is not None:
        overrides["feed"]["channel"] = args.channel
    if args.url:
        overrides["feed"]["url"] = args.url
    if args.credentials:
        overrides["auth"]["credentials_file"] = args.credentials
    if args.format:
        overrides["output"]["format"] = args.format
    if args.log_level:
        overrides["logging"]["level"] = args.log_level
    if args.log_json is not None:
        overrides["logging"]["format_json"] = args.log_json

    return {section: values for section, values in overrides.items() if values}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ConfigLoader.create(args.config_dir).load(overrides_from_args(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(level=config.logging.level, format_json=config.logging.format_json)

    if args.check_config:
        print("Configuration is valid", file=sys.stderr)
        return 0

    engine = QuoteSnapshotEngine(config, deliveries=[StdoutQuoteDelivery(config=config.output)])

    try:
        outcome = engine.run(token=args.token)
    except (AuthenticationError, ConfigurationError) as e:
        logger.error("Unable to start feed session", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    if not outcome.completed:
        logger.error("Feed session failed", reason=outcome.reason, last_state=outcome.last_state.value)
        return 1

    return 0
