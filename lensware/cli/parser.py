"""
CLI Argument Parser

Defines all CLI arguments and subcommands.
"""

import argparse
from typing import List, Optional

from .. import __version__
from ..config import config


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="lw",
        description="Lensware - translated text and face captions for live camera frames",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lw translate "thank you" --target es
  lw replay session.yaml --viewport 1280x720
  lw replay session.yaml --json --seed 7
  lw config --show
        """
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--metrics", action="store_true", help="Show timing metrics after the command")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_translate_parser(subparsers)
    _add_replay_parser(subparsers)
    _add_config_parser(subparsers)

    return parser


def _add_translate_parser(subparsers):
    """Add translate subcommand parser."""
    translate = subparsers.add_parser(
        "translate",
        help="Translate text through the backend cascade",
        description="Resolve text through phrasebook, hosted API and dictionary",
    )

    translate.add_argument("text", nargs="+", help="Text to translate (one result per argument)")
    translate.add_argument("--source", "-s", default=None,
                           help=f"Source language (default: {config.get('LW_SOURCE_LANG')})")
    translate.add_argument("--target", "-t", default=None,
                           help=f"Target language (default: {config.get('LW_TARGET_LANG')})")
    translate.add_argument("--json", action="store_true", help="Print results as JSON")


def _add_replay_parser(subparsers):
    """Add replay subcommand parser."""
    replay = subparsers.add_parser(
        "replay",
        help="Run recorded observation frames through the pipeline",
        description="Feed frames from a YAML recording and print the resulting annotations",
    )

    replay.add_argument("file", help="YAML file with recorded frames")
    replay.add_argument("--viewport", metavar="WxH", help="Display size for pixel rectangles")
    replay.add_argument("--json", action="store_true", help="Print annotations and stats as JSON")
    replay.add_argument("--seed", type=int, default=None, help="Seed for caption template choice")
    replay.add_argument("--persons", metavar="FILE", help="YAML mapping of known person IDs to names")
    replay.add_argument("--demo-persons", action="store_true",
                        help="Use the demo directory (John, Sarah, Mike)")
    replay.add_argument("--source", default=None, help="Source language")
    replay.add_argument("--target", default=None, help="Target language")
    replay.add_argument("--timeout", type=float, default=30.0,
                        help="Seconds to wait for translations after each frame (default: 30)")


def _add_config_parser(subparsers):
    """Add config subcommand parser."""
    cfg = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="View and modify Lensware configuration",
    )

    cfg.add_argument("--show", action="store_true", help="Show current config")
    cfg.add_argument("--set", nargs=2, metavar=("KEY", "VALUE"), help="Set config value")
    cfg.add_argument("--get", metavar="KEY", help="Get config value")


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = create_parser()
    return parser.parse_args(args)
