"""
Lensware CLI Module

Usage:
    from lensware.cli import run_cli

    run_cli(["translate", "hello", "--target", "es"])
"""

from .main import main, run_cli
from .parser import create_parser, parse_args
from .handlers import (
    handle_config,
    handle_replay,
    handle_translate,
)

__all__ = [
    "main",
    "run_cli",
    "create_parser",
    "parse_args",
    "handle_translate",
    "handle_replay",
    "handle_config",
]
