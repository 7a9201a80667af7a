"""
CLI Main Entry Point

Lensware command-line interface main module.
"""

import sys
from typing import List, Optional

from ..config import config
from ..diagnostics import enable_diagnostics, metrics
from ..exceptions import LenswareError
from .parser import create_parser, parse_args
from .handlers import (
    handle_config,
    handle_replay,
    handle_translate,
)


def run_cli(args: Optional[List[str]] = None) -> int:
    """
    Run the CLI with given arguments.

    Args:
        args: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 = success)
    """
    parsed = parse_args(args)

    # Route to appropriate handler
    handlers = {
        "translate": handle_translate,
        "replay": handle_replay,
        "config": handle_config,
    }

    command = parsed.command

    if not command:
        # No command specified - show help
        parser = create_parser()
        parser.print_help()
        return 0

    handler = handlers.get(command)
    if not handler:
        print(f"Unknown command: {command}", file=sys.stderr)
        return 1

    level = "DEBUG" if parsed.debug else config.get("LW_LOG_LEVEL", "INFO")
    enable_diagnostics(level=level, log_file=config.get("LW_LOG_FILE") or None)

    try:
        code = handler(parsed)
    except LenswareError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if parsed.metrics:
        metrics.print_summary()
    return code


def main():
    """Main entry point."""
    try:
        sys.exit(run_cli())
    except KeyboardInterrupt:
        print("\n🛑 Interrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
