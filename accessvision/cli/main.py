"""
CLI Main Entry Point

AccessVision command-line interface main module.
"""

import sys

from ..config import config
from ..diagnostics import enable_diagnostics
from .handlers import (
    handle_check,
    handle_config,
    handle_describe,
    handle_prompt,
    handle_run,
)
from .parser import create_parser, parse_args


def run_cli(args=None) -> int:
    """
    Run the CLI with given arguments.

    Args:
        args: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 = success)
    """
    parsed = parse_args(args)

    handlers = {
        "run": handle_run,
        "describe": handle_describe,
        "prompt": handle_prompt,
        "config": handle_config,
        "check": handle_check,
    }

    command = parsed.command

    if not command:
        create_parser().print_help()
        return 0

    enable_diagnostics(
        level=parsed.log_level or config.get("AV_LOG_LEVEL", "INFO"),
        log_file=config.get("AV_LOG_FILE") or None,
    )

    return handlers[command](parsed)


def main():
    """Main entry point."""
    try:
        sys.exit(run_cli())
    except KeyboardInterrupt:
        print("\n🛑 Interrupted")
        sys.exit(130)
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
