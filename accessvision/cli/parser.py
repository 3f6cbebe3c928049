"""
CLI Argument Parser

Defines all CLI arguments and subcommands.
"""

import argparse
from typing import List, Optional

from .. import __version__
from ..models import AUTO_INTERVALS_MS, Mode, Verbosity


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="accessvision",
        description="AccessVision - spoken scene descriptions from your camera",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  accessvision run --mode navigation --verbosity minimal --auto --interval 2000
  accessvision describe photo.jpg --mode text --speak
  accessvision prompt --all
  accessvision config --set AV_GEMINI_API_KEY ...
  accessvision check
        """
    )
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: AV_LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_run_parser(subparsers)
    _add_describe_parser(subparsers)
    _add_prompt_parser(subparsers)
    _add_config_parser(subparsers)
    _add_check_parser(subparsers)

    return parser


def _add_narration_options(parser: argparse.ArgumentParser):
    parser.add_argument("--mode", "-m", choices=[m.value for m in Mode], default=None,
                        help="Interpretation mode (default: AV_MODE)")
    parser.add_argument("--verbosity", "-v", choices=[v.value for v in Verbosity], default=None,
                        help="Response length (default: AV_VERBOSITY)")


def _add_run_parser(subparsers):
    """Add run subcommand parser."""
    run = subparsers.add_parser(
        "run",
        help="Live narration from the camera",
        description="""
Keys (type and press Enter):
  Enter  analyze now          a  toggle auto-narration
  g/t/s/n/p  general, text, social, navigation, shopping mode
  i  cycle interval   v  cycle verbosity   + / -  speech rate
  h  show transcript  q  quit
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_narration_options(run)
    run.add_argument("--rate", "-r", type=float, default=None,
                     help="Speech rate 0.5 - 2.0 (default: AV_SPEECH_RATE)")
    run.add_argument("--auto", dest="auto", action="store_true", default=None,
                     help="Start with auto-narration on")
    run.add_argument("--no-auto", dest="auto", action="store_false",
                     help="Start with auto-narration off")
    run.add_argument("--interval", "-i", type=int, choices=AUTO_INTERVALS_MS, default=None,
                     help="Auto-narration interval in ms")
    run.add_argument("--device", "-d", default=None,
                     help="Camera index or stream URL (default: AV_CAMERA_DEVICE)")
    run.add_argument("--quiet", "-q", action="store_true",
                     help="Print narrations instead of speaking them")


def _add_describe_parser(subparsers):
    """Add describe subcommand parser."""
    describe = subparsers.add_parser("describe", help="Describe a single image file")
    describe.add_argument("image", help="Path to image")
    _add_narration_options(describe)
    describe.add_argument("--speak", action="store_true", help="Speak the description")


def _add_prompt_parser(subparsers):
    """Add prompt subcommand parser."""
    prompt = subparsers.add_parser("prompt", help="Show the instruction sent for a mode")
    _add_narration_options(prompt)
    prompt.add_argument("--all", action="store_true", help="Every mode and verbosity")
    prompt.add_argument("--system", action="store_true", help="Also show the system instruction")


def _add_config_parser(subparsers):
    """Add config subcommand parser."""
    cfg = subparsers.add_parser("config", help="Show or change configuration")
    cfg.add_argument("--show", action="store_true", help="Show current configuration")
    cfg.add_argument("--get", metavar="KEY", help="Get a single value")
    cfg.add_argument("--set", nargs=2, metavar=("KEY", "VALUE"), help="Set a value and save to .env")


def _add_check_parser(subparsers):
    """Add check subcommand parser."""
    check = subparsers.add_parser("check", help="Check camera and speech engines")
    check.add_argument("--device", "-d", default=None, help="Camera index or stream URL")


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return create_parser().parse_args(args)
