"""
AccessVision CLI Module

Usage:
    from accessvision.cli import run_cli

    run_cli(["describe", "photo.jpg", "--mode", "text"])
"""

from .main import main, run_cli
from .parser import create_parser, parse_args
from .handlers import (
    handle_check,
    handle_config,
    handle_describe,
    handle_prompt,
    handle_run,
)

__all__ = [
    "main",
    "run_cli",
    "create_parser",
    "parse_args",
    "handle_run",
    "handle_describe",
    "handle_prompt",
    "handle_config",
    "handle_check",
]
