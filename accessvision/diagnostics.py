"""
Logging setup for AccessVision with rich console output
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Rich console for pretty output
console = Console(stderr=True)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def enable_diagnostics(
    level: str = "INFO",
    format: str = DEFAULT_FORMAT,
    use_rich: bool = True,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Enable logging with specified configuration.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than stacked.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if use_rich:
        # Rich renders time and level itself
        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(format))

    package_logger = logging.getLogger("accessvision")
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()

    package_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(format))
        package_logger.addHandler(file_handler)

    package_logger.setLevel(log_level)
    package_logger.propagate = False

    return package_logger
