"""
Prompt Management for AccessVision

Keeps every instruction sent to the analysis service in editable text
files next to this module. Prompts can be customized by editing the files
or overriding them via environment variables.

Usage:
    from accessvision.prompts import build_instruction, system_instruction

    instruction = build_instruction(Mode.NAVIGATION, Verbosity.MINIMAL)

    # Raw templates
    template = get_prompt("mode_navigation")
    rule = render_prompt("urgency_rule", marker="WARNING")
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..models import Mode, Verbosity

logger = logging.getLogger(__name__)

# Directory containing prompt files
PROMPTS_DIR = Path(__file__).parent

# Token the service is told to lead with when it sees immediate danger
URGENT_MARKER = "WARNING"
# Secondary token that also marks a narration as urgent
CAUTION_TOKEN = "CAUTION"

# Cache for loaded prompts
_cache: Dict[str, str] = {}


def get_prompt(name: str, default: Optional[str] = None) -> str:
    """Load prompt template by name.

    Looks for:
    1. Environment variable AV_PROMPT_{NAME} (uppercase)
    2. File prompts/{name}.txt
    3. File prompts/{name}.md
    4. Default value if provided

    Loaded templates are cached until ``reload_prompts`` is called.
    """
    if name in _cache:
        return _cache[name]

    env_value = os.environ.get(f"AV_PROMPT_{name.upper()}")
    if env_value:
        _cache[name] = env_value
        return env_value

    for ext in (".txt", ".md"):
        path = PROMPTS_DIR / f"{name}{ext}"
        if path.exists():
            template = " ".join(path.read_text(encoding="utf-8").split())
            _cache[name] = template
            return template

    if default is not None:
        return default

    logger.warning(f"Prompt '{name}' not found in {PROMPTS_DIR}")
    return ""


def render_prompt(name: str, default: Optional[str] = None, **kwargs: Any) -> str:
    """Load and render prompt template with variables.

    Uses Python format strings. Template variables are wrapped in {braces}.
    """
    template = get_prompt(name, default)
    if not template:
        return ""

    try:
        return template.format(**kwargs)
    except KeyError as e:
        logger.warning(f"Missing variable {e} in prompt '{name}'")
        return template


def system_instruction() -> str:
    """Standing instruction sent with every analysis request."""
    return get_prompt("system")


def build_instruction(mode: Mode, verbosity: Verbosity) -> str:
    """Combine the mode task, the length budget and the urgency rule."""
    mode = Mode(mode)
    verbosity = Verbosity(verbosity)

    task = get_prompt(f"mode_{mode.value}")
    length = get_prompt(f"length_{verbosity.value}")
    urgency = render_prompt("urgency_rule", marker=URGENT_MARKER)

    return " ".join(part for part in (task, length, urgency) if part)


def list_prompts() -> Dict[str, str]:
    """List all available prompt files.

    Returns:
        Dict mapping prompt name to file path
    """
    prompts = {}
    for ext in (".txt", ".md"):
        for path in PROMPTS_DIR.glob(f"*{ext}"):
            name = path.stem
            if name not in prompts:  # .txt takes precedence
                prompts[name] = str(path)
    return prompts


def reload_prompts():
    """Clear prompt cache to force reload from files."""
    _cache.clear()
