"""
AccessVision - real-time scene narration for visually impaired users

Captures camera frames, asks a vision-language service to describe them
with a mode-specific prompt, and speaks the answer with priority-based
interruption.

Uses lazy imports so the CLI starts without loading OpenCV or aiohttp.
"""

__version__ = "0.1.0"
__author__ = "AccessVision"
__license__ = "Apache-2.0"


def __getattr__(name):
    """Lazy import handler - imports modules only when accessed."""

    # Pipeline
    if name in ("NarrationPipeline", "NarrationScheduler", "SpeechArbiter", "Trigger"):
        from . import narrator
        return getattr(narrator, name)

    # Models
    if name in ("Mode", "Verbosity", "Priority", "NarrationResult", "NarrationSettings", "TranscriptLog"):
        from . import models
        return getattr(models, name)

    # Prompts
    if name in ("build_instruction", "system_instruction"):
        from . import prompts
        return getattr(prompts, name)

    # Analysis
    if name in ("AnalysisClient", "classify_priority"):
        from . import llm_client
        return getattr(llm_client, name)

    # Devices
    if name in ("CameraDevice", "CaptureStream", "FrameSource"):
        from . import frame_capture
        return getattr(frame_capture, name)
    if name in ("CommandSpeechDevice", "SpeechDevice", "Utterance", "Voice"):
        from . import tts
        return getattr(tts, name)

    # Exceptions
    if name in ("AccessVisionError", "DeviceUnavailableError", "ValidationError", "ConfigurationError"):
        from . import exceptions
        return getattr(exceptions, name)

    if name == "enable_diagnostics":
        from .diagnostics import enable_diagnostics
        return enable_diagnostics

    raise AttributeError(f"module 'accessvision' has no attribute '{name}'")


__all__ = [
    # Pipeline
    "NarrationPipeline",
    "NarrationScheduler",
    "SpeechArbiter",
    "Trigger",

    # Models
    "Mode",
    "Verbosity",
    "Priority",
    "NarrationResult",
    "NarrationSettings",
    "TranscriptLog",

    # Prompts / analysis
    "build_instruction",
    "system_instruction",
    "AnalysisClient",
    "classify_priority",

    # Devices
    "CameraDevice",
    "CaptureStream",
    "FrameSource",
    "CommandSpeechDevice",
    "SpeechDevice",
    "Utterance",
    "Voice",

    # Exceptions
    "AccessVisionError",
    "DeviceUnavailableError",
    "ValidationError",
    "ConfigurationError",

    "enable_diagnostics",
]
