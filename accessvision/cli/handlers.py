"""
CLI Command Handlers

Handler functions for each CLI command.
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict, Optional

import yaml

from ..config import DEFAULTS, config
from ..exceptions import DeviceUnavailableError, ValidationError
from ..models import AUTO_INTERVALS_MS, Mode, NarrationResult, NarrationSettings, Verbosity, resolve_mode

logger = logging.getLogger(__name__)

KEY_MODES = {
    "g": Mode.GENERAL,
    "t": Mode.TEXT,
    "s": Mode.SOCIAL,
    "n": Mode.NAVIGATION,
    "p": Mode.SHOPPING,
}

RATE_STEP = 0.1

SENSITIVE = ("PASS", "KEY", "TOKEN", "SECRET")


def _print_result(result: NarrationResult) -> None:
    prefix = "🚨" if result.is_urgent else "🗣️ "
    print(f"{prefix} {result.text}", flush=True)


def _settings_from_args(args: argparse.Namespace) -> NarrationSettings:
    changes = {}
    if getattr(args, "verbosity", None):
        changes["verbosity"] = args.verbosity
    if getattr(args, "rate", None) is not None:
        changes["speech_rate"] = args.rate
    if getattr(args, "auto", None) is not None:
        changes["auto_narration"] = args.auto
    if getattr(args, "interval", None) is not None:
        changes["auto_interval_ms"] = args.interval
    return NarrationSettings.from_env().with_changes(**changes)


def _next(options, current):
    options = list(options)
    return options[(options.index(current) + 1) % len(options)]


# ----------------------------------------------------------------------
# run
# ----------------------------------------------------------------------
def handle_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command."""
    try:
        settings = _settings_from_args(args)
    except ValidationError as e:
        print(f"❌ Invalid settings: {e}")
        return 2
    return asyncio.run(_run_session(args, settings))


async def _run_session(args: argparse.Namespace, settings: NarrationSettings) -> int:
    from ..frame_capture import CameraDevice
    from ..narrator import NarrationPipeline
    from ..tts import NullSpeechDevice

    pipeline = NarrationPipeline(
        camera=CameraDevice(source=args.device),
        speech_device=NullSpeechDevice() if args.quiet else None,
        settings=settings,
        mode=args.mode,
        on_result=_print_result,
    )

    if pipeline.error_message:
        print(f"⚠️  {pipeline.error_message}")
        pipeline.dismiss_error()

    if not pipeline.activate():
        print(f"❌ {pipeline.error_message}")
        await pipeline.aclose()
        return 1

    print(f"🎥 Camera started (mode: {pipeline.mode.value}, verbosity: {settings.verbosity.value})")
    print("   Enter = analyze, g/t/s/n/p = mode, a = auto, i = interval, v = verbosity, h = history, q = quit")

    loop = asyncio.get_running_loop()
    lines: asyncio.Queue = asyncio.Queue()
    stdin_fd = sys.stdin.fileno()
    loop.add_reader(stdin_fd, lambda: lines.put_nowait(sys.stdin.readline()))

    try:
        while True:
            line = await lines.get()
            if line == "":
                break  # EOF
            if not handle_key(pipeline, line.strip().lower()):
                break
    finally:
        loop.remove_reader(stdin_fd)
        await pipeline.aclose()
        print(f"📊 {pipeline.analyzer.get_metrics()}")

    return 0


def handle_key(pipeline, key: str) -> bool:
    """Apply one interactive command. Returns False to quit."""
    if key == "q":
        return False

    try:
        if key == "":
            if pipeline.trigger() is None:
                print("⏳ No frame available yet")
        elif key in KEY_MODES:
            pipeline.select_mode(KEY_MODES[key])
        elif key == "a":
            settings = pipeline.update_settings(auto_narration=not pipeline.settings.auto_narration)
            print(f"🔁 Auto-narration {'on' if settings.auto_narration else 'off'}")
        elif key == "i":
            interval = _next(AUTO_INTERVALS_MS, pipeline.settings.auto_interval_ms)
            pipeline.update_settings(auto_interval_ms=interval)
            print(f"⏱️  Interval {interval} ms")
        elif key == "v":
            verbosity = _next(Verbosity, pipeline.settings.verbosity)
            pipeline.update_settings(verbosity=verbosity)
            print(f"📝 Verbosity {verbosity.value}")
        elif key in ("+", "-"):
            step = RATE_STEP if key == "+" else -RATE_STEP
            rate = round(pipeline.settings.speech_rate + step, 1)
            pipeline.update_settings(speech_rate=rate)
            print(f"🔊 Speech rate {rate}")
        elif key == "h":
            for result in pipeline.transcript:
                _print_result(result)
        else:
            print(f"Unknown key: {key!r}")
    except ValidationError:
        print("⚠️  Value out of range")

    if pipeline.error_message:
        print(f"⚠️  {pipeline.error_message}")
        pipeline.dismiss_error()
    return True


# ----------------------------------------------------------------------
# describe
# ----------------------------------------------------------------------
def handle_describe(args: argparse.Namespace) -> int:
    """Handle the 'describe' command."""
    from ..frame_capture import FrameSource

    frame = FrameSource().load(args.image)
    if frame is None:
        print(f"❌ Cannot read image: {args.image}")
        return 1

    try:
        settings = _settings_from_args(args)
    except ValidationError as e:
        print(f"❌ Invalid settings: {e}")
        return 2

    mode = resolve_mode(args.mode)
    return asyncio.run(_describe(frame, mode, settings, speak=args.speak))


async def _describe(frame: bytes, mode: Mode, settings: NarrationSettings, speak: bool) -> int:
    from ..llm_client import AnalysisClient

    client = AnalysisClient()
    try:
        result = await client.analyze(frame, mode, settings.verbosity)
    finally:
        await client.aclose()

    _print_result(result)

    if speak:
        from ..narrator import SpeechArbiter
        from ..tts import CommandSpeechDevice

        try:
            device = CommandSpeechDevice()
        except DeviceUnavailableError as e:
            print(f"⚠️  {e.reason}")
            return 0

        SpeechArbiter(device).speak(result.text, result.priority, settings)
        while device.is_speaking:
            await asyncio.sleep(0.1)
        await device.aclose()

    return 0


# ----------------------------------------------------------------------
# prompt
# ----------------------------------------------------------------------
def handle_prompt(args: argparse.Namespace) -> int:
    """Handle the 'prompt' command."""
    from ..prompts import build_instruction, system_instruction

    if args.system:
        print(f"SYSTEM: {system_instruction()}")
        print()

    if args.all:
        for mode in Mode:
            for verbosity in Verbosity:
                print(f"[{mode.value}/{verbosity.value}]")
                print(f"  {build_instruction(mode, verbosity)}")
        return 0

    mode = resolve_mode(args.mode)
    verbosity = Verbosity(args.verbosity or config.get("AV_VERBOSITY", "standard").lower())
    print(build_instruction(mode, verbosity))
    return 0


# ----------------------------------------------------------------------
# config
# ----------------------------------------------------------------------
def _masked(values: Dict[str, str]) -> Dict[str, str]:
    masked = {}
    for key, value in sorted(values.items()):
        if any(s in key.upper() for s in SENSITIVE):
            value = "*" * len(str(value)) if value else "(not set)"
        masked[key] = value
    return masked


def handle_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    if args.show:
        print("📋 Current Configuration:")
        print()
        print(yaml.safe_dump(_masked(config.to_dict()), sort_keys=False, default_flow_style=False))
        return 0

    if args.get:
        print(f"{args.get}={config.get(args.get)}")
        return 0

    if args.set:
        key, value = args.set
        if key not in DEFAULTS:
            print(f"❌ Unknown key: {key}")
            return 1
        config.set(key, value)
        config.save(keys_only=[key])
        print(f"✅ Set {key}={value}")
        return 0

    print("Use --show to view config, --set KEY VALUE to modify")
    return 0


# ----------------------------------------------------------------------
# check
# ----------------------------------------------------------------------
def handle_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    from ..frame_capture import CameraDevice, FrameSource
    from ..tts import get_available_engines

    status = 0

    print("📹 Camera...")
    camera = CameraDevice(source=args.device)
    try:
        stream = camera.start()
    except DeviceUnavailableError as e:
        print(f"   ❌ {e.reason}")
        status = 1
    else:
        frame: Optional[bytes] = FrameSource().capture(stream)
        if frame:
            print(f"   ✅ Camera working {stream.resolution}, snapshot {len(frame) // 1024} KB")
        else:
            print("   ⚠️  Camera opened but no frame decoded yet")
        camera.stop()

    print("🔊 Speech engines...")
    engines = get_available_engines()
    if engines:
        print(f"   ✅ {', '.join(engines)}")
    else:
        print("   ❌ None found (install espeak-ng or espeak)")
        status = 1

    provider = config.get("AV_LLM_PROVIDER", "gemini")
    print(f"🤖 Analysis provider: {provider} ({config.get('AV_MODEL')})")
    key_name = {"gemini": "AV_GEMINI_API_KEY", "openai": "AV_OPENAI_API_KEY"}.get(provider)
    if key_name and not config.get(key_name):
        print(f"   ⚠️  {key_name} not set")

    return status
