"""
Text-to-Speech devices for AccessVision

Speech output is modelled as a capability interface (``SpeechDevice``)
with enqueue / cancel / is-speaking semantics. The default implementation
drives a command-line engine as asyncio subprocesses:
- espeak-ng / espeak (Linux)
- say (macOS)

Usage:
    from accessvision.tts import CommandSpeechDevice, Utterance

    device = CommandSpeechDevice()
    device.speak(Utterance("Hello world"))   # inside a running event loop
    device.cancel()

    # Check available engines
    engines = get_available_engines()
"""

import asyncio
import logging
import platform
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional

from .config import config
from .exceptions import DeviceUnavailableError

logger = logging.getLogger(__name__)

# Words per minute at speech rate 1.0
BASE_WPM = 175
MAX_TEXT_LENGTH = 1000


class TTSEngine(str, Enum):
    AUTO = "auto"
    ESPEAK_NG = "espeak-ng"
    ESPEAK = "espeak"
    SAY = "say"  # macOS


@dataclass(frozen=True)
class Voice:
    """A voice offered by the speech engine."""
    id: str
    name: str
    lang: str
    local: bool = True


@dataclass(frozen=True)
class Utterance:
    """Text plus the parameters it should be spoken with."""
    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Optional[Voice] = None


class SpeechDevice(ABC):
    """Speech output capability."""

    @property
    @abstractmethod
    def is_speaking(self) -> bool:
        """True while an utterance is playing or queued."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Append ``utterance`` to the device queue."""

    @abstractmethod
    def cancel(self) -> None:
        """Halt the current utterance and drop everything queued."""

    def voices(self) -> List[Voice]:
        return []


class NullSpeechDevice(SpeechDevice):
    """Logs utterances instead of speaking them (quiet mode)."""

    @property
    def is_speaking(self) -> bool:
        return False

    def speak(self, utterance: Utterance) -> None:
        logger.info(f"(quiet) {utterance.text}")

    def cancel(self) -> None:
        pass


def clean_text(text: str) -> str:
    """Clean text for natural speech."""
    if not text:
        return ""
    text = re.sub(r"[*`#_]+", "", text)
    text = re.sub(r"https?://\S+", "", text)
    text = " ".join(text.split())
    return text[:MAX_TEXT_LENGTH]


def _engine_priority() -> List[TTSEngine]:
    """Get engines to try in priority order."""
    if platform.system().lower() == "darwin":
        return [TTSEngine.SAY, TTSEngine.ESPEAK_NG, TTSEngine.ESPEAK]
    return [TTSEngine.ESPEAK_NG, TTSEngine.ESPEAK]


def get_available_engines() -> List[str]:
    """Names of the installed speech engines, in priority order."""
    return [e.value for e in _engine_priority() if shutil.which(e.value)]


def detect_engine(preferred: Optional[str] = None) -> TTSEngine:
    """Pick the configured engine, falling back to any installed one.

    Raises:
        DeviceUnavailableError: no speech engine is installed
    """
    preferred = (preferred or config.get("AV_TTS_ENGINE", "auto")).lower()
    try:
        engine = TTSEngine(preferred)
    except ValueError:
        logger.warning(f"Unknown TTS engine '{preferred}', using auto")
        engine = TTSEngine.AUTO

    if engine != TTSEngine.AUTO and shutil.which(engine.value):
        return engine

    for candidate in _engine_priority():
        if shutil.which(candidate.value):
            return candidate

    raise DeviceUnavailableError("No speech engine found. Install espeak-ng or espeak.")


def _parse_espeak_voices(output: str) -> List[Voice]:
    # Pty Language Age/Gender VoiceName File Other Languages
    voices = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) >= 4:
            voices.append(Voice(id=parts[1], name=parts[3], lang=parts[1]))
    return voices


_SAY_VOICE = re.compile(r"^(?P<name>.+?)\s+(?P<lang>[a-z]{2,3}[_-][A-Za-z0-9]+)\s+#")


def _parse_say_voices(output: str) -> List[Voice]:
    # Alex                en_US    # Most people recognize me by my voice.
    voices = []
    for line in output.splitlines():
        match = _SAY_VOICE.match(line.strip())
        if match:
            name = match.group("name").strip()
            voices.append(Voice(id=name, name=name, lang=match.group("lang").replace("_", "-")))
    return voices


def build_command(engine: TTSEngine, utterance: Utterance) -> List[str]:
    """Command line that speaks ``utterance`` with ``engine``."""
    wpm = str(int(round(BASE_WPM * utterance.rate)))
    text = clean_text(utterance.text)

    if engine == TTSEngine.SAY:
        # say has no pitch or volume flags
        cmd = ["say", "-r", wpm]
        if utterance.voice:
            cmd.extend(["-v", utterance.voice.id])
        cmd.append(text)
        return cmd

    pitch = str(max(0, min(99, int(round(50 * utterance.pitch)))))
    amplitude = str(max(0, min(200, int(round(100 * utterance.volume)))))
    cmd = [engine.value, "-s", wpm, "-p", pitch, "-a", amplitude]
    if utterance.voice:
        cmd.extend(["-v", utterance.voice.id])
    cmd.append(text)
    return cmd


class CommandSpeechDevice(SpeechDevice):
    """Speech device that plays its queue through a command-line engine.

    Must be used from inside a running asyncio event loop.
    """

    def __init__(self, engine: Optional[str] = None):
        self.engine = detect_engine(engine)
        self._pending: Deque[Utterance] = deque()
        self._current: Optional[Utterance] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._player: Optional[asyncio.Task] = None
        logger.debug(f"Using TTS engine: {self.engine.value}")
        # Listed once, before any playback runs on the event loop
        self._voices: List[Voice] = self._list_voices()

    @property
    def is_speaking(self) -> bool:
        return self._current is not None or bool(self._pending)

    def speak(self, utterance: Utterance) -> None:
        if not clean_text(utterance.text):
            return
        self._pending.append(utterance)
        if self._player is None or self._player.done():
            self._player = asyncio.get_running_loop().create_task(self._play())

    def cancel(self) -> None:
        self._pending.clear()
        self._current = None
        self._terminate()

    def voices(self) -> List[Voice]:
        return self._voices

    def _list_voices(self) -> List[Voice]:
        if self.engine == TTSEngine.SAY:
            cmd, parse = ["say", "-v", "?"], _parse_say_voices
        else:
            cmd, parse = [self.engine.value, "--voices"], _parse_espeak_voices
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Voice listing failed: {e}")
            return []
        return parse(result.stdout) if result.returncode == 0 else []

    def _terminate(self) -> None:
        if self._process is not None and self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

    async def _play(self) -> None:
        while self._pending:
            utterance = self._pending.popleft()
            self._current = utterance
            try:
                self._process = await asyncio.create_subprocess_exec(
                    *build_command(self.engine, utterance),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                # cancel() may have run while the process was starting
                if self._current is not utterance:
                    self._terminate()
                await self._process.wait()
            except OSError as e:
                logger.warning(f"TTS engine {self.engine.value} failed: {e}")
            finally:
                self._process = None
                if self._current is utterance:
                    self._current = None

    async def aclose(self) -> None:
        """Halt speech and wait for the player task to finish."""
        self.cancel()
        if self._player is not None:
            await asyncio.gather(self._player, return_exceptions=True)
            self._player = None
