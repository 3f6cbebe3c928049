"""
Pytest configuration for AccessVision tests.

Keeps tests from modifying the .env file and provides fake devices so
the pipeline can be driven without a camera, network or speakers.
"""

import asyncio
from types import SimpleNamespace
from typing import List, Optional

import pytest
from unittest.mock import patch

from accessvision.exceptions import DeviceUnavailableError
from accessvision.llm_client import classify_priority
from accessvision.models import NarrationResult, NarrationSettings
from accessvision.tts import SpeechDevice, Utterance, Voice


@pytest.fixture(autouse=True)
def mock_config_save():
    """Prevent tests from modifying .env file."""
    with patch('accessvision.config.config.save'):
        yield


class FakeSleeper:
    """Sleep replacement; pending sleeps finish only when advanced."""

    def __init__(self):
        self._waiters = []

    async def __call__(self, delay: float):
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((delay, fut))
        await fut

    @property
    def pending(self) -> List[float]:
        return [delay for delay, fut in self._waiters if not fut.done()]

    def advance(self):
        for _, fut in self._waiters:
            if not fut.done():
                fut.set_result(None)
        self._waiters = []


class FakeStream:
    def __init__(self):
        self.active = True

    def release(self):
        self.active = False


class FakeCamera:
    def __init__(self, fail_reason: Optional[str] = None):
        self.fail_reason = fail_reason
        self.starts = 0
        self.stops = 0
        self.stream: Optional[FakeStream] = None

    def start(self):
        self.starts += 1
        if self.fail_reason:
            raise DeviceUnavailableError(self.fail_reason)
        self.stream = FakeStream()
        return self.stream

    def stop(self):
        self.stops += 1
        if self.stream is not None:
            self.stream.release()
        self.stream = None


class FakeFrameSource:
    def __init__(self):
        self.ready = True
        self.captures = 0

    def capture(self, stream):
        if stream is None or not stream.active or not self.ready:
            return None
        self.captures += 1
        return b"\xff\xd8jpeg"


class FakeAnalyzer:
    """Analyzer whose requests complete immediately or on demand."""

    def __init__(self, blocking: bool = False, text: str = "A quiet room."):
        self.blocking = blocking
        self.text = text
        self.calls = []
        self._waiters = []
        self.closed = False

    async def analyze(self, frame, mode, verbosity) -> NarrationResult:
        self.calls.append((mode, verbosity))
        if self.blocking:
            fut = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            text = await fut
        else:
            text = self.text
        return NarrationResult(text=text, priority=classify_priority(text))

    @property
    def pending(self) -> int:
        return len(self._waiters)

    def complete(self, text: str = "A quiet room.", index: int = 0):
        self._waiters.pop(index).set_result(text)

    def get_metrics(self):
        return {}

    async def aclose(self):
        self.closed = True


class FakeSpeechDevice(SpeechDevice):
    """Records speech commands; the head of the queue is 'playing'."""

    def __init__(self, voices: Optional[List[Voice]] = None):
        self.queue: List[Utterance] = []
        self.events = []
        self._voices = voices or []

    @property
    def is_speaking(self) -> bool:
        return bool(self.queue)

    def speak(self, utterance: Utterance) -> None:
        self.events.append(("speak", utterance.text))
        self.queue.append(utterance)

    def cancel(self) -> None:
        self.events.append(("cancel",))
        self.queue.clear()

    def voices(self) -> List[Voice]:
        return self._voices

    def finish(self):
        """Current utterance ends."""
        if self.queue:
            self.queue.pop(0)

    @property
    def spoken(self) -> List[str]:
        return [e[1] for e in self.events if e[0] == "speak"]


async def _spin(times: int = 10):
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.fixture
def spin():
    """Let pending tasks run."""
    return _spin


@pytest.fixture
def sleeper():
    return FakeSleeper()


@pytest.fixture
def speech_device():
    return FakeSpeechDevice()


@pytest.fixture
def make_pipeline(sleeper):
    """Build a NarrationPipeline wired to fakes."""
    from accessvision.models import Mode
    from accessvision.narrator import NarrationPipeline

    def _make(settings: Optional[NarrationSettings] = None, blocking: bool = False,
              camera: Optional[FakeCamera] = None, mode: Mode = Mode.GENERAL):
        parts = SimpleNamespace(
            camera=camera or FakeCamera(),
            frames=FakeFrameSource(),
            analyzer=FakeAnalyzer(blocking=blocking),
            speech=FakeSpeechDevice(),
            sleeper=sleeper,
            results=[],
        )
        pipeline = NarrationPipeline(
            camera=parts.camera,
            analyzer=parts.analyzer,
            speech_device=parts.speech,
            frame_source=parts.frames,
            settings=settings or NarrationSettings(),
            mode=mode,
            on_result=parts.results.append,
            sleep=sleeper,
        )
        return pipeline, parts

    return _make


@pytest.fixture
def fake_camera_factory():
    return FakeCamera


@pytest.fixture
def fake_speech_factory():
    return FakeSpeechDevice


@pytest.fixture
def fake_analyzer_factory():
    return FakeAnalyzer
