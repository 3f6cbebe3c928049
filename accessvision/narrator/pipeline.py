"""
Narration Pipeline

Wires frame capture, analysis, scheduling, transcript and speech together
behind the actions a host UI exposes (start/stop camera, analyze now,
pick mode, change settings).
"""

import asyncio
import logging
from typing import Callable, Optional

from ..exceptions import DeviceUnavailableError
from ..frame_capture import CameraDevice, CaptureStream, FrameSource
from ..llm_client import AnalysisClient
from ..models import Mode, NarrationResult, NarrationSettings, Priority, TranscriptLog, resolve_mode
from ..tts import CommandSpeechDevice, NullSpeechDevice, SpeechDevice
from .scheduler import NarrationScheduler, SleepFn, Trigger
from .speech import SpeechArbiter

logger = logging.getLogger(__name__)


class NarrationPipeline:
    """Real-time narration pipeline.

    All methods must be called from the event loop that runs the pipeline.
    Only device unavailability is reported out of the pipeline, through
    ``error_message``; analysis failures arrive as ordinary narrations.
    """

    def __init__(
        self,
        camera: Optional[CameraDevice] = None,
        analyzer: Optional[AnalysisClient] = None,
        speech_device: Optional[SpeechDevice] = None,
        frame_source: Optional[FrameSource] = None,
        settings: Optional[NarrationSettings] = None,
        mode: Optional[Mode] = None,
        on_result: Optional[Callable[[NarrationResult], None]] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.error_message: Optional[str] = None

        if speech_device is None:
            try:
                speech_device = CommandSpeechDevice()
            except DeviceUnavailableError as e:
                self._report_error(e.reason)
                speech_device = NullSpeechDevice()

        self.camera = camera or CameraDevice()
        self.frame_source = frame_source or FrameSource()
        self.analyzer = analyzer or AnalysisClient()
        self.speech = SpeechArbiter(speech_device)
        self.settings = settings or NarrationSettings.from_env()
        self.mode = resolve_mode(mode)
        self.transcript = TranscriptLog()
        self.on_result = on_result

        self._stream: Optional[CaptureStream] = None
        self.scheduler = NarrationScheduler(self._capture_frame, self._narrate, sleep=sleep)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def capture_active(self) -> bool:
        return self._stream is not None and self._stream.active

    @property
    def is_processing(self) -> bool:
        return self.scheduler.in_flight

    def dismiss_error(self) -> None:
        self.error_message = None

    def _report_error(self, reason: str) -> None:
        logger.warning(reason)
        self.error_message = reason

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    def activate(self) -> bool:
        """Start capture. Returns False (and sets error_message) on failure."""
        if self.capture_active:
            return True

        try:
            self._stream = self.camera.start()
        except DeviceUnavailableError as e:
            self._stream = None
            self._report_error(e.reason)
            return False

        self.speech.speak("Camera started", Priority.URGENT, self.settings)
        self._sync_schedule()
        return True

    def deactivate(self) -> None:
        """Stop capture and future scheduling; in-flight analyses still finish."""
        if self._stream is None:
            return
        self.scheduler.cancel_all()
        self.camera.stop()
        self._stream = None
        self.speech.speak("Camera stopped", Priority.URGENT, self.settings)

    def trigger(self) -> Optional[asyncio.Task]:
        """Analyze now."""
        if not self.capture_active:
            return None
        return self.scheduler.trigger(Trigger.MANUAL)

    def select_mode(self, mode: Mode) -> None:
        self.mode = Mode(mode)
        logger.info(f"Mode: {self.mode.value}")
        self.speech.speak(f"{self.mode.label} mode selected", Priority.URGENT, self.settings)
        if self.capture_active and not self.settings.auto_narration:
            self.scheduler.schedule_settle()

    def update_settings(self, **changes) -> NarrationSettings:
        """Apply settings changes; raises ValidationError on bad values."""
        previous = self.settings
        self.settings = previous.with_changes(**changes)

        if (previous.auto_narration, previous.auto_interval_ms) != (
            self.settings.auto_narration,
            self.settings.auto_interval_ms,
        ):
            self._sync_schedule()
        return self.settings

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _sync_schedule(self) -> None:
        if self.capture_active and self.settings.auto_narration:
            self.scheduler.start_auto(self.settings.auto_interval)
        else:
            self.scheduler.stop_auto()

    def _capture_frame(self) -> Optional[bytes]:
        if not self.capture_active:
            return None
        return self.frame_source.capture(self._stream)

    async def _narrate(self, frame: bytes, trigger: Trigger) -> None:
        result = await self.analyzer.analyze(frame, self.mode, self.settings.verbosity)

        self.transcript.add(result)
        logger.info(f"[{trigger.value}] {'⚠️ ' if result.is_urgent else ''}{result.text}")
        if self.on_result is not None:
            self.on_result(result)
        self.speech.speak(result.text, result.priority, self.settings)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    async def aclose(self) -> None:
        """Release the camera, finish outstanding analyses, silence speech."""
        self.scheduler.cancel_all()
        self.camera.stop()
        self._stream = None

        await self.scheduler.drain()
        self.speech.stop()

        device = self.speech.device
        if isinstance(device, CommandSpeechDevice):
            await device.aclose()
        await self.analyzer.aclose()

    async def __aenter__(self) -> "NarrationPipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
