"""
Speech Arbiter

Decides whether a new narration interrupts the current one or joins the
device queue, then hands it to the speech device.
"""

import logging
from typing import List, Optional

from ..models import NarrationSettings, Priority
from ..tts import SpeechDevice, Utterance, Voice

logger = logging.getLogger(__name__)

URGENT_PITCH = 1.1
NORMAL_PITCH = 1.0
VOLUME = 1.0


def select_voice(voices: List[Voice]) -> Optional[Voice]:
    """Local English voice, else any English voice, else engine default (None)."""
    english = [v for v in voices if v.lang.lower().startswith("en")]
    for voice in english:
        if voice.local:
            return voice
    return english[0] if english else None


class SpeechArbiter:
    """Priority-based arbitration in front of a SpeechDevice."""

    def __init__(self, device: SpeechDevice):
        self.device = device

    def speak(self, text: str, priority: Priority, settings: NarrationSettings) -> None:
        if not text:
            return

        priority = Priority(priority)
        if priority is Priority.URGENT:
            self.device.cancel()
        elif self.device.is_speaking and settings.auto_narration:
            # Live commentary favours the freshest description
            self.device.cancel()

        utterance = Utterance(
            text=text,
            rate=settings.speech_rate,
            pitch=URGENT_PITCH if priority is Priority.URGENT else NORMAL_PITCH,
            volume=VOLUME,
            voice=select_voice(self.device.voices()),
        )
        logger.debug(f"Speaking ({priority.value}): {text[:80]}")
        self.device.speak(utterance)

    def stop(self) -> None:
        """Halt all current and queued speech."""
        self.device.cancel()
