"""
Narrator Module - real-time narration pipeline.

Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                      NarrationPipeline                       │
    │                                                              │
    │  ┌─────────────┐  ┌────────────────┐  ┌────────────────────┐ │
    │  │ FrameSource │→ │ AnalysisClient │→ │ NarrationScheduler │ │
    │  └─────────────┘  └────────────────┘  └────────────────────┘ │
    │                                          ↓            ↓      │
    │                                ┌───────────────┐ ┌─────────┐ │
    │                                │ TranscriptLog │ │ Speech  │ │
    │                                └───────────────┘ │ Arbiter │ │
    │                                                  └─────────┘ │
    └──────────────────────────────────────────────────────────────┘

Usage:
    from accessvision.narrator import NarrationPipeline

    async with NarrationPipeline() as pipeline:
        pipeline.activate()
        pipeline.update_settings(auto_narration=True, auto_interval_ms=4000)
        await asyncio.sleep(30)
"""

from .pipeline import NarrationPipeline
from .scheduler import MODE_SETTLE_DELAY, NarrationScheduler, Trigger
from .speech import SpeechArbiter, select_voice

__all__ = [
    "NarrationPipeline",
    "NarrationScheduler",
    "Trigger",
    "MODE_SETTLE_DELAY",
    "SpeechArbiter",
    "select_voice",
]
