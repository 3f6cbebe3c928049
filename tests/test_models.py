"""
Tests for settings, results and the transcript log
"""

import dataclasses

import pytest
from unittest.mock import patch

from accessvision.exceptions import ConfigurationError, ValidationError
from accessvision.models import (
    Mode,
    NarrationResult,
    NarrationSettings,
    Priority,
    TranscriptLog,
    Verbosity,
    resolve_mode,
)


class TestTranscriptLog:

    def test_newest_first(self):
        log = TranscriptLog()
        log.add(NarrationResult("first", timestamp=1))
        log.add(NarrationResult("second", timestamp=2))

        assert [r.text for r in log] == ["second", "first"]
        assert log.latest.text == "second"

    def test_capped_at_ten(self):
        log = TranscriptLog()
        for i in range(11):
            log.add(NarrationResult(f"entry {i}", timestamp=i))

        assert len(log) == 10
        texts = [r.text for r in log.entries()]
        assert "entry 0" not in texts
        assert texts == [f"entry {i}" for i in range(10, 0, -1)]

    def test_never_exceeds_cap(self):
        log = TranscriptLog()
        for i in range(50):
            log.add(NarrationResult(str(i)))
            assert len(log) <= 10

    def test_empty(self):
        log = TranscriptLog()
        assert log.latest is None
        assert log.entries() == []

    def test_clear(self):
        log = TranscriptLog()
        log.add(NarrationResult("x"))
        log.clear()
        assert len(log) == 0


class TestNarrationResult:

    def test_immutable(self):
        result = NarrationResult("text")
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.text = "other"

    def test_defaults(self):
        result = NarrationResult("text")
        assert result.priority is Priority.NORMAL
        assert not result.is_urgent
        assert result.timestamp > 0

    def test_to_dict(self):
        result = NarrationResult("WARNING: stairs", Priority.URGENT, timestamp=5.0)
        assert result.to_dict() == {"text": "WARNING: stairs", "priority": "urgent", "timestamp": 5.0}


class TestNarrationSettings:

    def test_defaults(self):
        settings = NarrationSettings()
        assert settings.verbosity is Verbosity.STANDARD
        assert settings.speech_rate == 1.0
        assert settings.auto_narration is False
        assert settings.auto_interval_ms == 4000
        assert settings.auto_interval == 4.0

    def test_with_changes_returns_new_value(self):
        settings = NarrationSettings()
        changed = settings.with_changes(verbosity="minimal", auto_narration=True)

        assert changed.verbosity is Verbosity.MINIMAL
        assert changed.auto_narration is True
        assert settings.verbosity is Verbosity.STANDARD

    def test_frozen(self):
        with pytest.raises(Exception):
            NarrationSettings().speech_rate = 1.5

    @pytest.mark.parametrize("rate", [0.4, 2.1])
    def test_speech_rate_range(self, rate):
        with pytest.raises(ValidationError):
            NarrationSettings().with_changes(speech_rate=rate)

    @pytest.mark.parametrize("rate", [0.5, 2.0])
    def test_speech_rate_bounds_allowed(self, rate):
        assert NarrationSettings().with_changes(speech_rate=rate).speech_rate == rate

    def test_interval_must_be_supported(self):
        with pytest.raises(ValidationError):
            NarrationSettings().with_changes(auto_interval_ms=3000)

    def test_unknown_setting_rejected(self):
        with pytest.raises(ValidationError):
            NarrationSettings().with_changes(volume=0.5)

    def test_from_env(self):
        values = {
            "AV_VERBOSITY": "DETAILED",
            "AV_SPEECH_RATE": "1.5",
            "AV_AUTO_NARRATION": "true",
            "AV_AUTO_INTERVAL_MS": "2000",
        }
        with patch.dict("accessvision.config.config._config", values):
            settings = NarrationSettings.from_env()

        assert settings.verbosity is Verbosity.DETAILED
        assert settings.speech_rate == 1.5
        assert settings.auto_narration is True
        assert settings.auto_interval_ms == 2000

    def test_from_env_invalid(self):
        with patch.dict("accessvision.config.config._config", {"AV_AUTO_INTERVAL_MS": "1000"}):
            with pytest.raises(ValidationError):
                NarrationSettings.from_env()


def test_mode_label():
    assert Mode.NAVIGATION.label == "navigation"


class TestResolveMode:

    def test_explicit(self):
        assert resolve_mode("Text") is Mode.TEXT
        assert resolve_mode(Mode.SOCIAL) is Mode.SOCIAL

    def test_from_config(self):
        with patch.dict("accessvision.config.config._config", {"AV_MODE": "shopping"}):
            assert resolve_mode() is Mode.SHOPPING

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="cooking"):
            resolve_mode("cooking")
