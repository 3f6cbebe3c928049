"""
Tests for the accessvision command-line interface
"""

import cv2
import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from accessvision.cli import create_parser, handle_config, handle_describe, handle_prompt, parse_args, run_cli
from accessvision.cli.handlers import _masked, handle_key
from accessvision.config import config
from accessvision.models import Mode, NarrationResult, Priority, Verbosity


class TestParser:

    def test_run_defaults(self):
        args = parse_args(["run"])
        assert args.command == "run"
        assert args.mode is None
        assert args.auto is None
        assert args.quiet is False

    def test_run_options(self):
        args = parse_args(["run", "-m", "navigation", "-v", "minimal", "--auto", "--interval", "2000", "-r", "1.5"])
        assert args.mode == "navigation"
        assert args.verbosity == "minimal"
        assert args.auto is True
        assert args.interval == 2000
        assert args.rate == 1.5

    def test_no_auto(self):
        assert parse_args(["run", "--no-auto"]).auto is False

    def test_unsupported_interval(self):
        with pytest.raises(SystemExit):
            parse_args(["run", "--interval", "3000"])

    def test_unknown_mode(self):
        with pytest.raises(SystemExit):
            parse_args(["describe", "photo.jpg", "--mode", "cooking"])

    def test_config_set(self):
        args = parse_args(["config", "--set", "AV_MODEL", "llava"])
        assert args.set == ["AV_MODEL", "llava"]


def test_no_command_prints_help(capsys):
    assert run_cli([]) == 0
    assert "accessvision" in capsys.readouterr().out


class TestPromptCommand:

    def test_single(self, capsys):
        assert handle_prompt(parse_args(["prompt", "-m", "shopping", "-v", "minimal"])) == 0
        out = capsys.readouterr().out
        assert out.startswith("Shopping Mode.")
        assert "under 15 words" in out

    def test_all(self, capsys):
        handle_prompt(parse_args(["prompt", "--all", "--system"]))
        out = capsys.readouterr().out
        assert out.startswith("SYSTEM:")
        assert out.count("[") == len(Mode) * len(Verbosity)

    def test_via_run_cli(self, capsys):
        with patch("accessvision.cli.main.enable_diagnostics") as diagnostics:
            assert run_cli(["--log-level", "DEBUG", "prompt", "-m", "text"]) == 0
        assert diagnostics.call_args.kwargs["level"] == "DEBUG"
        assert "Text Reader Mode." in capsys.readouterr().out


class TestConfigCommand:

    def setup_method(self):
        self.original_config = config.to_dict()

    def teardown_method(self):
        for key, value in self.original_config.items():
            config.set(key, value)

    def test_masked(self):
        masked = _masked({"AV_GEMINI_API_KEY": "abc123", "AV_OPENAI_API_KEY": "", "AV_MODEL": "llava"})
        assert masked["AV_GEMINI_API_KEY"] == "******"
        assert masked["AV_OPENAI_API_KEY"] == "(not set)"
        assert masked["AV_MODEL"] == "llava"

    def test_show_hides_keys(self, capsys):
        config.set("AV_GEMINI_API_KEY", "super-secret")
        handle_config(parse_args(["config", "--show"]))
        out = capsys.readouterr().out
        assert "super-secret" not in out
        assert "AV_MODEL:" in out

    def test_set(self, capsys):
        assert handle_config(parse_args(["config", "--set", "AV_VERBOSITY", "detailed"])) == 0
        assert config.get("AV_VERBOSITY") == "detailed"
        config.save.assert_called_once_with(keys_only=["AV_VERBOSITY"])

    def test_set_unknown_key(self, capsys):
        assert handle_config(parse_args(["config", "--set", "AV_NOPE", "1"])) == 1
        config.save.assert_not_called()

    def test_get(self, capsys):
        config.set("AV_MODE", "social")
        handle_config(parse_args(["config", "--get", "AV_MODE"]))
        assert capsys.readouterr().out.strip() == "AV_MODE=social"


class TestDescribeCommand:

    def test_describe_image(self, tmp_path, capsys):
        path = tmp_path / "menu.png"
        cv2.imwrite(str(path), np.full((64, 64, 3), 255, dtype=np.uint8))

        client = MagicMock()
        client.analyze = AsyncMock(return_value=NarrationResult("A menu with three items.", Priority.NORMAL))
        client.aclose = AsyncMock()
        with patch("accessvision.llm_client.AnalysisClient", return_value=client):
            assert handle_describe(parse_args(["describe", str(path), "-m", "text", "-v", "detailed"])) == 0

        frame, mode, verbosity = client.analyze.await_args.args
        assert frame[:2] == b"\xff\xd8"
        assert (mode, verbosity) == (Mode.TEXT, Verbosity.DETAILED)
        client.aclose.assert_awaited_once()
        assert "A menu with three items." in capsys.readouterr().out

    def test_unreadable_image(self, tmp_path, capsys):
        assert handle_describe(parse_args(["describe", str(tmp_path / "nothing.jpg")])) == 1
        assert "Cannot read image" in capsys.readouterr().out


class TestInteractiveKeys:

    @pytest.mark.asyncio
    async def test_quit(self, make_pipeline):
        pipeline, _ = make_pipeline()
        assert handle_key(pipeline, "q") is False

    @pytest.mark.asyncio
    async def test_enter_triggers(self, make_pipeline, spin):
        pipeline, parts = make_pipeline()
        pipeline.activate()

        assert handle_key(pipeline, "")
        await spin()
        assert len(parts.analyzer.calls) == 1
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_mode_key(self, make_pipeline):
        pipeline, parts = make_pipeline()
        handle_key(pipeline, "n")
        assert pipeline.mode is Mode.NAVIGATION
        assert parts.speech.spoken == ["navigation mode selected"]

    @pytest.mark.asyncio
    async def test_toggle_auto_and_interval(self, make_pipeline, spin, capsys):
        pipeline, _ = make_pipeline()
        pipeline.activate()

        handle_key(pipeline, "a")
        await spin()
        assert pipeline.scheduler.auto_running

        handle_key(pipeline, "i")
        assert pipeline.settings.auto_interval_ms == 8000
        handle_key(pipeline, "i")
        assert pipeline.settings.auto_interval_ms == 2000
        assert pipeline.scheduler.auto_interval == 2.0

        handle_key(pipeline, "a")
        assert not pipeline.scheduler.auto_running
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_cycle_verbosity(self, make_pipeline):
        pipeline, _ = make_pipeline()
        handle_key(pipeline, "v")
        assert pipeline.settings.verbosity is Verbosity.DETAILED
        handle_key(pipeline, "v")
        assert pipeline.settings.verbosity is Verbosity.MINIMAL

    @pytest.mark.asyncio
    async def test_speech_rate_clamped(self, make_pipeline, capsys):
        pipeline, _ = make_pipeline()
        for _ in range(12):
            handle_key(pipeline, "+")

        assert pipeline.settings.speech_rate == 2.0
        assert "Value out of range" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_history(self, make_pipeline, capsys):
        pipeline, _ = make_pipeline()
        pipeline.activate()
        await pipeline.trigger()
        capsys.readouterr()

        handle_key(pipeline, "h")
        assert "A quiet room." in capsys.readouterr().out
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_camera_error_reported_once(self, make_pipeline, fake_camera_factory, capsys):
        pipeline, _ = make_pipeline(camera=fake_camera_factory(fail_reason="Camera permission denied or camera not found."))
        pipeline.activate()

        handle_key(pipeline, "g")
        assert "Camera permission denied" in capsys.readouterr().out
        assert pipeline.error_message is None


def test_create_parser_lists_commands():
    help_text = create_parser().format_help()
    for command in ("run", "describe", "prompt", "config", "check"):
        assert command in help_text
