"""Tests for CLI app entry point."""

from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from convmem.cli.app import app, main
from convmem.cli.replay_cmd import (
    ReplayClock,
    TranscriptError,
    load_transcript,
    replay_transcript,
)
from convmem.memory.manager import SessionMemory

runner = CliRunner()


def test_version_command():
    """Test 'version' prints convmem version string."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "convmem version" in result.output


def test_no_args_shows_help():
    """Test invoking with no arguments shows help (no_args_is_help)."""
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output or "convmem" in result.output


def test_replay_command_delegates():
    """Test 'replay' delegates to replay_command."""
    with patch("convmem.cli.replay_cmd.replay_command") as mock_cmd:
        result = runner.invoke(app, ["replay", "talk.yaml", "--window", "5"])
        mock_cmd.assert_called_once()
        assert mock_cmd.call_args.kwargs["window"] == 5
        assert result.exit_code == 0


def test_show_config_defaults(tmp_config_path):
    """Test 'show-config' prints defaults when no file exists."""
    result = runner.invoke(app, ["show-config", "--config", str(tmp_config_path)])

    assert result.exit_code == 0
    assert "max_memory_size: 1000" in result.output


def test_show_config_invalid(tmp_config_path):
    """Test 'show-config' exits with an error for an invalid file."""
    tmp_config_path.write_text("session: [unclosed")

    result = runner.invoke(app, ["show-config", "--config", str(tmp_config_path)])

    assert result.exit_code == 1


def test_replay_end_to_end(tmp_path, tmp_config_path, prompts_dir):
    """Test a transcript replay prints usage, context and threads."""
    transcript = tmp_path / "talk.yaml"
    transcript.write_text(
        yaml.safe_dump(
            [
                {"role": "user", "content": "hello", "skill": "dsa"},
                {"role": "model", "content": "hi sir", "offset_seconds": 5},
                {"role": "user", "content": "what was it you said?", "offset_seconds": 10},
            ]
        )
    )

    result = runner.invoke(
        app,
        [
            "replay",
            str(transcript),
            "--config",
            str(tmp_config_path),
            "--prompts",
            str(prompts_dir),
            "--window",
            "1",
        ],
    )

    assert result.exit_code == 0
    assert "Memory usage" in result.output
    assert "Enhanced context" in result.output
    assert "hi sir" in result.output


def test_replay_missing_transcript(tmp_path, tmp_config_path):
    """Test a missing transcript exits with an error."""
    result = runner.invoke(
        app, ["replay", str(tmp_path / "none.yaml"), "--config", str(tmp_config_path)]
    )

    assert result.exit_code == 1
    assert "Transcript not found" in result.output


def test_load_transcript_rejects_non_list(tmp_path):
    """Test that a mapping at the top level is not a transcript."""
    path = tmp_path / "bad.yaml"
    path.write_text("role: user\n")

    with pytest.raises(TranscriptError, match="list of mappings"):
        load_transcript(path)


def test_replay_transcript_switches_skills(catalog):
    """Test skill changes and offsets are applied while replaying."""
    clock = ReplayClock()
    memory = SessionMemory(catalog, clock=clock)

    ids = replay_transcript(
        memory,
        [
            {"role": "user", "content": "explain heaps", "skill": "dsa"},
            {"role": "model", "content": "A heap is...", "offset_seconds": 30},
            {"role": "system", "content": "", "action": "Application paused"},
        ],
        clock,
    )

    assert len(ids) == 3
    assert memory.active_skill == "dsa"
    history = memory.get_full_conversation_history()
    assert [e.action for e in history] == [
        "skill_change",
        "chat_input",
        "llm_response",
        "Application paused",
    ]
    assert (history[2].timestamp - history[1].timestamp).total_seconds() == 30


def test_main_keyboard_interrupt():
    """Test main() handles KeyboardInterrupt with exit code 130."""
    with (
        patch("convmem.cli.app.app", side_effect=KeyboardInterrupt),
        patch("convmem.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(130)


def test_main_exception():
    """Test main() handles unexpected exceptions with exit code 1."""
    with (
        patch("convmem.cli.app.app", side_effect=RuntimeError("test error")),
        patch("convmem.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(1)
