from __future__ import annotations

import os
import sys
from pathlib import Path

from click.testing import CliRunner

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from main import cli


def _config(tmp_path: Path) -> Path:
    cfg_path = tmp_path / "cfg.ini"
    cfg_path.write_text(
        "\n".join(
            [
                "[DEFAULT]",
                "default_model = mock",
                "",
                "[DISPLAY]",
                "typewriter = false",
                "",
                "[LOG]",
                "active = false",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return cfg_path


def _base_args(tmp_path: Path):
    return ["--conf", str(_config(tmp_path)), "--db", str(tmp_path / "chat.db")]


def test_ask_prints_reply_and_stores_it(tmp_path: Path):
    runner = CliRunner()
    result = runner.invoke(cli, _base_args(tmp_path) + ["ask", "hello"], obj={})
    assert result.exit_code == 0, result.output
    assert "Hello! I'm a mock assistant." in result.output

    listed = runner.invoke(cli, _base_args(tmp_path) + ["conversations"], obj={})
    assert listed.exit_code == 0
    assert "hello" in listed.output


def test_ask_without_prompt_is_usage_error(tmp_path: Path):
    result = CliRunner().invoke(cli, _base_args(tmp_path) + ["ask"], obj={})
    assert result.exit_code == 2
    assert "Nothing to send" in result.output


def test_unknown_model_fails_fast(tmp_path: Path):
    result = CliRunner().invoke(cli, _base_args(tmp_path) + ["--model", "nope", "ask", "hi"], obj={})
    assert result.exit_code == 1
    assert "Unknown model 'nope'" in result.output


def test_list_models_marks_default(tmp_path: Path):
    result = CliRunner().invoke(cli, _base_args(tmp_path) + ["list-models"], obj={})
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert "mock (default)" in lines
    assert "deepseek-70b" in lines


def test_conversations_when_empty(tmp_path: Path):
    result = CliRunner().invoke(cli, _base_args(tmp_path) + ["conversations"], obj={})
    assert result.exit_code == 0
    assert "No conversations yet." in result.output


def test_render_file(tmp_path: Path):
    doc = tmp_path / "reply.md"
    doc.write_text("Intro\n```python\nprint(1)\n```\nDone\n", encoding="utf-8")
    result = CliRunner().invoke(cli, _base_args(tmp_path) + ["render", str(doc)], obj={})
    assert result.exit_code == 0, result.output
    assert "print(1)" in result.output
    assert "Done" in result.output


def test_chat_is_default_command(tmp_path: Path):
    result = CliRunner().invoke(cli, _base_args(tmp_path), input="hello\n/quit\n", obj={})
    assert result.exit_code == 0, result.output
    assert "Hello! I'm a mock assistant." in result.output


def test_ask_with_unregistered_provider_fails_cleanly(tmp_path: Path):
    models = tmp_path / "models.ini"
    models.write_text("[orphan]\nmodel_name = orphan-1\nprovider = Anthropic\n", encoding="utf-8")
    cfg = _config(tmp_path)
    cfg.write_text(cfg.read_text(encoding="utf-8").replace(
        "default_model = mock", f"default_model = mock\nuser_models = {models}"), encoding="utf-8")
    args = ["--conf", str(cfg), "--db", str(tmp_path / "chat.db")]

    result = CliRunner().invoke(cli, args + ["--model", "orphan", "ask", "hello there"], obj={})
    assert result.exit_code == 1
    assert "Provider 'Anthropic' not found" in result.output

    listed = CliRunner().invoke(cli, args + ["conversations"], obj={})
    assert "hello there" not in listed.output
