import os
import stat
from pathlib import Path

import pytest

from agentswitcher.agent import (
    AgentRunError,
    Kind,
    Runner,
    build_args,
    definitions,
    find,
    sanitize_codex_output,
    select_output,
)


def _write_script(directory: Path, name: str, body: str) -> None:
    path = directory / name
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def test_build_args_for_codex_includes_output_file():
    got = build_args(Kind.CODEX, "hello", "/tmp/last-message.txt")
    assert got == [
        "exec",
        "hello",
        "--skip-git-repo-check",
        "--color",
        "never",
        "--output-last-message",
        "/tmp/last-message.txt",
    ]


def test_build_args_for_codex_without_output_file():
    assert build_args(Kind.CODEX, "hi", "") == [
        "exec",
        "hi",
        "--skip-git-repo-check",
        "--color",
        "never",
    ]


@pytest.mark.parametrize("kind", [Kind.CLAUDE, Kind.GEMINI, Kind.PI])
def test_build_args_for_print_mode_agents(kind):
    assert build_args(kind, "hello", "") == ["-p", "hello"]


def test_build_args_for_unknown_kind():
    assert build_args("custom", "hello", "") == ["hello"]


def test_select_output_prefers_codex_output_file(tmp_path):
    path = tmp_path / "last-message.txt"
    path.write_text("  actual assistant reply  \n")
    assert select_output(Kind.CODEX, "metadata on stdout", str(path)) == "actual assistant reply"


def test_select_output_falls_back_to_stdout(tmp_path):
    missing = str(tmp_path / "missing.txt")
    assert select_output(Kind.CODEX, "stdout fallback", missing) == "stdout fallback"
    assert select_output(Kind.CLAUDE, "plain stdout", "") == "plain stdout"


def test_select_output_strips_codex_metadata_from_stdout_fallback(tmp_path):
    stdout = """
approval: never
sandbox: workspace-write
session id: 019e0baa

user
Latest user message:
Hi, who are you?
codex
I'm Codex, your coding assistant in this workspace.

Earlier I answered like "Claude," but in this session I'm Codex.
tokens used
10,230
""".strip()
    got = select_output(Kind.CODEX, stdout, str(tmp_path / "missing.txt"))
    assert got == (
        "I'm Codex, your coding assistant in this workspace.\n\n"
        'Earlier I answered like "Claude," but in this session I\'m Codex.'
    )


def test_select_output_sanitizes_codex_output_file(tmp_path):
    path = tmp_path / "last-message.txt"
    path.write_text("codex\nActual reply only.\ntokens used\n1,234")
    assert select_output(Kind.CODEX, "metadata on stdout", str(path)) == "Actual reply only."


def test_sanitize_returns_trimmed_when_nothing_remains():
    assert sanitize_codex_output("  codex  ") == "codex"
    assert sanitize_codex_output("   ") == ""


def test_definitions_and_find():
    kinds = [d.kind for d in definitions()]
    assert kinds == [Kind.CODEX, Kind.CLAUDE, Kind.GEMINI, Kind.PI]
    assert find(Kind.GEMINI).label == "Gemini"
    assert find("claude").binary == "claude"
    assert find("custom") is None


def test_runner_rejects_unknown_agent():
    with pytest.raises(ValueError, match="unknown agent: custom"):
        Runner("custom")


def test_runner_passes_prompt_and_returns_stdout(tmp_path, monkeypatch):
    _write_script(tmp_path, "claude", "printf '%s|' \"$@\"; printf '%s' \"$NO_COLOR\"")
    monkeypatch.setenv("PATH", str(tmp_path))
    result = Runner(Kind.CLAUDE).run("hello there")
    assert result.output == "-p|hello there|1"
    assert result.stderr == ""


def test_runner_uses_stderr_when_output_empty(tmp_path, monkeypatch):
    _write_script(tmp_path, "gemini", "echo note >&2")
    monkeypatch.setenv("PATH", str(tmp_path))
    result = Runner(Kind.GEMINI).run("hi")
    assert result.output == "note"
    assert result.stderr == "note"


def test_runner_reads_codex_output_file(tmp_path, monkeypatch):
    body = (
        'while [ $# -gt 0 ]; do\n'
        '  if [ "$1" = "--output-last-message" ]; then printf "file reply" > "$2"; fi\n'
        '  shift\n'
        'done\n'
        'echo noise on stdout'
    )
    _write_script(tmp_path, "codex", body)
    monkeypatch.setenv("PATH", str(tmp_path))
    result = Runner(Kind.CODEX).run("hi")
    assert result.output == "file reply"


def test_runner_raises_on_nonzero_exit(tmp_path, monkeypatch):
    _write_script(tmp_path, "pi", "echo partial; echo boom >&2; exit 3")
    monkeypatch.setenv("PATH", str(tmp_path))
    with pytest.raises(AgentRunError, match="Pi failed: exit status 3") as excinfo:
        Runner(Kind.PI).run("hi")
    assert excinfo.value.result.stderr == "boom"
    assert excinfo.value.result.output == "partial"


def test_runner_raises_when_binary_missing(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", str(tmp_path))
    with pytest.raises(AgentRunError, match="Claude failed") as excinfo:
        Runner(Kind.CLAUDE).run("hi")
    assert excinfo.value.result.stderr != ""
    assert excinfo.value.result.output == ""


def test_runner_removes_codex_temp_file(tmp_path, monkeypatch):
    record = tmp_path / "record.txt"
    body = (
        'while [ $# -gt 0 ]; do\n'
        f'  if [ "$1" = "--output-last-message" ]; then printf "%s" "$2" > "{record}"; fi\n'
        '  shift\n'
        'done\n'
        'echo reply'
    )
    _write_script(tmp_path, "codex", body)
    monkeypatch.setenv("PATH", str(tmp_path))
    result = Runner(Kind.CODEX).run("hi")
    assert result.output == "reply"
    assert not os.path.exists(record.read_text())