"""Coding-agent definitions and a runner that invokes their command-line tools."""

from __future__ import annotations

import contextlib
import os
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Kind(str, Enum):
    """Known coding agents."""

    CODEX = "codex"
    CLAUDE = "claude"
    GEMINI = "gemini"
    PI = "pi"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Definition:
    """Static description of an agent and the binary that runs it."""

    kind: Kind
    label: str
    description: str
    binary: str


@dataclass
class Result:
    """Captured output of one agent invocation."""

    output: str = ""
    stderr: str = ""


class AgentRunError(Exception):
    """Raised when an agent process fails; carries whatever output was captured."""

    def __init__(self, message: str, result: Result) -> None:
        super().__init__(message)
        self.result = result


_DEFINITIONS: tuple[Definition, ...] = (
    Definition(Kind.CODEX, "Codex", "OpenAI Codex CLI", "codex"),
    Definition(Kind.CLAUDE, "Claude", "Anthropic Claude Code", "claude"),
    Definition(Kind.GEMINI, "Gemini", "Google Gemini CLI", "gemini"),
    Definition(Kind.PI, "Pi", "Pi coding agent", "pi"),
)


def definitions() -> list[Definition]:
    """Return all known agent definitions in display order."""
    return list(_DEFINITIONS)


def find(kind: Kind | str) -> Definition | None:
    """Return the definition for ``kind``, or None if it is unknown."""
    return next((d for d in _DEFINITIONS if d.kind == kind), None)


def build_args(kind: Kind | str, prompt: str, output_file_path: str) -> list[str]:
    """Build the command-line arguments that send ``prompt`` to the agent."""
    if kind == Kind.CODEX:
        args = ["exec", prompt, "--skip-git-repo-check", "--color", "never"]
        if output_file_path:
            args += ["--output-last-message", output_file_path]
        return args
    if kind in (Kind.CLAUDE, Kind.GEMINI, Kind.PI):
        return ["-p", prompt]
    return [prompt]


def select_output(kind: Kind | str, stdout: str, output_file_path: str) -> str:
    """Pick the reply text: Codex prefers its last-message file, others use stdout."""
    if kind != Kind.CODEX:
        return stdout
    if output_file_path:
        try:
            content = Path(output_file_path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            content = ""
        trimmed = content.strip()
        if trimmed:
            return sanitize_codex_output(trimmed)
    return sanitize_codex_output(stdout)


def sanitize_codex_output(output: str) -> str:
    """Strip Codex session metadata and token counts around the actual reply."""
    trimmed = output.strip()
    if not trimmed:
        return ""

    lines = trimmed.split("\n")
    start = 0
    for index in range(len(lines) - 1, -1, -1):
        if lines[index].strip().lower() in ("codex", "assistant"):
            start = index + 1
            break

    end = next(
        (i for i in range(start, len(lines)) if lines[i].strip().lower() == "tokens used"),
        len(lines),
    )

    sanitized = "\n".join(lines[start:end]).strip()
    return sanitized or trimmed


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


class Runner:
    """Runs one agent's command-line tool with a prompt."""

    def __init__(self, kind: Kind | str) -> None:
        definition = find(kind)
        if definition is None:
            raise ValueError(f"unknown agent: {kind}")
        self.definition = definition

    def run(self, prompt: str, timeout: float | None = None) -> Result:
        """Run the agent and return its reply; raise AgentRunError on failure."""
        output_path = ""
        if self.definition.kind == Kind.CODEX:
            try:
                fd, output_path = tempfile.mkstemp(
                    prefix="agentswitcher-codex-last-message-", suffix=".txt"
                )
            except OSError as exc:
                raise AgentRunError(
                    f"create codex output file: {exc}", Result(stderr=str(exc))
                ) from exc
            os.close(fd)
        try:
            return self._execute(prompt, output_path, timeout)
        finally:
            if output_path:
                with contextlib.suppress(OSError):
                    os.remove(output_path)

    def _execute(self, prompt: str, output_path: str, timeout: float | None) -> Result:
        definition = self.definition
        command = [definition.binary, *build_args(definition.kind, prompt, output_path)]
        env = {**os.environ, "NO_COLOR": "1"}

        failure: str | None = None
        try:
            completed = subprocess.run(
                command, capture_output=True, env=env, timeout=timeout, check=False
            )
            stdout, stderr = completed.stdout, completed.stderr
            if completed.returncode < 0:
                failure = f"signal: {-completed.returncode}"
            elif completed.returncode != 0:
                failure = f"exit status {completed.returncode}"
        except subprocess.TimeoutExpired as exc:
            stdout, stderr = exc.stdout, exc.stderr
            failure = f"timed out after {timeout} seconds"
        except OSError as exc:
            stdout = stderr = None
            failure = str(exc)

        result = Result(
            output=select_output(definition.kind, _decode(stdout).strip(), output_path),
            stderr=_decode(stderr).strip(),
        )
        if failure is not None:
            if not result.stderr:
                result.stderr = failure
            raise AgentRunError(f"{definition.label} failed: {failure}", result)
        if not result.output and result.stderr:
            result.output = result.stderr
        return result