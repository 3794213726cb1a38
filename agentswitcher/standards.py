"""Discovery, selection and loading of markdown standards documents."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Mapping

from agentswitcher.prompts import PromptStandard
from agentswitcher.store import Standard

_MARKDOWN_SUFFIXES = (".md", ".markdown", ".mdx")


@dataclass
class StandardCandidate:
    """A markdown file offered for selection in a directory listing."""

    path: str
    name: str
    selected: bool = False


def load_prompt_standards(selected: Iterable[Standard]) -> list[PromptStandard]:
    """Read each selected standards file; raise OSError naming the file that failed."""
    standards = []
    for item in selected:
        try:
            with open(item.path, encoding="utf-8", errors="replace") as handle:
                content = handle.read()
        except OSError as exc:
            raise OSError(f"read standard {item.path}: {exc}") from exc
        standards.append(
            PromptStandard(
                path=item.path, name=os.path.basename(item.path), content=content.strip()
            )
        )
    return standards


def selected_standard_path_set(standards: Iterable[Standard]) -> dict[str, bool]:
    """Map every standard's path to True."""
    return {standard.path: True for standard in standards}


def selected_standard_paths(selected: Mapping[str, bool]) -> list[str]:
    """Return the enabled paths in sorted order."""
    return sorted(path for path, enabled in selected.items() if enabled)


def default_standards_directory(project_dir: str, standards: list[Standard] | None) -> str:
    """Directory to open first: the first standard's directory, else the project."""
    if not standards:
        return project_dir
    directory = os.path.dirname(standards[0].path)
    if not directory:
        return project_dir
    directory = os.path.normpath(directory)
    return project_dir if directory == "." else directory


def is_markdown_file(name: str) -> bool:
    """Whether ``name`` has a markdown extension."""
    return name.lower().endswith(_MARKDOWN_SUFFIXES)


def list_standard_candidates(
    directory: str, selected: Mapping[str, bool]
) -> list[StandardCandidate]:
    """List the markdown files directly inside ``directory``, case-insensitively sorted."""
    try:
        with os.scandir(directory) as entries:
            names = [
                entry.name
                for entry in entries
                if not entry.is_dir(follow_symlinks=False) and is_markdown_file(entry.name)
            ]
    except OSError as exc:
        raise OSError(f"read standards directory {directory}: {exc}") from exc

    candidates = []
    for name in sorted(names, key=lambda n: (n.lower(), n)):
        full_path = os.path.join(directory, name)
        candidates.append(
            StandardCandidate(path=full_path, name=name, selected=bool(selected.get(full_path)))
        )
    return candidates


def expand_directory_input(value: str, project_dir: str) -> str:
    """Resolve typed directory text: ``~`` to home, relative paths against the project."""
    text = value.strip()
    if not text:
        return project_dir

    if text.startswith("~"):
        home = os.path.expanduser("~")
        if home == "~":
            raise OSError("resolve home directory: home directory is not known")
        rest = text[1:]
        if rest.startswith(os.sep):
            rest = rest[len(os.sep):]
        text = home + os.sep + rest if rest else home

    if not os.path.isabs(text):
        text = project_dir + os.sep + text

    return os.path.normpath(text)


def autocomplete_directory(value: str, project_dir: str) -> list[str]:
    """Return subdirectories matching the typed text, each ending with a separator."""
    expanded = expand_directory_input(value, project_dir)

    parent = expanded
    prefix = ""
    if not value.strip().endswith(os.sep):
        parent = os.path.dirname(expanded) or "."
        prefix = os.path.basename(expanded)

    try:
        with os.scandir(parent) as entries:
            names = [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]
    except OSError as exc:
        raise OSError(f"read parent directory {parent}: {exc}") from exc

    lowered = prefix.lower()
    return sorted(
        os.path.join(parent, name) + os.sep
        for name in names
        if not prefix or name.lower().startswith(lowered)
    )


def relative_directory_display(path: str, project_dir: str) -> str:
    """Show ``path`` relative to the project when it lies inside it."""
    if os.path.isabs(path) != os.path.isabs(project_dir):
        return path
    try:
        rel = os.path.relpath(path, project_dir)
    except ValueError:
        return path
    if rel.startswith(".."):
        return path
    if rel == ".":
        return "." + os.sep
    return rel


def visible_list_window(length: int, selected_index: int, max_rows: int) -> tuple[int, int]:
    """Return the ``(start, end)`` slice of a list that keeps the selection centred."""
    if max_rows <= 0 or length <= max_rows:
        return 0, length
    start = max(0, selected_index - max_rows // 2)
    end = start + max_rows
    if end > length:
        end = length
        start = end - max_rows
    return start, end