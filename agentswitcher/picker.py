"""Interactive picker for attaching markdown standards files to a session."""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from enum import Enum

from agentswitcher.prompts import PromptStandard
from agentswitcher.render import (
    FooterItem,
    boxed,
    render_manual_footer,
    render_page_with_footer,
    styled,
)
from agentswitcher.standards import (
    StandardCandidate,
    autocomplete_directory,
    expand_directory_input,
    list_standard_candidates,
    load_prompt_standards,
    relative_directory_display,
    selected_standard_paths,
    visible_list_window,
)
from agentswitcher.store import Standard

_PANEL_BORDER = "63"
_INPUT_BORDER = "242"
_TITLE_STYLE = "bold color(230)"
_HINT_STYLE = "color(245)"
_SECTION_TITLE_STYLE = "bold color(229)"
_MUTED_STYLE = "color(244)"
_SELECTED_STYLE = "bold color(230) on color(33)"
_ACTIVE_STYLE = "bold color(153)"
_ERROR_STYLE = "color(204)"
_SUGGESTION_INDEX_STYLE = "bold color(245)"

_VISIBLE_FILES = 10
_SUMMARY_LIMIT = 5

_FOOTER_ITEMS = (
    FooterItem("Tab", "autocomplete/focus"),
    FooterItem("Enter", "open/save"),
    FooterItem("Space", "toggle file"),
    FooterItem("↑/↓", "move"),
    FooterItem("Esc", "cancel"),
)


class Key(Enum):
    """Keys the terminal interface distinguishes."""

    RUNES = "runes"
    ENTER = "enter"
    TAB = "tab"
    ESC = "esc"
    SPACE = "space"
    BACKSPACE = "backspace"
    DELETE = "delete"
    UP = "up"
    DOWN = "down"
    PGUP = "pgup"
    PGDOWN = "pgdown"
    CTRL_C = "ctrl+c"
    CTRL_G = "ctrl+g"
    CTRL_N = "ctrl+n"
    CTRL_P = "ctrl+p"
    CTRL_T = "ctrl+t"


@dataclass(frozen=True)
class KeyEvent:
    """A key press; ``text`` holds the typed characters for ``Key.RUNES`` and ``Key.SPACE``."""

    key: Key
    text: str = ""
    alt: bool = False

    def __str__(self) -> str:
        if self.key is Key.RUNES:
            name = self.text
        elif self.key is Key.SPACE:
            name = " "
        else:
            name = self.key.value
        return f"alt+{name}" if self.alt else name


class StandardsFocus(Enum):
    """Which part of the picker receives key presses."""

    DIRECTORY = "directory"
    FILES = "files"


class StandardsPicker:
    """Browse a directory and toggle which markdown files are used as standards."""

    def __init__(self, project_dir: str, selected: list[str] | None = None) -> None:
        if not project_dir.strip():
            project_dir = "."
        self.project_dir = project_dir
        self.selected: dict[str, bool] = {path: True for path in selected or ()}
        self.directory = project_dir
        self.directory_input = relative_directory_display(project_dir, project_dir)
        self.directory_focus = StandardsFocus.DIRECTORY
        self.candidates: list[StandardCandidate] = []
        self.cursor = 0
        self.directory_suggestions: list[str] = []
        self.suggestion_index = 0
        self.width = 0
        self.height = 0
        self.status = "Pick a standards directory. Tab autocompletes directories."
        self.err_text = ""
        self.done = False
        self.cancelled = False
        with contextlib.suppress(OSError):
            self.load_directory(project_dir)

    # -- input handling -------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Record the terminal size."""
        self.width = width
        self.height = height
        self._clamp_cursor()

    def update(self, event: KeyEvent) -> None:
        """Apply one key press to the picker's state."""
        if self.done or self.cancelled:
            return

        key = event.key
        in_directory = self.directory_focus is StandardsFocus.DIRECTORY

        if key in (Key.CTRL_C, Key.ESC):
            self.cancelled = True
            self.status = "Standards picker closed."
        elif key is Key.ENTER:
            self._handle_enter(in_directory)
        elif key is Key.TAB:
            self._handle_tab(in_directory)
        elif key in (Key.BACKSPACE, Key.DELETE):
            if in_directory and self.directory_input:
                self._edit_input(self.directory_input[:-1])
        elif key is Key.SPACE:
            if in_directory:
                self._edit_input(self.directory_input + " ")
            else:
                self.toggle_current_candidate()
        elif key is Key.RUNES:
            if in_directory:
                self._edit_input(self.directory_input + event.text)
            elif event.text == " ":
                self.toggle_current_candidate()
        elif key in (Key.UP, Key.CTRL_P):
            if not in_directory:
                self.move_cursor(-1)
        elif key in (Key.DOWN, Key.CTRL_N):
            if not in_directory:
                self.move_cursor(1)

    def _handle_enter(self, in_directory: bool) -> None:
        if not in_directory:
            self.done = True
            self.status = "Standards selection saved."
            return
        try:
            self.directory = expand_directory_input(self.directory_input, self.project_dir)
            self.load_directory(self.directory)
        except OSError as exc:
            self.err_text = str(exc)
            return
        self.directory_focus = StandardsFocus.FILES
        self.status = "Select markdown files with space. Enter confirms."

    def _handle_tab(self, in_directory: bool) -> None:
        if not in_directory:
            self.directory_focus = StandardsFocus.DIRECTORY
            return
        if not self.directory_suggestions:
            try:
                self.refresh_directory_suggestions()
            except OSError as exc:
                self.err_text = str(exc)
                return
        self.accept_directory_suggestion()

    def _edit_input(self, value: str) -> None:
        self.directory_input = value
        self.directory_suggestions = []
        self.suggestion_index = 0
        self.err_text = ""

    # -- state changes --------------------------------------------------

    def refresh_directory_suggestions(self) -> None:
        """Recompute directory completions for the typed input."""
        self.directory_suggestions = autocomplete_directory(self.directory_input, self.project_dir)
        self.suggestion_index = 0

    def accept_directory_suggestion(self) -> None:
        """Put the current suggestion into the input and advance to the next one."""
        if not self.directory_suggestions:
            return
        count = len(self.directory_suggestions)
        if not 0 <= self.suggestion_index < count:
            self.suggestion_index = 0
        self.directory_input = self.directory_suggestions[self.suggestion_index]
        if count > 1:
            self.suggestion_index = (self.suggestion_index + 1) % count

    def load_directory(self, directory: str) -> None:
        """List the markdown files in ``directory``; raise OSError if it cannot be read."""
        directory = os.path.normpath(directory)
        candidates = list_standard_candidates(directory, self.selected)

        self.directory = directory
        self.directory_input = relative_directory_display(directory, self.project_dir)
        self.candidates = candidates
        self.directory_suggestions = []
        self.suggestion_index = 0
        self._clamp_cursor()
        if candidates:
            self.status = f"Loaded {len(candidates)} markdown files."
        else:
            self.status = "No markdown standards found in this directory."
        self.err_text = ""

    def move_cursor(self, delta: int) -> None:
        """Move the file cursor, staying within the list."""
        if not self.candidates:
            self.cursor = 0
            return
        self.cursor = min(max(self.cursor + delta, 0), len(self.candidates) - 1)

    def _clamp_cursor(self) -> None:
        if not self.candidates:
            self.cursor = 0
            return
        self.cursor = min(max(self.cursor, 0), len(self.candidates) - 1)

    def toggle_current_candidate(self) -> None:
        """Flip the selection of the file under the cursor."""
        if not self.candidates:
            return
        current = self.candidates[self.cursor]
        enabled = not self.selected.get(current.path, False)
        self.selected[current.path] = enabled
        current.selected = enabled
        verb = "Selected" if enabled else "Deselected"
        self.status = f"{verb} {current.name}"

    # -- queries --------------------------------------------------------

    def selected_paths(self) -> list[str]:
        """Sorted paths of every selected file."""
        return selected_standard_paths(self.selected)

    def selected_count(self) -> int:
        return len(self.selected_paths())

    def summary(self) -> str:
        """Short text describing the directory and the selection."""
        if not self.candidates:
            return "No markdown standards found."
        display = relative_directory_display(self.directory, self.project_dir)
        text = f"{len(self.candidates)} markdown file(s) in {display}"
        selected = self.selected_paths()
        if selected:
            text += "\nSelected:"
            text += "".join(f"\n- {path}" for path in selected[:_SUMMARY_LIMIT])
            if len(selected) > _SUMMARY_LIMIT:
                text += f"\n- +{len(selected) - _SUMMARY_LIMIT} more"
        return text

    def sorted_candidates(self) -> list[StandardCandidate]:
        """A copy of the candidates ordered case-insensitively by name."""
        return sorted(self.candidates, key=lambda candidate: candidate.name.lower())

    def is_directory_focus(self) -> bool:
        return self.directory_focus is StandardsFocus.DIRECTORY

    def selected_standards(self) -> list[Standard]:
        return [Standard(path=path) for path in self.selected_paths()]

    def load_selected_standards(self) -> list[PromptStandard]:
        """Read the selected files from disk."""
        return load_prompt_standards(self.selected_standards())

    # -- rendering ------------------------------------------------------

    def view(self) -> str:
        content = "\n\n".join(
            [
                styled("Standards Picker", _TITLE_STYLE),
                styled(
                    "Tab autocomplete in directory mode. Enter opens a directory or confirms "
                    "the selection. Space toggles markdown files.",
                    _HINT_STYLE,
                ),
                self.render_directory_block(),
                _panel(self.render_files()),
            ]
        )
        return render_page_with_footer(self.width, self.height, content, self.render_footer())

    def render_directory_block(self) -> str:
        label = "Directory"
        if self.is_directory_focus():
            label = styled(label, _ACTIVE_STYLE)

        resolved = relative_directory_display(self.directory, self.project_dir)
        body = [
            label,
            boxed(self.directory_input or " ", border_color=_INPUT_BORDER),
            f"Resolved: {styled(resolved, _MUTED_STYLE)}",
        ]

        if self.directory_suggestions:
            lines = []
            for number, suggestion in enumerate(self.directory_suggestions, start=1):
                if number - 1 == self.suggestion_index:
                    lines.append(styled(f"{number}  {suggestion}", _SELECTED_STYLE))
                else:
                    index = styled(str(number), _SUGGESTION_INDEX_STYLE)
                    lines.append(f"{index}  {suggestion}")
            body += ["Autocomplete:", "\n".join(lines)]

        if self.err_text:
            body.append(styled(self.err_text, _ERROR_STYLE))

        return _panel("\n".join(body))

    def render_files(self) -> str:
        title = styled("Markdown Files", _SECTION_TITLE_STYLE)
        if not self.candidates:
            message = styled("No markdown files were found in this directory.", _MUTED_STYLE)
            return f"{title}\n\n{message}"

        start, end = visible_list_window(len(self.candidates), self.cursor, _VISIBLE_FILES)
        lines = [title]
        for index, candidate in enumerate(self.candidates[start:end], start=start):
            checked = "[x]" if self.selected.get(candidate.path) else "[ ]"
            line = f"{checked} {candidate.name}"
            if index == self.cursor:
                style = _ACTIVE_STYLE if self.is_directory_focus() else _SELECTED_STYLE
                line = styled(line, style)
            lines.append(line)
        if end < len(self.candidates):
            lines.append(styled(f"... {len(self.candidates) - end} more", _MUTED_STYLE))
        return "\n".join(lines)

    def render_footer(self) -> str:
        status = self.status
        count = self.selected_count()
        if count:
            status = f"{status}  {count} selected"
        if self.done:
            status = "Standards selection saved."
        if self.cancelled:
            status = "Standards picker closed."
        return render_manual_footer(self.width, status, self.err_text, _FOOTER_ITEMS)


def _panel(text: str) -> str:
    """Bordered panel with one blank line above and below and two columns each side."""
    padded = ["", *(f" {line} " for line in text.split("\n")), ""]
    return boxed("\n".join(padded), border_color=_PANEL_BORDER)