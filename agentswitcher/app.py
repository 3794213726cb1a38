"""Application state and event handling for the agent switcher interface."""

from __future__ import annotations

import contextlib
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from agentswitcher.agent import AgentRunError, Definition, Kind, Result, Runner, definitions
from agentswitcher.picker import Key, KeyEvent, StandardsPicker
from agentswitcher.prompts import (
    build_agent_prompt_with_standards,
    build_compaction_prompt_with_standards,
    describe_agent,
)
from agentswitcher.render import styled
from agentswitcher.standards import (
    default_standards_directory,
    load_prompt_standards,
    selected_standard_path_set,
    selected_standard_paths,
)
from agentswitcher.store import Message, Repository, Session, Standard, StoreError
from agentswitcher import views
from agentswitcher.views import HomeFocus, Screen

SESSION_LIST_LIMIT = 20
REQUEST_TIMEOUT = 10 * 60.0
MIN_INPUT_HEIGHT = 1
MAX_INPUT_HEIGHT = 8
SPINNER_INTERVAL = 0.1

_FAILURES = (StoreError, OSError, ValueError, AgentRunError, sqlite3.Error)

Command = Callable[[], object]


@dataclass
class InputBox:
    """A multi-line text input with a fixed visible height."""

    value: str = ""
    width: int = 20
    height: int = MIN_INPUT_HEIGHT
    placeholder: str = "Type a prompt. Enter send. Alt+Enter newline. ↑/↓ history."
    prompt: str = "┃ "

    def set_value(self, value: str) -> None:
        self.value = value

    def insert(self, text: str) -> None:
        self.value += text

    def backspace(self) -> None:
        self.value = self.value[:-1]

    def reset(self) -> None:
        self.value = ""

    def line_count(self) -> int:
        return self.value.count("\n") + 1

    def view(self) -> str:
        if not self.value:
            lines = [styled(self.placeholder, "color(240)")]
        else:
            lines = self.value.split("\n")[-self.height:]
        lines += [""] * (self.height - len(lines))
        return "\n".join(self.prompt + line for line in lines)


_DOT_FRAMES = ("⣾ ", "⣽ ", "⣻ ", "⢿ ", "⡿ ", "⣟ ", "⣯ ", "⣷ ")


@dataclass
class Spinner:
    """A cycling activity indicator."""

    frames: tuple[str, ...] = _DOT_FRAMES
    frame: int = 0

    def advance(self) -> None:
        self.frame = (self.frame + 1) % len(self.frames)

    def view(self) -> str:
        return self.frames[self.frame]


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class SpinnerTick:
    pass


@dataclass(frozen=True)
class HomeDataLoaded:
    sessions: list = field(default_factory=list)
    error: str = ""


@dataclass(frozen=True)
class AgentResponse:
    session_id: str
    prompt: str
    reply: str = ""
    warning: str = ""
    error: str = ""


@dataclass(frozen=True)
class CompactionDone:
    session_id: str
    summary: str = ""
    compacted_prompt_count: int = 0
    error: str = ""


@dataclass(frozen=True)
class QuitRequested:
    pass


def _quit() -> QuitRequested:
    return QuitRequested()


def _tick() -> SpinnerTick:
    time.sleep(SPINNER_INTERVAL)
    return SpinnerTick()


class Model:
    """State of the whole interface; ``update`` returns commands to run in the background."""

    def __init__(self, repo: Optional[Repository], project_dir: str) -> None:
        self.repo = repo
        self.project_dir = project_dir
        self.width = 0
        self.height = 0
        self.screen = Screen.HOME
        self.agents: list[Definition] = definitions()
        self.selected_agent_index = 0
        self.home_focus = HomeFocus.AGENTS
        self.all_sessions: list[Session] = []
        self.selected_session_idx = 0
        self.agent_picker_idx = 0
        self.active_session: Optional[Session] = None
        self.messages: list[Message] = []
        self.standards: list[Standard] = []
        self.pending_prompt = ""
        self.viewport_width = 0
        self.viewport_height = 0
        self.viewport_offset = 0
        self.input = InputBox()
        self.spinner = Spinner()
        self.standards_picker: Optional[StandardsPicker] = None
        self.prompt_history: list[str] = []
        self.history_index = -1
        self.history_saved = ""
        self.loading = False
        self.compacting = False
        self.quitting = False
        self.status = "Loading sessions..."
        self.err_text = ""

    def init(self) -> list[Command]:
        return [self._load_home_data_cmd(), _tick]

    # -- dispatch -------------------------------------------------------

    def update(self, msg: object) -> list[Command]:
        if isinstance(msg, QuitRequested):
            self.quitting = True
            return []
        if isinstance(msg, Resize):
            self.resize(msg.width, msg.height)
            if self.screen is Screen.STANDARDS and self.standards_picker is not None:
                self.standards_picker.resize(msg.width, msg.height)
            return []
        if isinstance(msg, KeyEvent):
            if msg.key is Key.CTRL_C:
                return [_quit]
            if self.screen is Screen.AGENT_PICKER:
                return self._update_agent_picker(msg)
            if self.screen is Screen.STANDARDS:
                return self._update_standards(msg)
            if self.screen is Screen.HOME:
                return self._update_home(msg)
            return self._update_chat(msg)
        if isinstance(msg, SpinnerTick):
            if self.loading or self.compacting:
                self.spinner.advance()
                self._sync_viewport()
                return [_tick]
            return []
        if isinstance(msg, HomeDataLoaded):
            return self._on_home_data(msg)
        if isinstance(msg, AgentResponse):
            return self._on_agent_response(msg)
        if isinstance(msg, CompactionDone):
            return self._on_compaction(msg)
        return []

    def view(self) -> str:
        if self.screen is Screen.AGENT_PICKER:
            return views.agent_picker_view(self)
        if self.screen is Screen.STANDARDS and self.standards_picker is not None:
            return self.standards_picker.view()
        if self.screen is Screen.CHAT:
            return views.chat_view(self)
        return views.home_view(self)

    # -- background results ----------------------------------------------

    def _on_home_data(self, msg: HomeDataLoaded) -> list[Command]:
        if msg.error:
            self.err_text = msg.error
            self.status = "Failed to load sessions."
            return []
        self.all_sessions = list(msg.sessions)
        self.status = "Enter starts a new session. Tab switches focus."
        if self.selected_session_idx >= len(self.all_sessions):
            self.selected_session_idx = max(0, len(self.all_sessions) - 1)
        return []

    def _on_agent_response(self, msg: AgentResponse) -> list[Command]:
        self.loading = False
        self.pending_prompt = ""
        if msg.error:
            self.err_text = msg.error
            if msg.warning:
                self.err_text += "\n" + msg.warning
            self.input.set_value(msg.prompt)
            self.sync_input_height()
            self._sync_viewport()
            self.status = "Request failed."
            return []

        try:
            updated = self.repo.add_exchange(msg.session_id, msg.prompt, msg.reply)
        except _FAILURES as exc:
            self.err_text = str(exc)
            return []

        self.active_session = updated
        self.status = "Reply received."
        self.err_text = ""
        try:
            self.reload_active_session()
        except _FAILURES as exc:
            self.err_text = str(exc)
            return []

        commands = [self._load_home_data_cmd()]
        if self.repo.need_compaction(updated):
            self.compacting = True
            self.status = "Compacting session..."
            commands.append(self._compact_session_cmd(updated))
        return commands

    def _on_compaction(self, msg: CompactionDone) -> list[Command]:
        self.compacting = False
        if msg.error:
            self.err_text = msg.error
            self.status = "Compaction failed."
            return []
        try:
            self.active_session = self.repo.save_compaction(
                msg.session_id, msg.summary, msg.compacted_prompt_count
            )
            self.status = "Session compacted."
            self.reload_active_session()
        except _FAILURES as exc:
            self.err_text = str(exc)
            return []
        return [self._load_home_data_cmd()]

    # -- key handling ---------------------------------------------------

    def _update_home(self, event: KeyEvent) -> list[Command]:
        name = str(event)
        if self.loading or self.compacting:
            return [_quit] if name == "q" else []

        if name == "q":
            return [_quit]
        if name == "tab":
            self.home_focus = (
                HomeFocus.SESSIONS if self.home_focus is HomeFocus.AGENTS else HomeFocus.AGENTS
            )
        elif name in ("up", "k"):
            if self.home_focus is HomeFocus.AGENTS:
                self.selected_agent_index = max(0, self.selected_agent_index - 1)
            else:
                self.move_session_selection(-1)
        elif name in ("down", "j"):
            if self.home_focus is HomeFocus.AGENTS:
                self.selected_agent_index = min(len(self.agents) - 1, self.selected_agent_index + 1)
            else:
                self.move_session_selection(1)
        elif name == "r":
            self.status = "Refreshing sessions..."
            return [self._load_home_data_cmd()]
        elif name == "enter":
            if self.home_focus is HomeFocus.SESSIONS:
                session = self.current_selected_session()
                if session is not None:
                    try:
                        self.open_session(session)
                    except _FAILURES as exc:
                        self.err_text = str(exc)
                    return []
            try:
                session = self.repo.create_session(self.current_agent().kind)
                self.open_session(session)
            except _FAILURES as exc:
                self.err_text = str(exc)
                return []
            return [self._load_home_data_cmd()]
        return []

    def _update_chat(self, event: KeyEvent) -> list[Command]:
        if self.loading or self.compacting:
            return []

        key = event.key
        if key is Key.ESC:
            self.screen = Screen.HOME
            self.status = "Returned home."
            return [self._load_home_data_cmd()]
        if key is Key.CTRL_T:
            self.open_standards_picker()
            return []
        if key is Key.CTRL_G:
            self.open_agent_picker()
            return []
        if key is Key.ENTER:
            if event.alt:
                self.input.insert("\n")
                self.sync_input_height()
                return []
            return self._send_prompt()
        if key is Key.PGUP:
            self._scroll(max(1, self.viewport_height // 2))
            return []
        if key is Key.PGDOWN:
            self._scroll(-max(1, self.viewport_height // 2))
            return []
        if key is Key.UP and self.prompt_history:
            if self.history_index == -1:
                self.history_saved = self.input.value
                self.history_index = len(self.prompt_history) - 1
            elif self.history_index > 0:
                self.history_index -= 1
            self.input.set_value(self.prompt_history[self.history_index])
            self.sync_input_height()
            return []
        if key is Key.DOWN and self.history_index != -1:
            if self.history_index < len(self.prompt_history) - 1:
                self.history_index += 1
                self.input.set_value(self.prompt_history[self.history_index])
            else:
                self.history_index = -1
                self.input.set_value(self.history_saved)
                self.history_saved = ""
            self.sync_input_height()
            return []

        if key is Key.RUNES:
            self.input.insert(event.text)
        elif key is Key.SPACE:
            self.input.insert(" ")
        elif key in (Key.BACKSPACE, Key.DELETE):
            self.input.backspace()
        self.sync_input_height()
        return []

    def _send_prompt(self) -> list[Command]:
        prompt = self.input.value.strip()
        if not prompt:
            return []
        self.prompt_history.append(prompt)
        self.history_index = -1
        self.history_saved = ""
        self.loading = True
        self.status = f"Sending prompt to {describe_agent(self.active_session.agent)}..."
        self.err_text = ""
        self.pending_prompt = prompt
        self.input.reset()
        self._sync_viewport()
        return [self._run_agent_cmd(self.active_session, prompt), _tick]

    def _update_standards(self, event: KeyEvent) -> list[Command]:
        picker = self.standards_picker
        picker.update(event)

        if picker.cancelled:
            self.screen = Screen.CHAT
            self.status = "Standards picker closed."
            self.err_text = ""
            return []
        if not picker.done:
            return []

        paths = picker.selected_paths()
        try:
            self.repo.replace_standards(self.active_session.id, paths)
        except _FAILURES as exc:
            self.screen = Screen.CHAT
            self.err_text = str(exc)
            self.status = "Failed to save standards."
            return []
        try:
            self.reload_active_session()
        except _FAILURES as exc:
            self.screen = Screen.CHAT
            self.err_text = str(exc)
            self.status = "Failed to reload session."
            return []

        self.screen = Screen.CHAT
        self.err_text = ""
        self.status = f"Saved {len(paths)} standards."
        return [self._load_home_data_cmd()]

    def _update_agent_picker(self, event: KeyEvent) -> list[Command]:
        key = event.key
        if key is Key.ESC:
            self.screen = Screen.CHAT
            self.status = "Agent switch cancelled."
        elif key in (Key.UP, Key.CTRL_P):
            self.agent_picker_idx = max(0, self.agent_picker_idx - 1)
        elif key in (Key.DOWN, Key.CTRL_N):
            self.agent_picker_idx = min(len(self.agents) - 1, self.agent_picker_idx + 1)
        elif key is Key.ENTER:
            selected = self.agents[self.agent_picker_idx]
            try:
                updated = self.repo.update_session_agent(self.active_session.id, selected.kind)
            except _FAILURES as exc:
                self.screen = Screen.CHAT
                self.err_text = str(exc)
                self.status = "Failed to switch agent."
                return []
            self.active_session = updated
            self.screen = Screen.CHAT
            self.status = f"Switched to {selected.label}."
            self.err_text = ""
            return [self._load_home_data_cmd()]
        return []

    # -- commands ---------------------------------------------------------

    def _load_home_data_cmd(self) -> Command:
        def load() -> HomeDataLoaded:
            try:
                return HomeDataLoaded(sessions=self.repo.list_all_sessions(SESSION_LIST_LIMIT))
            except _FAILURES as exc:
                return HomeDataLoaded(error=str(exc))

        return load

    def _run_agent_cmd(self, session: Session, prompt: str) -> Command:
        def run() -> AgentResponse:
            try:
                snapshot = self.repo.get_context_snapshot(session.id)
                standards = load_prompt_standards(snapshot.standards)
                runner = Runner(session.agent)
                full_prompt = build_agent_prompt_with_standards(
                    snapshot.session, standards, snapshot.recent_messages, prompt
                )
            except _FAILURES as exc:
                return AgentResponse(session.id, prompt, error=str(exc))
            try:
                result = runner.run(full_prompt, REQUEST_TIMEOUT)
                error = ""
            except AgentRunError as exc:
                result, error = exc.result, str(exc)
            return AgentResponse(session.id, prompt, result.output, result.stderr, error)

        return run

    def _compact_session_cmd(self, session: Session) -> Command:
        def compact() -> CompactionDone:
            try:
                messages = self.repo.get_messages_for_compaction(session.id)
                standards = load_prompt_standards(self.repo.list_standards(session.id))
                runner = Runner(session.agent)
            except _FAILURES as exc:
                return CompactionDone(session.id, error=str(exc))
            result: Result
            try:
                result = runner.run(
                    build_compaction_prompt_with_standards(session, messages, standards),
                    REQUEST_TIMEOUT,
                )
                error = ""
            except AgentRunError as exc:
                result, error = exc.result, str(exc)
            return CompactionDone(session.id, result.output, session.user_prompt_count, error)

        return compact

    # -- state helpers ----------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Record the terminal size and lay out the components."""
        self.width = width
        self.height = height
        self._resize_components()

    def _resize_components(self) -> None:
        if self.width == 0 or self.height == 0:
            return
        header_height, footer_height = 4, 5
        self.input.width = max(20, self.width - 4)
        input_area = self.input.height + 2
        self.viewport_width = max(20, self.width - 4)
        self.viewport_height = max(8, self.height - header_height - input_area - footer_height)
        self._sync_viewport()

    def _sync_viewport(self) -> None:
        if self.width == 0 or self.height == 0:
            return
        self.viewport_offset = 0

    def _scroll(self, delta: int) -> None:
        if self.active_session is None:
            return
        total = len(views.render_messages(self).split("\n"))
        limit = max(0, total - self.viewport_height)
        self.viewport_offset = min(max(0, self.viewport_offset + delta), limit)

    def open_session(self, session: Session) -> None:
        """Make ``session`` active and show the chat screen."""
        self.active_session = session
        self.pending_prompt = ""
        self.history_index = -1
        self.history_saved = ""
        self.reload_active_session()
        self.screen = Screen.CHAT
        self.status = f"Session {session.id} opened."
        self.err_text = ""
        self.input.reset()
        self.sync_input_height()

    def open_standards_picker(self) -> None:
        current = selected_standard_paths(selected_standard_path_set(self.standards))
        picker = StandardsPicker(self.project_dir, current)
        directory = default_standards_directory(self.project_dir, self.standards)
        if directory.strip():
            with contextlib.suppress(OSError):
                picker.load_directory(directory)
        picker.width = self.width
        picker.height = self.height
        self.standards_picker = picker
        self.screen = Screen.STANDARDS

    def open_agent_picker(self) -> None:
        self.agent_picker_idx = self.agent_index_for(self.active_session.agent)
        self.screen = Screen.AGENT_PICKER
        self.status = "Select agent engine. History is preserved."

    def agent_index_for(self, kind: Kind | str) -> int:
        return next((i for i, d in enumerate(self.agents) if d.kind == kind), 0)

    def reload_active_session(self) -> None:
        """Reload the active session, its standards and its messages from the store."""
        session_id = self.active_session.id
        session = self.repo.get_session(session_id)
        standards = self.repo.list_standards(session_id)
        messages = self.repo.list_messages(session_id)
        self.active_session = session
        self.standards = list(standards)
        self.messages = list(messages)
        self._sync_viewport()

    def sync_input_height(self) -> None:
        """Grow or shrink the input box to fit its lines, within fixed bounds."""
        height = min(max(self.input.line_count(), MIN_INPUT_HEIGHT), MAX_INPUT_HEIGHT)
        self.input.height = height
        if self.width > 0 and self.height > 0:
            self._resize_components()

    def current_agent(self) -> Definition:
        return self.agents[self.selected_agent_index]

    def current_selected_session(self) -> Optional[Session]:
        if 0 <= self.selected_session_idx < len(self.all_sessions):
            return self.all_sessions[self.selected_session_idx]
        return None

    def move_session_selection(self, delta: int) -> None:
        if not self.all_sessions:
            self.selected_session_idx = 0
            return
        index = self.selected_session_idx + delta
        self.selected_session_idx = min(max(index, 0), len(self.all_sessions) - 1)