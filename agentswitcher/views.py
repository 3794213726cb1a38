"""Rendering of the home, chat and agent-picker screens.

The functions read their state from a model object with these attributes:
``width``, ``height``, ``screen``, ``agents``, ``selected_agent_index``,
``home_focus``, ``all_sessions``, ``selected_session_idx``, ``agent_picker_idx``,
``active_session``, ``messages``, ``standards``, ``pending_prompt``,
``viewport_width``, ``viewport_height``, ``viewport_offset`` (lines scrolled up
from the bottom), ``loading``, ``compacting``, ``status``, ``err_text``,
``spinner`` and ``input`` (both offering ``view()``).
"""

from __future__ import annotations

import io
import os
from enum import Enum
from typing import Any

from rich.console import Console
from rich.markdown import Markdown

from agentswitcher.prompts import describe_agent
from agentswitcher.render import (
    FooterItem,
    boxed,
    render_manual_footer,
    render_page_with_footer,
    styled,
    visible_width,
)

_TITLE_STYLE = "bold color(230)"
_SELECTED_STYLE = "bold color(230) on color(33)"
_FOCUSED_STYLE = "color(153)"
_MUTED_STYLE = "color(245)"
_ASSISTANT_TEXT_STYLE = "color(255)"

_PANEL_BORDER = "63"
_USER_BORDER = "39"
_ASSISTANT_BORDER = "106"
_STANDARDS_BORDER = "81"
_SUMMARY_BORDER = "215"

_STANDARDS_SUMMARY_LIMIT = 5
_SESSION_LINES_PER_ITEM = 3

_HOME_FOOTER = (
    FooterItem("Enter", "new/open"),
    FooterItem("Tab", "switch focus"),
    FooterItem("↑/↓", "move"),
    FooterItem("R", "refresh"),
    FooterItem("Q", "quit"),
)

_CHAT_FOOTER = (
    FooterItem("Enter", "send"),
    FooterItem("↑/↓", "history"),
    FooterItem("PgUp/PgDn", "scroll"),
    FooterItem("Ctrl+T", "standards"),
    FooterItem("Ctrl+G", "switch agent"),
    FooterItem("Esc", "home"),
    FooterItem("Ctrl+C", "quit"),
)

_PICKER_FOOTER = (
    FooterItem("↑/↓", "move"),
    FooterItem("Enter", "confirm"),
    FooterItem("Esc", "cancel"),
)


class Screen(Enum):
    """Which screen the interface shows."""

    HOME = "home"
    CHAT = "chat"
    STANDARDS = "standards"
    AGENT_PICKER = "agent_picker"


class HomeFocus(Enum):
    """Which pane of the home screen receives key presses."""

    AGENTS = "agents"
    SESSIONS = "sessions"


def shortcut(index: int) -> str:
    """Letter shown beside the agent at ``index``: A, B, C, ..."""
    return chr(ord("A") + index)


def render_markdown(content: str, width: int) -> str:
    """Render markdown for the terminal, wrapped to ``width`` cells, in white text."""
    try:
        console = Console(
            file=io.StringIO(),
            force_terminal=True,
            color_system="256",
            width=max(1, width),
            no_color=False,
            highlight=False,
        )
        with console.capture() as capture:
            console.print(Markdown(content.strip(), style=_ASSISTANT_TEXT_STYLE))
        rendered = capture.get()
    except Exception:  # noqa: BLE001 - any renderer failure falls back to raw text
        return content
    return rendered.rstrip("\n")


def render_chat_bubble(role: str, content: str, thinking: bool, width: int) -> str:
    """Draw one message in a bordered bubble; assistant replies render as markdown."""
    box_width = max(20, width - 4)
    if role != "assistant":
        return boxed(content, width=box_width, border_color=_USER_BORDER)
    if thinking:
        body = styled(content, _ASSISTANT_TEXT_STYLE)
        return boxed(body, width=box_width, border_color=_ASSISTANT_BORDER, italic=True)
    body = render_markdown(content, max(20, width - 8))
    return boxed(body, width=box_width, border_color=_ASSISTANT_BORDER)


def render_messages(model: Any) -> str:
    """The conversation shown in the chat viewport."""
    parts = []
    summary = model.active_session.summary
    if summary.strip():
        parts.append(
            boxed(
                summary,
                width=max(20, model.viewport_width - 4),
                border_color=_SUMMARY_BORDER,
                italic=True,
            )
        )

    if not model.messages and not model.pending_prompt:
        parts.append(styled("No messages yet. Send the first prompt.", _MUTED_STYLE))

    parts.extend(
        render_chat_bubble(message.role, message.content, False, model.viewport_width)
        for message in model.messages
    )

    if model.pending_prompt:
        parts.append(render_chat_bubble("user", model.pending_prompt, False, model.viewport_width))
        thinking = "Thinking..."
        if model.loading:
            thinking = f"Thinking... {model.spinner.view()}"
        parts.append(render_chat_bubble("assistant", thinking, True, model.viewport_width))
    return "\n".join(parts)


def render_standards_summary(model: Any) -> str:
    """A box listing the session's standards files, or an empty string if none."""
    if not model.standards:
        return ""
    lines = ["Selected Standards"]
    shown = model.standards[:_STANDARDS_SUMMARY_LIMIT]
    lines.extend(f"• {os.path.basename(standard.path)}" for standard in shown)
    hidden = len(model.standards) - len(shown)
    if hidden > 0:
        lines.append(f"• +{hidden} more")
    return boxed(
        "\n".join(lines), width=max(20, model.width - 4), border_color=_STANDARDS_BORDER
    )


def render_agent_list(model: Any) -> str:
    """The agent pane of the home screen."""
    lines = []
    last = len(model.agents) - 1
    for index, definition in enumerate(model.agents):
        line = f"{shortcut(index)}  {definition.label}"
        if index == model.selected_agent_index:
            style = _SELECTED_STYLE if model.home_focus is HomeFocus.AGENTS else _FOCUSED_STYLE
            line = styled(line, style)
        lines.append(line)
        lines.append(styled(definition.description, _MUTED_STYLE))
        if index < last:
            lines.append("")
    return "Agents\n\n" + "\n".join(lines)


def _local_timestamp(session: Any) -> str:
    moment = session.updated_at
    try:
        moment = moment.astimezone()
    except (OverflowError, ValueError, OSError):
        pass
    return moment.strftime("%Y-%m-%d %H:%M")


def render_session_list(model: Any, panel_height: int) -> str:
    """The recent-sessions pane, scrolled so the selected session is visible."""
    sessions = model.all_sessions
    if not sessions:
        return "Recent sessions\n\n" + styled("No saved sessions yet.", _MUTED_STYLE)

    visible_count = max(1, (panel_height - 2) // _SESSION_LINES_PER_ITEM)
    selected = model.selected_session_idx

    start = selected - visible_count + 1 if selected >= visible_count else 0
    end = start + visible_count
    if end > len(sessions):
        end = len(sessions)
        start = max(0, end - visible_count)

    lines = []
    if start > 0:
        lines.append(styled(f"  ↑ {start} more", _MUTED_STYLE))

    for index in range(start, end):
        session = sessions[index]
        tag = f"[{session.agent}]"
        short_id = session.id[:8]
        if index == selected:
            style = _SELECTED_STYLE if model.home_focus is HomeFocus.SESSIONS else _FOCUSED_STYLE
            line = styled(f"{short_id}  {session.title}  {tag}", style)
        else:
            line = f"{short_id}  {session.title}  {styled(tag, _MUTED_STYLE)}"
        lines.append(line)
        lines.append(styled(_local_timestamp(session), _MUTED_STYLE))
        if index < end - 1:
            lines.append("")

    if end < len(sessions):
        lines.append(styled(f"  ↓ {len(sessions) - end} more", _MUTED_STYLE))

    return "Recent sessions\n\n" + "\n".join(lines)


def render_footer(model: Any) -> str:
    """Footer for the home or chat screen."""
    items = _HOME_FOOTER if model.screen is Screen.HOME else _CHAT_FOOTER
    status = model.status
    if model.loading or model.compacting:
        status = "Waiting for agent response..."
    return render_manual_footer(model.width, status, model.err_text, items)


def _home_panel_height(model: Any) -> int:
    return max(10, model.height - 8)


def _panel(text: str, width: int, height: int) -> str:
    lines = text.split("\n")
    lines += [""] * (height - len(lines))
    return boxed("\n".join(lines), width=width, border_color=_PANEL_BORDER)


def _join_horizontal(*blocks: str) -> str:
    split = [block.split("\n") for block in blocks]
    widths = [visible_width(block) for block in blocks]
    rows = max(len(lines) for lines in split)
    joined = []
    for row in range(rows):
        cells = []
        for lines, width in zip(split, widths):
            cell = lines[row] if row < len(lines) else ""
            cells.append(cell + " " * max(0, width - visible_width(cell)))
        joined.append("".join(cells))
    return "\n".join(joined)


def home_view(model: Any) -> str:
    """The home screen: agent pane, session pane and footer."""
    left_width = max(24, model.width // 3)
    right_width = max(30, model.width - left_width - 6)
    panel_height = _home_panel_height(model)

    agents_pane = _panel(render_agent_list(model), left_width, panel_height)
    sessions_pane = _panel(render_session_list(model, panel_height), right_width, panel_height)
    row = _join_horizontal(agents_pane, sessions_pane)

    content = (
        styled("Agent Switcher", _TITLE_STYLE)
        + "\n"
        + styled("Choose an agent for new sessions, or open any recent session.", _MUTED_STYLE)
        + "\n\n"
        + row
    )
    return render_page_with_footer(model.width, model.height, content, render_footer(model))


def _viewport_view(model: Any) -> str:
    lines = render_messages(model).split("\n")
    height = model.viewport_height
    if height <= 0:
        return "\n".join(lines)
    top = max(0, len(lines) - height - max(0, model.viewport_offset))
    visible = lines[top : top + height]
    visible += [""] * (height - len(visible))
    return "\n".join(visible)


def chat_view(model: Any) -> str:
    """The chat screen: header, conversation, input box and footer."""
    session = model.active_session
    state = f"{describe_agent(session.agent)}  Session {session.id}"
    if model.loading or model.compacting:
        state += "  " + model.spinner.view()

    meta = (
        f"prompts: {session.user_prompt_count}  "
        f"compacted through: {session.compacted_prompt_count}  "
        f"standards: {len(model.standards)}"
    )

    content = (
        styled(session.title, _TITLE_STYLE)
        + "\n"
        + styled(state, _MUTED_STYLE)
        + "\n"
        + styled(meta, _MUTED_STYLE)
    )
    standards = render_standards_summary(model)
    if standards:
        content += "\n" + standards
    content += "\n\n" + _viewport_view(model) + "\n" + model.input.view()
    return render_page_with_footer(model.width, model.height, content, render_footer(model))


def agent_picker_view(model: Any) -> str:
    """The screen for switching the active session's agent."""
    lines = [
        styled("Switch Agent", _TITLE_STYLE),
        styled("Select the engine for this session. All history is preserved.", _MUTED_STYLE),
        "",
    ]
    active = model.active_session.agent
    for index, definition in enumerate(model.agents):
        is_current = definition.kind == active
        marker = "  [current]" if is_current else ""
        line = f"{shortcut(index)}  {definition.label:<8}  {definition.description}{marker}"
        if index == model.agent_picker_idx:
            line = styled(line, _SELECTED_STYLE)
        elif is_current:
            line = styled(line, _FOCUSED_STYLE)
        lines.append(line)

    footer = render_manual_footer(model.width, model.status, model.err_text, _PICKER_FOOTER)
    return render_page_with_footer(model.width, model.height, "\n".join(lines), footer)