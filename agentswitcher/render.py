"""Terminal styling helpers: ANSI colouring, boxes, and the page footer."""

from __future__ import annotations

import io
import re
import textwrap
from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

from rich.cells import cell_len
from rich.color import ColorSystem
from rich.console import Console
from rich.style import Style
from rich.text import Text

_ANSI_PATTERN = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]"
)

_STATUS_STYLE = "bold color(234) on color(214)"
_HELP_LINE_STYLE = "color(252) on color(236)"
_ERROR_STYLE = "bold color(224) on color(52)"
_KEY_STYLE = "bold color(214)"
_LABEL_STYLE = "color(254)"
_DIVIDER_STYLE = "color(243)"

_PAGE_PADDING = 1
_FOOTER_PADDING = 2


@dataclass(frozen=True)
class FooterItem:
    """One key hint shown in a footer."""

    key: str
    label: str


@lru_cache(maxsize=None)
def _parse_style(style: str) -> Style:
    return Style.parse(style)


@lru_cache(maxsize=1)
def _console() -> Console:
    return Console(
        file=io.StringIO(),
        force_terminal=True,
        color_system="256",
        width=10_000,
        no_color=False,
        highlight=False,
        emoji=False,
        markup=False,
    )


def _render_text(text: Text) -> str:
    console = _console()
    with console.capture() as capture:
        console.print(text, end="", soft_wrap=True)
    return capture.get()


def styled(text: str, style: str) -> str:
    """Apply a style description such as ``"bold color(214)"`` to every line of ``text``."""
    if not style:
        return text
    parsed = _parse_style(style)
    return "\n".join(
        parsed.render(line, color_system=ColorSystem.EIGHT_BIT) if line else line
        for line in text.split("\n")
    )


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences."""
    return _ANSI_PATTERN.sub("", text)


def visible_width(text: str) -> int:
    """Width in terminal cells of the widest line of ``text``."""
    return max((cell_len(line) for line in strip_ansi(text).split("\n")), default=0)


def visible_height(text: str) -> int:
    """Number of lines ``text`` occupies."""
    return text.count("\n") + 1


def _wrap_line(line: str, width: int) -> list[str]:
    if width <= 0 or visible_width(line) <= width:
        return [line]
    if strip_ansi(line) == line:
        return textwrap.wrap(line, width, replace_whitespace=False) or [""]
    wrapped = Text.from_ansi(line).wrap(_console(), width)
    return [_render_text(part) for part in wrapped]


def _pad(line: str, width: int) -> str:
    return line + " " * max(0, width - visible_width(line))


def _fill(text: str, width: int, style: str) -> str:
    lines = [
        _pad(part, width)
        for line in text.split("\n")
        for part in _wrap_line(line, width)
    ]
    return "\n".join(styled(line, style) for line in lines)


def _pad_block(text: str, horizontal: int) -> str:
    width = visible_width(text)
    margin = " " * horizontal
    return "\n".join(margin + _pad(line, width) + margin for line in text.split("\n"))


def boxed(
    text: str, width: int | None = None, border_color: str = "", italic: bool = False
) -> str:
    """Draw a rounded border around ``text`` with one column of padding each side.

    ``width`` counts the padding but not the border, and wraps longer lines;
    without it the box fits the content.
    """
    if width is None:
        content_width = visible_width(text)
    else:
        content_width = max(1, width - 2)

    body = [part for line in text.split("\n") for part in _wrap_line(line, content_width)]
    if italic:
        body = [styled(line, "italic") for line in body]

    def border(segment: str) -> str:
        return styled(segment, f"color({border_color})") if border_color else segment

    rule = "─" * (content_width + 2)
    lines = [border("╭" + rule + "╮")]
    lines.extend(
        border("│") + " " + _pad(line, content_width) + " " + border("│") for line in body
    )
    lines.append(border("╰" + rule + "╯"))
    return "\n".join(lines)


def render_page_with_footer(width: int, height: int, content: str, footer: str) -> str:
    """Place ``footer`` at the bottom of a page of ``height`` lines below ``content``."""
    rendered_content = _pad_block(content, _PAGE_PADDING)
    rendered_footer = _pad_block(footer, _FOOTER_PADDING)

    total = visible_height(rendered_content) + visible_height(rendered_footer)
    if 0 < height and total < height:
        return rendered_content + "\n" * (height - total) + rendered_footer
    return rendered_content + "\n" + rendered_footer


def render_manual_footer(
    width: int, status: str, err_text: str, items: Sequence[FooterItem]
) -> str:
    """Render the status bar, an optional error bar and the key-hint lines."""
    inner_width = max(20, width - 4)
    lines = [_fill(" " + status, inner_width, _STATUS_STYLE)]
    if err_text.strip():
        lines.append(_fill(" " + err_text, inner_width, _ERROR_STYLE))
    lines.extend(render_footer_help_lines(inner_width, items))
    return "\n".join(lines)


def _footer_segment(item: FooterItem) -> Text:
    segment = Text(end="")
    segment.append(item.key, _KEY_STYLE)
    segment.append(" ")
    segment.append(item.label, _LABEL_STYLE)
    return segment


def _help_line(current: Text, width: int) -> str:
    line = Text(" ", style=_HELP_LINE_STYLE, end="")
    line.append_text(current)
    line.pad_right(max(0, width - cell_len(line.plain)))
    return _render_text(line)


def render_footer_help_lines(width: int, items: Sequence[FooterItem]) -> list[str]:
    """Lay out key hints on as many lines of ``width`` cells as they need."""
    lines: list[str] = []
    current: Text | None = None

    for item in items:
        segment = _footer_segment(item)
        if current is None:
            current = segment
            continue
        candidate = current.copy()
        candidate.append("   ", _DIVIDER_STYLE)
        candidate.append_text(segment)
        if cell_len(candidate.plain) > width:
            lines.append(_help_line(current, width))
            current = segment
            continue
        current = candidate

    if current is not None:
        lines.append(_help_line(current, width))
    return lines