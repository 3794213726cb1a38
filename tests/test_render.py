from agentswitcher.render import (
    FooterItem,
    boxed,
    render_footer_help_lines,
    render_manual_footer,
    render_page_with_footer,
    strip_ansi,
    styled,
    visible_height,
    visible_width,
)

ITEMS = [
    FooterItem("Enter", "new/open"),
    FooterItem("Tab", "switch focus"),
    FooterItem("↑/↓", "move"),
    FooterItem("R", "refresh"),
    FooterItem("Q", "quit"),
]


def test_styled_round_trips_through_strip_ansi():
    text = styled("hello\nworld", "bold color(214)")
    assert "\x1b[" in text
    assert strip_ansi(text) == "hello\nworld"


def test_styled_with_empty_style_is_identity():
    assert styled("plain", "") == "plain"


def test_visible_width_and_height_ignore_escapes():
    text = styled("abc", "color(63)") + "\n" + "abcdef"
    assert visible_width(text) == len("abcdef")
    assert visible_height(text) == 2
    assert visible_height("") == 1


def test_boxed_fixed_width_has_uniform_lines():
    out = boxed("short\n" + "word " * 20, 30, "63")
    lines = out.split("\n")
    assert all(visible_width(line) == 32 for line in lines)
    assert strip_ansi(lines[0]).startswith("╭")
    assert "short" in strip_ansi(out)
    assert len(lines) > 4


def test_boxed_fits_content_without_width():
    out = boxed("abc\nabcdef")
    lines = out.split("\n")
    assert len(lines) == 4
    assert all(visible_width(line) == len("abcdef") + 4 for line in lines)
    assert "abcdef" in lines[2]


def test_boxed_italic_keeps_text():
    out = boxed("thinking", 20, "106", italic=True)
    assert "thinking" in strip_ansi(out)


def test_render_page_with_footer_fills_height():
    page = render_page_with_footer(40, 20, "content", "footer")
    assert visible_height(page) == 20
    plain = strip_ansi(page).split("\n")
    assert plain[0].strip() == "content"
    assert plain[-1].strip() == "footer"


def test_render_page_with_footer_overflows_with_single_separator():
    content = "\n".join(["line"] * 10)
    page = render_page_with_footer(40, 5, content, "footer")
    assert visible_height(page) == 11


def test_render_manual_footer_error_line_only_when_present():
    without_error = render_manual_footer(80, "Ready.", "   ", ITEMS)
    with_error = render_manual_footer(80, "Ready.", "boom", ITEMS)
    assert visible_height(with_error) == visible_height(without_error) + 1
    assert "boom" in strip_ansi(with_error)
    assert strip_ansi(with_error).split("\n")[0].startswith(" Ready.")


def test_render_manual_footer_lines_match_inner_width():
    footer = render_manual_footer(60, "Status", "", ITEMS)
    assert all(visible_width(line) == 56 for line in footer.split("\n"))


def test_render_footer_help_lines_wraps_and_keeps_all_items():
    wide = render_footer_help_lines(200, ITEMS)
    narrow = render_footer_help_lines(20, ITEMS)
    assert len(wide) == 1
    assert len(narrow) > 1
    joined = strip_ansi("\n".join(narrow))
    for item in ITEMS:
        assert item.key in joined
        assert item.label in joined
    assert all(visible_width(line) >= 20 for line in narrow)


def test_render_footer_help_lines_empty():
    assert render_footer_help_lines(40, []) == []