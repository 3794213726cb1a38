import pytest

from agentswitcher.main import main, translate_key
from agentswitcher.picker import Key, KeyEvent


class _Named(str):
    def __new__(cls, text, name):
        obj = super().__new__(cls, text)
        obj.name = name
        return obj


@pytest.mark.parametrize("text", ["q", "k", "é"])
def test_printable_text_becomes_runes(text):
    assert translate_key(text) == KeyEvent(Key.RUNES, text)


def test_control_keys():
    assert translate_key("\x03").key is Key.CTRL_C
    assert translate_key("\x14").key is Key.CTRL_T
    assert translate_key("\x07").key is Key.CTRL_G
    assert translate_key("\r").key is Key.ENTER


def test_space_carries_text():
    event = translate_key(" ")
    assert event.key is Key.SPACE
    assert str(event) == " "


def test_alt_enter():
    assert translate_key("\x1b\r") == KeyEvent(Key.ENTER, alt=True)


def test_named_sequences():
    assert translate_key(_Named("\x1b[A", "KEY_UP")).key is Key.UP
    assert translate_key(_Named("\x1b[6~", "KEY_PGDOWN")).key is Key.PGDOWN
    assert translate_key(_Named("\x1bOP", "KEY_F1")) is None


def test_empty_keystroke_is_ignored():
    assert translate_key("") is None


def test_help_exits_cleanly():
    with pytest.raises(SystemExit) as info:
        main(["--help"])
    assert info.value.code == 0