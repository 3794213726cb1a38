"""Command-line entry point that runs the interactive terminal interface."""

from __future__ import annotations

import argparse
import os
import queue
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from agentswitcher.app import Model, Resize
from agentswitcher.picker import Key, KeyEvent
from agentswitcher.store import Repository

_CONTROL_KEYS = {
    "\x03": Key.CTRL_C,
    "\x07": Key.CTRL_G,
    "\x0e": Key.CTRL_N,
    "\x10": Key.CTRL_P,
    "\x14": Key.CTRL_T,
    "\r": Key.ENTER,
    "\n": Key.ENTER,
    "\t": Key.TAB,
    "\x7f": Key.BACKSPACE,
    "\x08": Key.BACKSPACE,
    "\x1b": Key.ESC,
    " ": Key.SPACE,
}

_NAMED_KEYS = {
    "KEY_ENTER": Key.ENTER,
    "KEY_TAB": Key.TAB,
    "KEY_ESCAPE": Key.ESC,
    "KEY_BACKSPACE": Key.BACKSPACE,
    "KEY_DELETE": Key.DELETE,
    "KEY_UP": Key.UP,
    "KEY_DOWN": Key.DOWN,
    "KEY_PGUP": Key.PGUP,
    "KEY_PGDOWN": Key.PGDOWN,
}


def translate_key(keystroke) -> Optional[KeyEvent]:
    """Turn a terminal keystroke into a KeyEvent, or None if it is not handled."""
    name = getattr(keystroke, "name", None)
    if name in _NAMED_KEYS:
        return KeyEvent(_NAMED_KEYS[name])
    text = str(keystroke)
    if not text:
        return None
    if text in ("\x1b\r", "\x1b\n"):
        return KeyEvent(Key.ENTER, alt=True)
    if text in _CONTROL_KEYS:
        key = _CONTROL_KEYS[text]
        return KeyEvent(key, " " if key is Key.SPACE else "")
    if name or not text.isprintable():
        return None
    return KeyEvent(Key.RUNES, text)


def run_terminal(model: Model) -> None:
    """Drive ``model`` in a full-screen terminal until it asks to quit."""
    from blessed import Terminal

    term = Terminal()
    results: queue.Queue = queue.Queue()

    with ThreadPoolExecutor(max_workers=4) as executor:

        def submit(commands) -> None:
            for command in commands:
                executor.submit(lambda c=command: results.put(c()))

        size = (term.width, term.height)
        submit(model.update(Resize(*size)))
        submit(model.init())
        with term.fullscreen(), term.cbreak(), term.hidden_cursor():
            while not model.quitting:
                print(term.home + term.clear + model.view(), end="", flush=True)
                keystroke = term.inkey(timeout=0.05)
                if keystroke:
                    event = translate_key(keystroke)
                    if event is not None:
                        submit(model.update(event))
                while True:
                    try:
                        message = results.get_nowait()
                    except queue.Empty:
                        break
                    submit(model.update(message))
                current = (term.width, term.height)
                if current != size:
                    size = current
                    submit(model.update(Resize(*size)))
        executor.shutdown(wait=False, cancel_futures=True)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="agentswitcher", description="Switch coding agents.")
    parser.add_argument("--db", default="agentswitcher.db", help="session database path")
    args = parser.parse_args(argv)

    try:
        with Repository(args.db) as repo:
            run_terminal(Model(repo, os.getcwd()))
    except KeyboardInterrupt:
        return 0
    except Exception as exc:  # noqa: BLE001 - report any startup failure and exit
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())