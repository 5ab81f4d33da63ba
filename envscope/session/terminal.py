"""Raw-mode keyboard input for the interactive session.

:class:`KeyReader` switches the controlling tty into a raw-ish mode (no echo,
no line buffering, no signal or flow-control keys, output processing kept so
rich can still render) and turns incoming bytes into the key names
:class:`envscope.session.model.Session` understands: ``"a"``, ``"enter"``,
``"ctrl+s"``, ``"up"``, ``"shift+tab"``, ``"esc"``, and ``"paste:<text>"`` for
a burst of plain text.
"""

from __future__ import annotations

import codecs
import os
import select
import sys
import termios
from collections import deque
from typing import Deque, List, Optional

ESCAPE_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "[H": "home",
    "[F": "end",
    "[1~": "home",
    "[4~": "end",
    "[7~": "home",
    "[8~": "end",
    "[3~": "delete",
    "[5~": "pgup",
    "[6~": "pgdown",
    "[Z": "shift+tab",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
    "OH": "home",
    "OF": "end",
}

SINGLE_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x1b": "esc",
}


def _control_name(ch: str) -> Optional[str]:
    code = ord(ch)
    if 1 <= code <= 26:
        return "ctrl+" + chr(ord("a") + code - 1)
    return None


def decode_keys(text: str) -> List[str]:
    """Split raw terminal input into key names."""
    if len(text) > 1 and all(ch.isprintable() or ch in "\r\n\t" for ch in text):
        return ["paste:" + text.replace("\r\n", "\n").replace("\r", "\n")]

    keys: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\x1b" and i + 1 < len(text):
            for seq, name in ESCAPE_SEQUENCES.items():
                if text.startswith(seq, i + 1):
                    keys.append(name)
                    i += 1 + len(seq)
                    break
            else:
                keys.append("esc")
                i += 1
            continue
        if ch in SINGLE_KEYS:
            keys.append(SINGLE_KEYS[ch])
        elif _control_name(ch):
            keys.append(_control_name(ch))
        elif ch.isprintable():
            keys.append(ch)
        i += 1
    return keys


class KeyReader:
    """Context manager owning the tty mode for the session's lifetime."""

    def __init__(self, fd: Optional[int] = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._saved = None
        self._pending: Deque[str] = deque()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def __enter__(self) -> "KeyReader":
        self._saved = termios.tcgetattr(self.fd)
        mode = termios.tcgetattr(self.fd)
        mode[0] &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
        mode[3] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        mode[6][termios.VMIN] = 1
        mode[6][termios.VTIME] = 0
        termios.tcsetattr(self.fd, termios.TCSAFLUSH, mode)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._saved is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)

    def read_key(self, timeout: float) -> Optional[str]:
        """Return the next key name, or ``None`` if nothing arrived within ``timeout``."""
        if not self._pending:
            ready, _, _ = select.select([self.fd], [], [], timeout)
            if not ready:
                return None
            text = self._decoder.decode(os.read(self.fd, 4096))
            self._pending.extend(decode_keys(text))
        return self._pending.popleft() if self._pending else None
