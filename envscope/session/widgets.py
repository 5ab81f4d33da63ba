"""Editable text buffers backing the search box and modal inputs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TextBuffer:
    """A cursor-addressed string with optional newline support."""

    text: str = ""
    cursor: int = 0
    multiline: bool = False
    char_limit: int = 65536

    def set(self, text: str) -> None:
        self.text = text
        self.cursor = len(text)

    def clear(self) -> None:
        self.set("")

    def insert(self, chars: str) -> None:
        room = self.char_limit - len(self.text)
        if room <= 0:
            return
        chars = chars[:room]
        self.text = self.text[:self.cursor] + chars + self.text[self.cursor:]
        self.cursor += len(chars)

    # -- line helpers (multi-line only) ---------------------------------
    def _line_bounds(self, pos: int):
        start = self.text.rfind("\n", 0, pos) + 1
        end = self.text.find("\n", pos)
        return start, len(self.text) if end == -1 else end

    def _move_vertical(self, step: int) -> None:
        start, end = self._line_bounds(self.cursor)
        column = self.cursor - start
        if step < 0:
            if start == 0:
                return
            prev_start, prev_end = self._line_bounds(start - 1)
            self.cursor = min(prev_start + column, prev_end)
        else:
            if end == len(self.text):
                return
            next_start, next_end = self._line_bounds(end + 1)
            self.cursor = min(next_start + column, next_end)

    def handle_key(self, key: str) -> bool:
        """Apply an editing key. Returns False if the key is not an editing key."""
        if key == "backspace":
            if self.cursor > 0:
                self.text = self.text[:self.cursor - 1] + self.text[self.cursor:]
                self.cursor -= 1
        elif key == "delete":
            self.text = self.text[:self.cursor] + self.text[self.cursor + 1:]
        elif key == "left":
            self.cursor = max(0, self.cursor - 1)
        elif key == "right":
            self.cursor = min(len(self.text), self.cursor + 1)
        elif key in ("home", "ctrl+a"):
            self.cursor = self._line_bounds(self.cursor)[0] if self.multiline else 0
        elif key in ("end", "ctrl+e"):
            self.cursor = self._line_bounds(self.cursor)[1] if self.multiline else len(self.text)
        elif key == "ctrl+k":
            end = self._line_bounds(self.cursor)[1] if self.multiline else len(self.text)
            self.text = self.text[:self.cursor] + self.text[end:]
        elif key == "enter" and self.multiline:
            self.insert("\n")
        elif key in ("up", "down") and self.multiline:
            self._move_vertical(-1 if key == "up" else 1)
        elif key == "space":
            self.insert(" ")
        elif len(key) == 1 and key.isprintable():
            self.insert(key)
        elif key.startswith("paste:"):
            self.insert(key[len("paste:"):] if self.multiline else key[len("paste:"):].replace("\n", " "))
        else:
            return False
        return True
