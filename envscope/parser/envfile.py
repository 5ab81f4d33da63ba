"""
envfile.py

Key validation plus the text codec for ``KEY=value`` lines: formatting values
as POSIX-shell ``export`` lines and parsing pasted or edited env text back
into entries.

Accepted input forms (one assignment per line, quoted values may span lines)::

    KEY=value
    export KEY=value
    KEY='single quoted'          # description
    KEY="double \"quoted\""
    KEY='it'\\''s concatenated'

A trailing ``# comment`` (``#`` preceded by unquoted whitespace) becomes the
entry's description. ``#`` inside quotes, or glued to a bare value, is part of
the value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from envscope.errors import InvalidKeyError, ParseError

KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_BARE_COMMENT = re.compile(r"\s+#")
_DQUOTE_ESCAPABLE = '\\"$`'


class _Malformed(ValueError):
    pass


class _Unterminated(_Malformed):
    pass


@dataclass(slots=True)
class EnvEntry:
    key: str
    value: str
    description: Optional[str] = None


@dataclass
class ParsedEnv:
    entries: Dict[str, EnvEntry] = field(default_factory=dict)
    invalid_lines: List[str] = field(default_factory=list)

    @property
    def values(self) -> Dict[str, str]:
        return {k: e.value for k, e in self.entries.items()}

    @property
    def descriptions(self) -> Dict[str, Optional[str]]:
        return {k: e.description for k, e in self.entries.items()}


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def is_valid_key(key: str) -> bool:
    """True if ``key`` matches ``[A-Za-z_][A-Za-z0-9_]*``."""
    return bool(KEY_PATTERN.match(key)) and "\n" not in key


def validate_key(key: str) -> str:
    if not is_valid_key(key):
        raise InvalidKeyError(key)
    return key


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def quote_value(value: str) -> str:
    """Single-quote ``value`` for POSIX sh; embedded ``'`` becomes ``'\\''``."""
    return "'" + value.replace("'", "'\\''") + "'"


def format_export(key: str, value: str) -> str:
    """``export KEY='value'``"""
    return f"export {key}={quote_value(value)}"


def format_assignment(key: str, value: str, description: Optional[str] = None) -> str:
    """``KEY='value'`` with an optional `` # description`` suffix."""
    line = f"{key}={quote_value(value)}"
    if description:
        line += "  # " + " ".join(description.split())
    return line


def format_key_value(key: str, value: str) -> str:
    return f"{key}={value}"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _split_comment(rest: str) -> Optional[str]:
    rest = rest.strip()
    if not rest:
        return None
    if not rest.startswith("#"):
        raise _Malformed(rest)
    return rest[1:].strip() or None


def _parse_quoted(raw: str) -> Tuple[str, Optional[str]]:
    """Parse a shell word made of quoted/escaped segments, then a comment."""
    buf: List[str] = []
    i, n = 0, len(raw)
    while i < n:
        c = raw[i]
        if c == "'":
            end = raw.find("'", i + 1)
            if end == -1:
                raise _Unterminated(raw)
            buf.append(raw[i + 1:end])
            i = end + 1
        elif c == '"':
            i += 1
            while True:
                if i >= n:
                    raise _Unterminated(raw)
                ch = raw[i]
                if ch == "\\" and i + 1 < n and raw[i + 1] in _DQUOTE_ESCAPABLE:
                    buf.append(raw[i + 1])
                    i += 2
                elif ch == '"':
                    i += 1
                    break
                else:
                    buf.append(ch)
                    i += 1
        elif c == "\\":
            if i + 1 >= n:
                raise _Malformed(raw)
            buf.append(raw[i + 1])
            i += 2
        elif c.isspace():
            break
        else:
            buf.append(c)
            i += 1
    return "".join(buf), _split_comment(raw[i:])


def _parse_value(raw: str) -> Tuple[str, Optional[str]]:
    if raw[:1] in ("'", '"'):
        return _parse_quoted(raw)
    m = _BARE_COMMENT.search(raw)
    if m:
        return raw[:m.start()], raw[m.end():].strip() or None
    return raw, None


def parse_line(line: str) -> Optional[EnvEntry]:
    """Parse one assignment. ``None`` for blank and comment lines.

    Raises an internal ``ValueError`` subclass for malformed lines; callers
    normally go through :func:`parse_env_text`.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    if text.startswith(("export ", "export\t")):
        text = text[len("export"):].lstrip()
    idx = text.find("=")
    if idx == -1:
        raise _Malformed(line)
    key = text[:idx].strip()
    if not is_valid_key(key):
        raise _Malformed(line)
    value, description = _parse_value(text[idx + 1:])
    return EnvEntry(key, value, description)


def parse_env_text(text: str) -> ParsedEnv:
    """Parse multi-line env text.

    Last occurrence wins on duplicate keys. Invalid lines are collected
    verbatim (stripped) rather than raised.
    """
    result = ParsedEnv()
    lines = text.replace("\r\n", "\n").split("\n")
    i = 0
    while i < len(lines):
        start = i
        chunk = lines[i]
        i += 1
        while True:
            try:
                entry = parse_line(chunk)
            except _Unterminated:
                if i < len(lines):
                    chunk += "\n" + lines[i]
                    i += 1
                    continue
                result.invalid_lines.append(lines[start].strip())
                i = start + 1
                entry = None
            except _Malformed:
                result.invalid_lines.append(lines[start].strip())
                i = start + 1
                entry = None
            break
        if entry is not None:
            result.entries[entry.key] = entry
    return result


def parse_env_text_strict(text: str) -> ParsedEnv:
    """Like :func:`parse_env_text` but raise :class:`ParseError` on any invalid line."""
    parsed = parse_env_text(text)
    if parsed.invalid_lines:
        raise ParseError(parsed.invalid_lines)
    return parsed
