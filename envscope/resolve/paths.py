"""Path canonicalization, project boundary discovery and chain building.

Every "is this the same directory" question in envscope is answered on
canonical paths produced by :func:`canonicalize`; raw string comparison of
user-supplied paths is never used.
"""

from __future__ import annotations

import os
import pathlib
from typing import List

from envscope.errors import PathError

MARKER_FILE = ".envscope"
VCS_DIR = ".git"


def canonicalize(path: str) -> str:
    """Return the absolute, symlink-resolved form of ``path``.

    >>> canonicalize(canonicalize(".")) == canonicalize(".")
    True
    """
    raw = os.fspath(path)
    if raw == "":
        raise PathError(raw, "empty path")
    try:
        return str(pathlib.Path(raw).absolute().resolve(strict=True))
    except FileNotFoundError as exc:
        raise PathError(raw, "no such file or directory") from exc
    except (OSError, RuntimeError) as exc:  # permission denied, symlink loop
        raise PathError(raw, str(exc)) from exc


def find_root(directory: str) -> str:
    """Walk up from ``directory`` to the enclosing project root.

    The closest ancestor holding either a ``.envscope`` marker *file* or a
    ``.git`` *directory* wins; the marker wins a tie in the same directory.
    Falls back to the filesystem root.
    """
    current = pathlib.Path(canonicalize(directory))
    while True:
        if (current / MARKER_FILE).is_file():
            return str(current)
        if (current / VCS_DIR).is_dir():
            return str(current)
        parent = current.parent
        if parent == current:
            return str(current)
        current = parent


def build_chain(root: str, target: str) -> List[str]:
    """Return ``[root, ..., target]`` inclusive on both ends.

    If ``root`` is not an ancestor of ``target`` the walk stops at the
    filesystem root instead of looping forever.
    """
    root_path = pathlib.Path(canonicalize(root))
    current = pathlib.Path(canonicalize(target))
    chain = [str(current)]
    while current != root_path:
        parent = current.parent
        if parent == current:
            break
        current = parent
        chain.append(str(current))
    chain.reverse()
    return chain
