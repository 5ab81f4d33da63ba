"""Exception taxonomy shared by every envscope layer.

Each error is handled where a discrete user action is processed (a CLI
command or a key press in the interactive session). Nothing here is retried
automatically.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class EnvScopeError(RuntimeError):
    """Base class for all envscope failures."""


class PathError(EnvScopeError):
    """A path does not exist or cannot be resolved."""

    def __init__(self, path: str, reason: Optional[str] = None) -> None:
        self.path = path
        msg = f"cannot resolve path {path!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ResolveError(EnvScopeError):
    """Resolution failed; no partial context is ever returned."""

    def __init__(self, directory: str, reason: str) -> None:
        self.directory = directory
        super().__init__(f"failed to resolve environment for {directory!r}: {reason}")


class InvalidKeyError(EnvScopeError):
    """A key does not match ``[A-Za-z_][A-Za-z0-9_]*``."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"invalid key {key!r}: must match [A-Za-z_][A-Za-z0-9_]*")


class StoreError(EnvScopeError):
    """Raised for persistence failures; batches never commit partially."""


class ParseError(EnvScopeError):
    """Bulk text could not be parsed; the whole import is rejected."""

    def __init__(self, invalid_lines: Iterable[str], message: Optional[str] = None) -> None:
        self.invalid_lines: List[str] = list(invalid_lines)
        if message is None:
            message = "invalid lines: " + ", ".join(repr(l) for l in self.invalid_lines)
        super().__init__(message)
