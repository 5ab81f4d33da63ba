"""Single-slot undo for session mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

# key -> (value, description)
Snapshot = Dict[str, Tuple[str, Optional[str]]]


class UndoKind(Enum):
    SET = "set"
    DELETE = "delete"
    BATCH_IMPORT = "import"


@dataclass(frozen=True)
class UndoAction:
    kind: UndoKind
    key: str = ""
    had_value: bool = False
    old_value: str = ""
    old_description: Optional[str] = None
    snapshot: Snapshot = field(default_factory=dict)

    def label(self) -> str:
        if self.kind is UndoKind.BATCH_IMPORT:
            return self.kind.value
        return f"{self.kind.value} {self.key}"

    @classmethod
    def for_set(cls, key: str, prior: Optional[Tuple[str, Optional[str]]]) -> "UndoAction":
        if prior is None:
            return cls(UndoKind.SET, key=key)
        return cls(UndoKind.SET, key=key, had_value=True, old_value=prior[0], old_description=prior[1])

    @classmethod
    def for_delete(cls, key: str, prior: Tuple[str, Optional[str]]) -> "UndoAction":
        return cls(UndoKind.DELETE, key=key, had_value=True, old_value=prior[0], old_description=prior[1])

    @classmethod
    def for_import(cls, snapshot: Snapshot) -> "UndoAction":
        return cls(UndoKind.BATCH_IMPORT, snapshot=dict(snapshot))


class UndoSlot:
    """Holds at most one pending action; pushing replaces it."""

    def __init__(self) -> None:
        self._action: Optional[UndoAction] = None

    def push(self, action: UndoAction) -> None:
        self._action = action

    def pop(self) -> Optional[UndoAction]:
        action, self._action = self._action, None
        return action

    def peek(self) -> Optional[UndoAction]:
        return self._action
