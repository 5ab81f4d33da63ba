"""envscope interactive session (public API).

The state machine (:class:`Session`) is importable without a terminal; the
rich/termios event loop lives in :mod:`envscope.session.app`.
"""

from .model import (
    BulkImportModal,
    ConfirmDeleteModal,
    EditFocus,
    EditModal,
    HelpModal,
    ImportSummary,
    Mode,
    Session,
    ViewMode,
    ViewValueModal,
)
from .undo import UndoAction, UndoKind, UndoSlot

__all__ = [
    "BulkImportModal",
    "ConfirmDeleteModal",
    "EditFocus",
    "EditModal",
    "HelpModal",
    "ImportSummary",
    "Mode",
    "Session",
    "UndoAction",
    "UndoKind",
    "UndoSlot",
    "ViewMode",
    "ViewValueModal",
]
