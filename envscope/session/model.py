"""
envscope interactive session – state machine
============================================

:class:`Session` owns everything the interactive browser shows and mutates:

    • the active :class:`ResolveContext` (always replaced, never patched)
    • view mode (effective vs. local) and the search query
    • the ranked result list, selection cursor and scroll offset
    • the active modal (edit, bulk import, view value, help, confirm delete)
    • a transient toast and a single-slot undo buffer

Top-level modes are mutually exclusive: browsing, searching, or a modal. A
modal owns every key until it closes.

Any change of query or view mode, and every completed mutation, recomputes
the result list from scratch via :meth:`Session.refresh_results`.

The class never touches the terminal; :mod:`envscope.session.app` feeds it
key names and renders it with :mod:`envscope.session.view`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from envscope.errors import EnvScopeError, InvalidKeyError, ParseError, ResolveError
from envscope.parser import format_export, format_key_value, parse_env_text, validate_key
from envscope.resolve import ResolveContext, ResolvedValue, Resolver
from envscope.retrieval import SearchResult, rank
from .undo import UndoAction, UndoKind, UndoSlot
from .widgets import TextBuffer

log = logging.getLogger(__name__)

# Rows taken by chrome: top bar, search bar, table border (2), header, status bar
CHROME_ROWS = 6


class ViewMode(Enum):
    EFFECTIVE = "effective"
    LOCAL = "local"


class Mode(Enum):
    BROWSING = "browsing"
    SEARCHING = "searching"
    MODAL = "modal"


class EditFocus(Enum):
    KEY = 0
    VALUE = 1
    DESCRIPTION = 2


# ---------------------------------------------------------------------------
# Modal sub-states
# ---------------------------------------------------------------------------
@dataclass
class EditModal:
    is_new: bool
    key: TextBuffer = field(default_factory=lambda: TextBuffer(char_limit=256))
    value: TextBuffer = field(default_factory=lambda: TextBuffer(multiline=True))
    description: TextBuffer = field(default_factory=lambda: TextBuffer(char_limit=512))
    focus: EditFocus = EditFocus.KEY
    error: str = ""

    def focused(self) -> TextBuffer:
        return {
            EditFocus.KEY: self.key,
            EditFocus.VALUE: self.value,
            EditFocus.DESCRIPTION: self.description,
        }[self.focus]

    def cycle_focus(self, step: int = 1) -> None:
        order = list(EditFocus)
        self.focus = order[(order.index(self.focus) + step) % len(order)]


@dataclass
class BulkImportModal:
    text: TextBuffer = field(default_factory=lambda: TextBuffer(multiline=True, char_limit=1_000_000))
    error: str = ""


@dataclass
class ViewValueModal:
    key: str
    scroll: int = 0


@dataclass
class HelpModal:
    scroll: int = 0


@dataclass
class ConfirmDeleteModal:
    key: str


@dataclass
class Toast:
    message: str
    is_error: bool
    expires_at: float


@dataclass(frozen=True)
class ImportSummary:
    total: int
    added: int
    updated: int


HELP_BINDINGS = [
    ("j / ↓", "Move down"),
    ("k / ↑", "Move up"),
    ("g", "Jump to top"),
    ("G", "Jump to bottom"),
    ("ctrl+d", "Half page down"),
    ("ctrl+u", "Half page up"),
    ("/", "Search keys and values"),
    ("esc", "Clear search"),
    ("t", "Toggle effective / local view"),
    ("enter / e", "Edit selected value"),
    ("a", "Add a value here"),
    ("A", "Bulk import KEY=value lines"),
    ("v", "View full value"),
    ("x", "Delete selected (local only)"),
    ("u", "Undo last change"),
    ("y", "Copy KEY=value"),
    ("Y", "Copy export line"),
    ("?", "Toggle this help"),
    ("q / ctrl+c", "Quit"),
    ("", ""),
    ("Edit: tab", "Next field"),
    ("Edit: ctrl+s", "Save"),
    ("Edit: esc", "Cancel"),
    ("Import: ctrl+s", "Import"),
    ("Delete: y / n", "Confirm / cancel"),
]


class Session:
    """Interactive browsing state over a live :class:`Resolver`."""

    def __init__(
        self,
        resolver: Resolver,
        context: ResolveContext,
        *,
        width: int = 80,
        height: int = 24,
        toast_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.resolver = resolver
        self.context = context
        self.width = width
        self.height = height
        self.toast_seconds = toast_seconds
        self.clock = clock

        self.view_mode = ViewMode.EFFECTIVE
        self.search = TextBuffer(char_limit=100)
        self.search_focused = False
        self.results: List[SearchResult] = []
        self.cursor = 0
        self.offset = 0

        self.modal = None
        self.toast: Optional[Toast] = None
        self.undo_slot = UndoSlot()
        self.clipboard = ""
        self.quit_requested = False

        self._modal_handlers = {
            EditModal: self._handle_edit_key,
            BulkImportModal: self._handle_bulk_import_key,
            ViewValueModal: self._handle_view_key,
            HelpModal: self._handle_help_key,
            ConfirmDeleteModal: self._handle_confirm_delete_key,
        }
        self.refresh_results()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def query(self) -> str:
        return self.search.text

    @property
    def mode(self) -> Mode:
        if self.modal is not None:
            return Mode.MODAL
        return Mode.SEARCHING if self.search_focused else Mode.BROWSING

    def selected_result(self) -> Optional[SearchResult]:
        if 0 <= self.cursor < len(self.results):
            return self.results[self.cursor]
        return None

    def selected_value(self) -> Optional[ResolvedValue]:
        result = self.selected_result()
        return result.value if result is not None else None

    def accepts_text(self) -> bool:
        """True while a text field has focus (pasted text goes to it whole)."""
        if self.modal is not None:
            return isinstance(self.modal, (EditModal, BulkImportModal))
        return self.search_focused

    def is_selected_local(self) -> bool:
        value = self.selected_value()
        return value is not None and self.context.is_local(value)

    # ------------------------------------------------------------------
    # Results + scrolling
    # ------------------------------------------------------------------
    def refresh_results(self) -> None:
        """Recompute the ranked result list and clamp the cursor into it."""
        if self.view_mode is ViewMode.EFFECTIVE:
            candidates = self.context.sorted_values()
        else:
            candidates = self.context.local_values()
        self.results = rank(candidates, self.query)

        if self.cursor >= len(self.results):
            self.cursor = len(self.results) - 1
        if self.cursor < 0:
            self.cursor = 0
        self.ensure_cursor_visible()

    def reload_context(self) -> None:
        """Swap in a freshly resolved context for the same directory."""
        self.context = self.resolver.resolve(self.context.directory)
        self.refresh_results()

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ensure_cursor_visible()

    def visible_rows(self) -> int:
        return max(1, self.height - CHROME_ROWS)

    def half_page(self) -> int:
        return max(1, self.visible_rows() // 2)

    def ensure_cursor_visible(self) -> None:
        """Move the scroll offset only as far as needed to show the cursor."""
        visible = self.visible_rows()
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + visible:
            self.offset = self.cursor - visible + 1
        # a shrunken list never leaves empty rows below a scrolled-off head
        self.offset = max(0, min(self.offset, len(self.results) - visible))

    def move_up(self, n: int = 1) -> None:
        self.cursor = max(0, self.cursor - n)
        self.ensure_cursor_visible()

    def move_down(self, n: int = 1) -> None:
        self.cursor = max(0, min(len(self.results) - 1, self.cursor + n))
        self.ensure_cursor_visible()

    def move_to_top(self) -> None:
        self.cursor = 0
        self.offset = 0

    def move_to_bottom(self) -> None:
        self.cursor = max(0, len(self.results) - 1)
        self.ensure_cursor_visible()

    # ------------------------------------------------------------------
    # Toast
    # ------------------------------------------------------------------
    def set_toast(self, message: str, is_error: bool = False) -> None:
        self.toast = Toast(message, is_error, self.clock() + self.toast_seconds)

    def clear_expired_toast(self) -> None:
        if self.toast is not None and self.clock() >= self.toast.expires_at:
            self.toast = None

    def tick(self) -> None:
        """Periodic redraw hook."""
        self.clear_expired_toast()

    # ------------------------------------------------------------------
    # Mutations (raise on failure; key handlers report)
    # ------------------------------------------------------------------
    def apply_set(self, key: str, value: str, description: Optional[str] = None) -> bool:
        """Upsert ``key`` at the current directory. True if it was not set here before."""
        validate_key(key)
        directory = self.context.directory
        prior_entry = self.resolver.local_entry(directory, key)
        prior = (prior_entry.value, prior_entry.description) if prior_entry else None

        self.resolver.set_value(directory, key, value, description)
        self.undo_slot.push(UndoAction.for_set(key, prior))
        self.reload_context()
        return prior is None

    def apply_delete(self, key: str) -> bool:
        """Delete a local value. Returns False (and writes nothing) for inherited keys."""
        current = self.context.get(key)
        if current is None or not self.context.is_local(current):
            return False
        directory = self.context.directory
        prior_entry = self.resolver.local_entry(directory, key)
        if prior_entry is None:
            return False

        self.resolver.delete_value(directory, key)
        self.undo_slot.push(UndoAction.for_delete(key, (prior_entry.value, prior_entry.description)))
        self.reload_context()
        return True

    def apply_import(self, text: str) -> ImportSummary:
        """Upsert every ``KEY=value`` line of ``text`` at once, or nothing at all."""
        parsed = parse_env_text(text)
        if parsed.invalid_lines:
            raise ParseError(parsed.invalid_lines)
        if not parsed.entries:
            raise ParseError([], "no valid KEY=value lines found")

        directory = self.context.directory
        snapshot = {
            k: (e.value, e.description) for k, e in self.resolver.local_entries(directory).items()
        }
        self.resolver.set_values_batch(directory, parsed.values, parsed.descriptions)
        self.undo_slot.push(UndoAction.for_import(snapshot))

        added = sum(1 for k in parsed.entries if k not in snapshot)
        summary = ImportSummary(len(parsed.entries), added, len(parsed.entries) - added)
        self.reload_context()
        return summary

    def undo(self) -> Optional[UndoAction]:
        """Reverse the last mutation. ``None`` if there is nothing to undo."""
        action = self.undo_slot.pop()
        if action is None:
            return None

        directory = self.context.directory
        try:
            if action.kind is UndoKind.BATCH_IMPORT:
                self.resolver.replace_local(
                    directory,
                    {k: v for k, (v, _) in action.snapshot.items()},
                    {k: d for k, (_, d) in action.snapshot.items()},
                )
            elif action.had_value:
                self.resolver.set_value(directory, action.key, action.old_value, action.old_description)
            else:
                self.resolver.delete_value(directory, action.key)
        except EnvScopeError:
            self.undo_slot.push(action)
            raise

        self.reload_context()
        return action

    # ------------------------------------------------------------------
    # Key dispatch
    # ------------------------------------------------------------------
    def handle_key(self, key: str) -> None:
        """Process one key press."""
        self.clear_expired_toast()
        if self.modal is not None:
            self._modal_handlers[type(self.modal)](key)
        elif self.search_focused:
            self._handle_search_key(key)
        else:
            self._handle_browse_key(key)

    def _handle_browse_key(self, key: str) -> None:
        if key in ("q", "ctrl+c"):
            self.quit_requested = True
        elif key == "/":
            self.search_focused = True
        elif key in ("j", "down"):
            self.move_down(1)
        elif key in ("k", "up"):
            self.move_up(1)
        elif key == "g":
            self.move_to_top()
        elif key == "G":
            self.move_to_bottom()
        elif key == "ctrl+d":
            self.move_down(self.half_page())
        elif key == "ctrl+u":
            self.move_up(self.half_page())
        elif key == "t":
            self.toggle_view_mode()
        elif key in ("enter", "e"):
            value = self.selected_value()
            if value is not None:
                self.open_edit_modal(value)
        elif key == "a":
            self.open_edit_modal(None)
        elif key == "A":
            self.modal = BulkImportModal()
        elif key == "v":
            value = self.selected_value()
            if value is not None:
                self.modal = ViewValueModal(value.key)
        elif key == "?":
            self.modal = HelpModal()
        elif key == "x":
            value = self.selected_value()
            if value is not None and self.context.is_local(value):
                self.modal = ConfirmDeleteModal(value.key)
            elif value is not None:
                self.set_toast("Can only delete local values", is_error=True)
        elif key == "u":
            self._undo_from_key()
        elif key == "y":
            value = self.selected_value()
            if value is not None:
                self.clipboard = format_key_value(value.key, value.value)
                self.set_toast(f"Copied: {value.key}=...")
        elif key == "Y":
            value = self.selected_value()
            if value is not None:
                self.clipboard = format_export(value.key, value.value)
                self.set_toast("Copied export line")
        elif key == "esc":
            if self.query:
                self.search.clear()
                self.refresh_results()

    def _handle_search_key(self, key: str) -> None:
        if key == "enter":
            self.search_focused = False
        elif key == "esc":
            if self.query:
                self.search.clear()
                self.refresh_results()
            else:
                self.search_focused = False
        elif key == "ctrl+c":
            self.quit_requested = True
        elif key == "down":
            self.move_down(1)
        elif key == "up":
            self.move_up(1)
        else:
            before = self.query
            if self.search.handle_key(key) and self.query != before:
                self.refresh_results()

    def toggle_view_mode(self) -> None:
        if self.view_mode is ViewMode.EFFECTIVE:
            self.view_mode = ViewMode.LOCAL
            self.set_toast("Showing local values only")
        else:
            self.view_mode = ViewMode.EFFECTIVE
            self.set_toast("Showing effective values")
        self.refresh_results()

    # ------------------------------------------------------------------
    # Modals
    # ------------------------------------------------------------------
    def open_edit_modal(self, value: Optional[ResolvedValue]) -> None:
        modal = EditModal(is_new=value is None)
        if value is not None:
            modal.key.set(value.key)
            modal.value.set(value.value)
            modal.description.set(value.description or "")
            modal.focus = EditFocus.VALUE
        self.modal = modal

    def _handle_edit_key(self, key: str) -> None:
        modal = self.modal
        if key == "esc":
            self.modal = None
        elif key == "ctrl+s":
            self._save_edit(modal)
        elif key == "tab":
            modal.cycle_focus(1)
        elif key == "shift+tab":
            modal.cycle_focus(-1)
        else:
            modal.focused().handle_key(key)

    def _save_edit(self, modal: EditModal) -> None:
        key = modal.key.text
        try:
            self.apply_set(key, modal.value.text, modal.description.text.strip() or None)
        except InvalidKeyError:
            modal.error = "Invalid key: must match [A-Za-z_][A-Za-z0-9_]*"
            return
        except ResolveError as exc:
            self.modal = None
            self.set_toast(f"Reload error: {exc}", is_error=True)
            return
        except EnvScopeError as exc:
            log.error("saving %s failed: %s", key, exc)
            modal.error = f"Error: {exc}"
            return
        self.modal = None
        self.set_toast(f"{'Added' if modal.is_new else 'Updated'} {key}")

    def _handle_bulk_import_key(self, key: str) -> None:
        modal = self.modal
        if key == "esc":
            self.modal = None
        elif key == "ctrl+s":
            self._save_bulk_import(modal)
        else:
            modal.text.handle_key(key)

    def _save_bulk_import(self, modal: BulkImportModal) -> None:
        try:
            summary = self.apply_import(modal.text.text)
        except ParseError as exc:
            if exc.invalid_lines:
                modal.error = "Invalid lines: " + ", ".join(exc.invalid_lines)
            else:
                modal.error = str(exc)
            return
        except ResolveError as exc:
            self.modal = None
            self.set_toast(f"Reload error: {exc}", is_error=True)
            return
        except EnvScopeError as exc:
            log.error("bulk import failed: %s", exc)
            modal.error = f"Error: {exc}"
            return
        self.modal = None
        self.set_toast(
            f"Imported {summary.total} (added {summary.added}, updated {summary.updated})"
        )

    def view_value_lines(self) -> List[str]:
        modal = self.modal
        value = self.context.get(modal.key) if isinstance(modal, ViewValueModal) else None
        return value.value.split("\n") if value is not None else []

    def _handle_view_key(self, key: str) -> None:
        modal = self.modal
        if key in ("esc", "q", "v", "enter"):
            self.modal = None
        elif key in ("j", "down"):
            modal.scroll = min(modal.scroll + 1, max(0, len(self.view_value_lines()) - 1))
        elif key in ("k", "up"):
            modal.scroll = max(0, modal.scroll - 1)

    def help_page_size(self) -> int:
        return max(5, self.height - 10)

    def _handle_help_key(self, key: str) -> None:
        modal = self.modal
        max_offset = max(0, len(HELP_BINDINGS) - self.help_page_size())
        if key in ("esc", "q", "?", "enter"):
            self.modal = None
        elif key in ("j", "down"):
            modal.scroll = min(modal.scroll + 1, max_offset)
        elif key in ("k", "up"):
            modal.scroll = max(0, modal.scroll - 1)
        elif key == "g":
            modal.scroll = 0
        elif key == "G":
            modal.scroll = max_offset

    def _handle_confirm_delete_key(self, key: str) -> None:
        modal = self.modal
        if key in ("n", "N", "esc"):
            self.modal = None
            return
        if key not in ("y", "Y"):
            return
        self.modal = None
        try:
            deleted = self.apply_delete(modal.key)
        except ResolveError as exc:
            self.set_toast(f"Reload error: {exc}", is_error=True)
            return
        except EnvScopeError as exc:
            log.error("deleting %s failed: %s", modal.key, exc)
            self.set_toast(f"Delete error: {exc}", is_error=True)
            return
        if deleted:
            self.set_toast(f"Deleted {modal.key}")
        else:
            self.set_toast("Can only delete local values", is_error=True)

    def _undo_from_key(self) -> None:
        try:
            action = self.undo()
        except ResolveError as exc:
            self.set_toast(f"Reload error: {exc}", is_error=True)
            return
        except EnvScopeError as exc:
            log.error("undo failed: %s", exc)
            self.set_toast(f"Undo error: {exc}", is_error=True)
            return
        if action is None:
            self.set_toast("Nothing to undo", is_error=True)
        else:
            self.set_toast(f"Undone {action.label()}")
