"""Rich rendering of a :class:`Session`.

``render(session)`` is a pure function of session state; the event loop in
:mod:`envscope.session.app` hands its result to ``rich.live.Live``.
"""

from __future__ import annotations

from typing import List

from rich import box
from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from envscope.resolve import ResolvedValue
from .model import (
    HELP_BINDINGS,
    BulkImportModal,
    ConfirmDeleteModal,
    EditFocus,
    EditModal,
    HelpModal,
    Session,
    ViewMode,
    ViewValueModal,
)
from .widgets import TextBuffer

KEY_COLUMN_WIDTH = 30

STYLE_BAR = "on grey15"
STYLE_ROOT = "bold cyan"
STYLE_PROFILE = "magenta"
STYLE_DIM = "grey50"
STYLE_MATCH = "bold yellow"
STYLE_SELECTED = "reverse"
STYLE_ERROR = "bold red"
STYLE_OK = "green"
STYLE_FOCUSED = "bright_cyan"

BADGES = {
    "local": Text("L", style="bold green"),
    "override": Text("O", style="bold yellow"),
    "inherited": Text("I", style="blue"),
}


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    return text[: max(0, width - 1)] + "…"


def single_line(text: str) -> str:
    return text.replace("\r", "").replace("\n", "⏎")


def highlight(text: str, positions: List[int], width: int) -> Text:
    rendered = Text(truncate(text, width))
    visible = len(rendered.plain)
    for pos in positions:
        if pos < visible:
            rendered.stylize(STYLE_MATCH, pos, pos + 1)
    return rendered


def badge_for(session: Session, value: ResolvedValue) -> Text:
    if session.context.is_local(value):
        return BADGES["override" if value.overridden else "local"]
    return BADGES["inherited"]


def _bar(left: RenderableType, right: RenderableType) -> Table:
    grid = Table.grid(expand=True)
    grid.add_column(justify="left", ratio=1, no_wrap=True, overflow="ellipsis")
    grid.add_column(justify="right", no_wrap=True)
    grid.add_row(left, right)
    grid.style = STYLE_BAR
    return grid


def _top_bar(session: Session) -> Table:
    mode = "Local" if session.view_mode is ViewMode.LOCAL else "Effective"
    left = Text.assemble(("Root: ", STYLE_DIM), (session.context.root, STYLE_ROOT))
    right = Text.assemble(
        (f"[{mode}]", STYLE_PROFILE), "  ", ("Profile: ", STYLE_DIM), (session.context.profile, STYLE_PROFILE)
    )
    return _bar(left, right)


def _search_bar(session: Session) -> Table:
    label = Text("Search: ", style="bold")
    if session.search_focused:
        content = _field_text(session.search, focused=True)
    elif session.query:
        content = Text(session.query, style=STYLE_MATCH)
    else:
        content = Text("(press / to search)", style=STYLE_DIM)
    return _bar(label + content, Text(session.context.directory, style=STYLE_DIM))


def _results_table(session: Session) -> Table:
    value_width = max(20, session.width - KEY_COLUMN_WIDTH - 10)
    table = Table(box=box.ROUNDED, expand=True, show_edge=True, pad_edge=False, header_style="bold")
    table.add_column("", width=1, no_wrap=True)
    table.add_column("Key", width=KEY_COLUMN_WIDTH, no_wrap=True)
    table.add_column("Value", no_wrap=True, ratio=1)

    visible = session.visible_rows()
    rows = session.results[session.offset: session.offset + visible]
    for i, result in enumerate(rows, start=session.offset):
        value = result.value
        searching = bool(session.query)
        key_text = highlight(value.key, result.key_matches if searching else [], KEY_COLUMN_WIDTH)
        value_text = highlight(
            single_line(value.value), result.value_matches if searching else [], value_width
        )
        table.add_row(
            badge_for(session, value),
            key_text,
            value_text,
            style=STYLE_SELECTED if i == session.cursor else None,
        )
    for _ in range(visible - len(rows)):
        table.add_row("", "", "")
    return table


def _status_bar(session: Session) -> Table:
    left = Text()
    value = session.selected_value()
    if value is not None:
        left.append("Defined at: ", style=STYLE_DIM)
        left.append(value.scope)
        if value.overridden:
            left.append("  Overrides: ", style=STYLE_DIM)
            left.append(value.override_origin or "")
    elif not session.results:
        left.append("No values. Press a to add one, A to import.", style=STYLE_DIM)

    position = session.cursor + 1 if session.results else 0
    right = Text(f"{position}/{len(session.results)}")
    if session.toast is not None:
        right.append("  ")
        right.append(session.toast.message, style=STYLE_ERROR if session.toast.is_error else STYLE_OK)
    elif session.undo_slot.peek() is not None:
        right.append(f"  u: undo {session.undo_slot.peek().label()}", style=STYLE_DIM)
    right.append("  ? help", style=STYLE_DIM)
    return _bar(left, right)


# ---------------------------------------------------------------------------
# Modals
# ---------------------------------------------------------------------------

def _modal_width(session: Session) -> int:
    return max(50, min(80, session.width - 20))


def _field_text(buffer: TextBuffer, focused: bool) -> Text:
    text = Text(buffer.text)
    if focused:
        if buffer.cursor >= len(buffer.text) or buffer.text[buffer.cursor] == "\n":
            text = Text(buffer.text[: buffer.cursor])
            text.append(" ", style=STYLE_SELECTED)
            text.append(buffer.text[buffer.cursor:])
        else:
            text.stylize(STYLE_SELECTED, buffer.cursor, buffer.cursor + 1)
    return text


def _field(title: str, buffer: TextBuffer, focused: bool, height: int = 1) -> Panel:
    return Panel(
        _field_text(buffer, focused),
        title=title,
        title_align="left",
        border_style=STYLE_FOCUSED if focused else STYLE_DIM,
        height=height + 2,
    )


def _render_edit(session: Session, modal: EditModal) -> RenderableType:
    parts: List[RenderableType] = [
        _field("Key", modal.key, modal.focus is EditFocus.KEY),
        _field("Value", modal.value, modal.focus is EditFocus.VALUE, height=5),
        _field("Description", modal.description, modal.focus is EditFocus.DESCRIPTION),
    ]
    if modal.error:
        parts.append(Text(modal.error, style=STYLE_ERROR))
    parts.append(Text("tab: next field • ctrl+s: save • esc: cancel", style=STYLE_DIM))
    title = "Add Value" if modal.is_new else "Edit Value"
    return Panel(Group(*parts), title=title, width=_modal_width(session), border_style=STYLE_FOCUSED)


def _render_bulk_import(session: Session, modal: BulkImportModal) -> RenderableType:
    parts: List[RenderableType] = [
        Text(f"Paste KEY=value lines to set at {session.context.directory}", style=STYLE_DIM),
        _field("Lines", modal.text, True, height=15),
    ]
    if modal.error:
        parts.append(Text(modal.error, style=STYLE_ERROR))
    parts.append(Text("ctrl+s: import • esc: cancel", style=STYLE_DIM))
    return Panel(Group(*parts), title="Bulk Import", width=_modal_width(session), border_style=STYLE_FOCUSED)


def _render_view(session: Session, modal: ViewValueModal) -> RenderableType:
    page = max(3, session.height - 10)
    lines = session.view_value_lines()[modal.scroll: modal.scroll + page]
    value = session.context.get(modal.key)
    subtitle = f"defined at {value.scope}" if value is not None else None
    body = Group(
        Text("\n".join(lines)),
        Text("j/k: scroll • esc: close", style=STYLE_DIM),
    )
    return Panel(body, title=modal.key, subtitle=subtitle, width=_modal_width(session))


def _render_help(session: Session, modal: HelpModal) -> RenderableType:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    for keys, description in HELP_BINDINGS[modal.scroll: modal.scroll + session.help_page_size()]:
        grid.add_row(keys, description)
    return Panel(grid, title="Keybindings", subtitle="j/k: scroll • esc: close", width=_modal_width(session))


def _render_confirm_delete(session: Session, modal: ConfirmDeleteModal) -> RenderableType:
    body = Text.assemble(
        "Delete ", (modal.key, "bold"), f" from {session.context.directory}?\n\n",
        ("y", "bold green"), ": delete • ", ("n", "bold red"), "/esc: cancel",
    )
    return Panel(body, title="Confirm Delete", width=_modal_width(session), border_style=STYLE_ERROR)


_MODAL_RENDERERS = {
    EditModal: _render_edit,
    BulkImportModal: _render_bulk_import,
    ViewValueModal: _render_view,
    HelpModal: _render_help,
    ConfirmDeleteModal: _render_confirm_delete,
}


def render(session: Session) -> RenderableType:
    if session.modal is not None:
        panel = _MODAL_RENDERERS[type(session.modal)](session, session.modal)
        return Align.center(panel, vertical="middle", height=session.height)
    return Group(
        _top_bar(session),
        _search_bar(session),
        _results_table(session),
        _status_bar(session),
    )
