"""Event loop for the interactive session.

Usage:
    from envscope.session.app import run_session
    run_session(resolver, os.getcwd(), settings)

One key press is processed at a time; between key presses the loop wakes up
every ``TICK_SECONDS`` so expired toasts disappear without input.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.live import Live

from envscope.config import Settings
from envscope.resolve import Resolver
from .model import Session
from .terminal import KeyReader
from .view import render

log = logging.getLogger(__name__)

TICK_SECONDS = 0.5


def feed_key(session: Session, key: str) -> None:
    """Deliver a key name, splitting pasted text when no text field has focus."""
    if key.startswith("paste:") and not session.accepts_text():
        text = key[len("paste:"):]
        for i, ch in enumerate(text):
            session.handle_key("enter" if ch == "\n" else ch)
            if session.quit_requested:
                break
            if session.accepts_text():
                if text[i + 1:]:
                    session.handle_key("paste:" + text[i + 1:])
                break
        return
    session.handle_key(key)


def run_session(resolver: Resolver, directory: str, settings: Settings, console: Optional[Console] = None) -> Session:
    """Run the interactive browser for ``directory`` until the user quits.

    Raises :class:`ResolveError` if the starting directory cannot be resolved.
    """
    context = resolver.resolve(directory)
    console = console or Console()
    session = Session(
        resolver,
        context,
        width=console.size.width,
        height=console.size.height,
        toast_seconds=settings.toast_seconds,
    )
    log.info("session started at %s (root %s, profile %s)", context.directory, context.root, context.profile)

    try:
        with KeyReader() as keys, Live(
            render(session), console=console, screen=True, auto_refresh=False, transient=True
        ) as live:
            while not session.quit_requested:
                key = keys.read_key(TICK_SECONDS)
                width, height = console.size
                if (width, height) != (session.width, session.height):
                    session.set_size(width, height)
                if key is None:
                    session.tick()
                else:
                    feed_key(session, key)
                live.update(render(session), refresh=True)
    except Exception:
        log.exception("interactive session crashed")
        raise

    log.info("session ended")
    return session
