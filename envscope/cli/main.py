"""envscope command-line interface.

Usage:
    eval "$(envscope hook bash)"      # install the prompt hook
    envscope set API_URL=http://localhost:8080 -d "local backend"
    envscope ls --long
    envscope run -- make test
    envscope tui

Every subcommand works on the current working directory and the active
profile (``--profile`` or ``ENVSCOPE_PROFILE``).
"""

from __future__ import annotations

import argparse
import os
import pathlib
import shlex
import subprocess
import sys
import tempfile
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from envscope.config import Settings, load_settings
from envscope.errors import EnvScopeError, PathError
from envscope.logging_utils import get_logger
from envscope.parser import format_assignment, format_key_value, parse_env_text_strict, validate_key
from envscope.resolve import Resolver
from envscope.shell import LoadedState, child_environment, hook_script, plan_export
from envscope.store import Store

EDIT_HEADER = """\
# envscope: local values for {directory} (profile {profile})
# One KEY=value per line; a trailing "# text" becomes the description.
# Lines removed here are deleted when the editor exits.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="envscope", description="Per-directory environment variables")
    parser.add_argument("--profile", default=None, help="value profile (default: $ENVSCOPE_PROFILE or 'default')")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("hook", help="print the shell hook to eval in your rc file")
    p.add_argument("shell", help="bash | zsh | fish")

    sub.add_parser("export", help="print export/unset lines for the current directory")

    p = sub.add_parser("set", help="set KEY=VALUE in the current directory")
    p.add_argument("assignment", metavar="KEY=VALUE")
    p.add_argument("-d", "--description", default=None, help="free-text note stored with the value")

    p = sub.add_parser("unset", help="delete one or more KEYs from the current directory")
    p.add_argument("keys", nargs="+", metavar="KEY")

    p = sub.add_parser("ls", help="list the effective values")
    p.add_argument("-l", "--long", action="store_true", help="table with scope and override details")

    sub.add_parser("edit", help="edit the local values in $VISUAL / $EDITOR")

    p = sub.add_parser("run", help="run a command with the effective values applied")
    p.add_argument("cmd", nargs=argparse.REMAINDER, metavar="-- CMD ...")

    sub.add_parser("tui", help="interactive browser")
    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cwd() -> str:
    try:
        return os.getcwd()
    except FileNotFoundError:
        raise PathError(".", "current directory no longer exists") from None


def cmd_hook(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    try:
        script = hook_script(args.shell)
    except ValueError as exc:
        raise EnvScopeError(str(exc)) from None
    sys.stdout.write(script)
    return 0


def cmd_export(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    context = resolver.resolve(_cwd())
    plan = plan_export(LoadedState.from_environ(), context)
    # stdout is eval'd by the shell; keep rich markup away from it
    sys.stdout.write(plan.script())
    if plan.message:
        err.print(f"envscope: {plan.message}", highlight=False)
    return 0


def cmd_set(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    key, sep, value = args.assignment.partition("=")
    if not sep:
        raise EnvScopeError(f"expected KEY=VALUE, got {args.assignment!r}")
    key = validate_key(key.strip())
    resolver.set_value(_cwd(), key, value, args.description)
    err.print(f"envscope: set {key}", highlight=False)
    return 0


def cmd_unset(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    directory = _cwd()
    local = resolver.local_entries(directory)
    missing = [k for k in args.keys if k not in local]
    if missing:
        raise EnvScopeError(f"{', '.join(missing)} not set in this directory")
    keys = list(dict.fromkeys(args.keys))
    resolver.delete_values_batch(directory, keys)
    err.print(f"envscope: unset {' '.join(keys)}", highlight=False)
    return 0


def cmd_ls(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    context = resolver.resolve(_cwd())
    values = context.sorted_values()
    if not args.long:
        for v in values:
            out.print(format_key_value(v.key, v.value), markup=False, emoji=False, highlight=False, soft_wrap=True)
        return 0

    table = Table(title=Text(f"{context.directory} (profile {context.profile})"), title_justify="left")
    table.add_column("Key", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_column("Scope")
    table.add_column("Overrides")
    table.add_column("Description", style="dim")
    for v in values:
        scope = "." if context.is_local(v) else v.scope
        table.add_row(*(Text(cell) for cell in (v.key, v.value, scope, v.override_origin or "", v.description or "")))
    out.print(table)
    return 0


def cmd_edit(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    directory = _cwd()
    entries = resolver.local_entries(directory)
    original = EDIT_HEADER.format(directory=directory, profile=resolver.profile) + "".join(
        format_assignment(e.key, e.value, e.description) + "\n" for e in entries.values()
    )

    fd, path = tempfile.mkstemp(prefix="envscope-", suffix=".env")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(original)
        try:
            rc = subprocess.call(shlex.split(settings.editor) + [path])
        except OSError as exc:
            raise EnvScopeError(f"cannot run editor {settings.editor!r}: {exc.strerror or exc}") from exc
        if rc != 0:
            raise EnvScopeError(f"editor exited with status {rc}; nothing changed")
        try:
            edited = pathlib.Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise EnvScopeError(f"cannot read edited file {path}: {exc}; nothing changed") from exc
    finally:
        pathlib.Path(path).unlink(missing_ok=True)

    if edited == original:
        err.print("envscope: no changes", highlight=False)
        return 0
    parsed = parse_env_text_strict(edited)
    resolver.replace_local(directory, parsed.values, parsed.descriptions)
    err.print(f"envscope: saved {len(parsed.entries)} value(s)", highlight=False)
    return 0


def cmd_run(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    cmd: List[str] = list(args.cmd)
    if cmd and cmd[0] == "--":
        cmd = cmd[1:]
    if not cmd:
        raise EnvScopeError("run: no command given")
    context = resolver.resolve(_cwd())
    env = child_environment(os.environ, context)
    resolver.store.close()
    try:
        os.execvpe(cmd[0], cmd, env)
    except OSError as exc:
        raise EnvScopeError(f"run: {cmd[0]}: {exc.strerror or exc}") from exc
    return 0  # pragma: no cover


def cmd_tui(args, resolver: Resolver, settings: Settings, out: Console, err: Console) -> int:
    # imported lazily: termios is only needed for the interactive session
    from envscope.session.app import run_session

    run_session(resolver, _cwd(), settings, console=out)
    return 0


COMMANDS = {
    "hook": cmd_hook,
    "export": cmd_export,
    "set": cmd_set,
    "unset": cmd_unset,
    "ls": cmd_ls,
    "edit": cmd_edit,
    "run": cmd_run,
    "tui": cmd_tui,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Parse args, load settings, bootstrap logging, dispatch the subcommand."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help(sys.stderr)
        return 2

    out = Console()
    err = Console(stderr=True)
    try:
        settings = load_settings(profile=args.profile)
        log = get_logger(
            "envscope",
            log_dir=settings.log_dir,
            console_level=settings.log_level,
            console=args.command != "tui",
        )
        log.debug("command %s (profile %s)", args.command, settings.profile)
        if args.command == "hook":
            return cmd_hook(args, None, settings, out, err)
        with Store(settings) as store:
            resolver = Resolver(store, settings.profile)
            return COMMANDS[args.command](args, resolver, settings, out, err)
    except EnvScopeError as exc:
        err.print(f"envscope: {exc}", markup=False, highlight=False)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
