"""Plan the shell lines emitted by ``envscope export``.

The shell hook calls ``envscope export`` on every prompt. To unset values that
stop applying after a ``cd``, each invocation needs to know what the previous
one loaded. That record is explicit here: a :class:`LoadedState` read from
two tracking variables, diffed against the new :class:`ResolveContext` by
:func:`plan_export`, which also returns the tracking lines for the next run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from envscope.parser import format_export, is_valid_key, quote_value
from envscope.resolve import ResolveContext

LOADED_KEYS_VAR = "__ENVSCOPE_LOADED_KEYS"
LOADED_PATH_VAR = "__ENVSCOPE_LOADED_PATH"


@dataclass(frozen=True)
class LoadedState:
    """What the previous ``export`` left loaded in the shell."""

    keys: Tuple[str, ...] = ()
    path: str = ""

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "LoadedState":
        environ = os.environ if environ is None else environ
        raw = environ.get(LOADED_KEYS_VAR, "")
        # the value is eval'd back as `unset` lines; drop anything that is not a name
        keys = tuple(k for k in raw.split(":") if is_valid_key(k))
        return cls(keys=keys, path=environ.get(LOADED_PATH_VAR, ""))

    def __bool__(self) -> bool:
        return bool(self.keys)

    def tracking_lines(self) -> List[str]:
        return [
            f"export {LOADED_KEYS_VAR}={quote_value(':'.join(self.keys))}",
            f"export {LOADED_PATH_VAR}={quote_value(self.path)}",
        ]


@dataclass
class ExportPlan:
    lines: List[str] = field(default_factory=list)
    loaded: LoadedState = field(default_factory=LoadedState)
    unloaded: List[str] = field(default_factory=list)
    message: Optional[str] = None

    def script(self) -> str:
        return "".join(line + "\n" for line in self.lines)


def plan_export(previous: LoadedState, context: ResolveContext) -> ExportPlan:
    """Diff ``previous`` against ``context`` into shell lines + the next state."""
    values = context.sorted_values()
    current_keys = {v.key for v in values}
    plan = ExportPlan()

    for key in previous.keys:
        if key not in current_keys:
            plan.lines.append(f"unset {key}")
            plan.unloaded.append(key)

    for v in values:
        plan.lines.append(format_export(v.key, v.value))
    newly_loaded = [v.key for v in values if v.key not in previous.keys]

    if values:
        plan.loaded = LoadedState(tuple(v.key for v in values), context.directory)
        plan.lines.extend(plan.loaded.tracking_lines())
    elif previous:
        plan.lines.append(f"unset {LOADED_KEYS_VAR}")
        plan.lines.append(f"unset {LOADED_PATH_VAR}")

    if plan.unloaded and not values:
        plan.message = f"unloaded {len(plan.unloaded)} var(s)"
    elif values and previous.path != context.directory and (newly_loaded or plan.unloaded):
        plan.message = f"loaded {len(values)} var(s)"
    return plan


def child_environment(base: Mapping[str, str], context: ResolveContext) -> Dict[str, str]:
    """``base`` overlaid with every effective value (for ``envscope run``)."""
    env = dict(base)
    for v in context.sorted_values():
        env[v.key] = v.value
    return env
