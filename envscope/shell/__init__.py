from .exporter import (
    LOADED_KEYS_VAR,
    LOADED_PATH_VAR,
    ExportPlan,
    LoadedState,
    child_environment,
    plan_export,
)
from .hooks import HOOKS, hook_script

__all__ = [
    "ExportPlan",
    "HOOKS",
    "LOADED_KEYS_VAR",
    "LOADED_PATH_VAR",
    "LoadedState",
    "child_environment",
    "hook_script",
    "plan_export",
]
