"""Runtime settings loader for envscope.

All configuration is resolved here so the rest of the codebase consumes a
single ``Settings`` object instead of scattering environment reads around.

Sources, highest priority first:

1. Real process environment variables (``ENVSCOPE_*``, ``VISUAL``/``EDITOR``).
2. The optional dotenv file ``~/.config/envscope/config.env`` (or the file
   named by ``ENVSCOPE_CONFIG``), loaded with python-dotenv without
   overriding (1).
3. Dataclass defaults.
"""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_PROFILE = "default"
PROFILE_ENV_VAR = "ENVSCOPE_PROFILE"

_DATA_DIR = pathlib.Path.home() / ".local" / "share" / "envscope"
_CONFIG_FILE = pathlib.Path.home() / ".config" / "envscope" / "config.env"


# ---------------------------------------------------------------------------
# Settings Dataclass
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Settings:
    """Resolved runtime configuration."""

    profile: str = DEFAULT_PROFILE
    db_path: str = str(_DATA_DIR / "envscope.db")
    log_dir: str = str(_DATA_DIR / "logs")
    log_level: str = "WARNING"  # console handler level; file always logs INFO
    toast_seconds: float = 3.0
    editor: str = "vi"
    config_file: Optional[str] = field(default=None)

    def ensure_dirs(self) -> None:
        """Create the log directory and the database's parent directory."""
        dirs = [pathlib.Path(self.log_dir)]
        if self.db_path != ":memory:":
            dirs.append(pathlib.Path(self.db_path).parent)
        for d in dirs:
            d.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Settings Builders
# ---------------------------------------------------------------------------

def _load_config_file(environ: Mapping[str, str]) -> Optional[str]:
    """Load the dotenv config file into ``os.environ`` if it exists."""
    path = pathlib.Path(environ.get("ENVSCOPE_CONFIG") or _CONFIG_FILE).expanduser()
    if not path.is_file():
        return None
    load_dotenv(dotenv_path=path, override=False)
    return str(path)


def settings_from_env(
    environ: Optional[Mapping[str, str]] = None, *, profile: Optional[str] = None
) -> Settings:
    """Assemble settings from env vars + dotenv config file + defaults.

    ``environ`` defaults to ``os.environ`` (read after the dotenv file has been
    applied). An explicit ``profile`` wins over ``ENVSCOPE_PROFILE``.
    """
    config_file = None
    if environ is None:
        config_file = _load_config_file(os.environ)
        environ = os.environ

    s = Settings(config_file=config_file)

    # Profile --------------------------------------------------------------
    s.profile = profile or environ.get(PROFILE_ENV_VAR) or DEFAULT_PROFILE

    # Storage + logs -------------------------------------------------------
    s.db_path = os.path.expanduser(environ.get("ENVSCOPE_DB_PATH", s.db_path))
    s.log_dir = os.path.expanduser(environ.get("ENVSCOPE_LOG_DIR", s.log_dir))
    s.log_level = environ.get("ENVSCOPE_LOG_LEVEL", s.log_level).upper()

    # Interactive session --------------------------------------------------
    raw_toast = environ.get("ENVSCOPE_TOAST_SECONDS")
    if raw_toast:
        try:
            s.toast_seconds = max(0.0, float(raw_toast))
        except ValueError:  # leave default
            pass

    # Editor for `envscope edit` --------------------------------------------
    s.editor = environ.get("VISUAL") or environ.get("EDITOR") or s.editor

    return s


def load_settings(profile: Optional[str] = None) -> Settings:
    """Public loader: returns a fully-initialized :class:`Settings` object."""
    settings = settings_from_env(profile=profile)
    settings.ensure_dirs()
    return settings
