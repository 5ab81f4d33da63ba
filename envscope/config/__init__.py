"""envscope configuration (public API).

    from envscope.config import load_settings

Implementation lives in :mod:`envscope.config.settings`.
"""

from .settings import DEFAULT_PROFILE, PROFILE_ENV_VAR, Settings, load_settings, settings_from_env

__all__ = ["DEFAULT_PROFILE", "PROFILE_ENV_VAR", "Settings", "load_settings", "settings_from_env"]
