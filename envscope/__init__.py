"""envscope package bootstrap (minimal).

Importing ``envscope`` opens no database and does not touch the terminal.
Package metadata lives in :mod:`envscope._initbase`.
"""

from ._initbase import __version__  # re-export version string

__all__ = ["__version__"]
