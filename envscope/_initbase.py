"""envscope base package metadata.

Kept separate from ``__init__.py`` so importing the package has no side
effects.
"""

from importlib import metadata as _metadata

try:  # When installed via pip / build backend
    __version__ = _metadata.version("envscope")
except _metadata.PackageNotFoundError:  # Local checkout fallback
    __version__ = "0.0.0-dev"
