"""envscope store subsystem (public API).

Import the :class:`Store` facade from here::

    from envscope.store import Store

This file stays tiny. Implementation lives in :mod:`envscope.store.store`.
"""

from .records import StoredValue
from .store import Store

__all__ = ["Store", "StoredValue"]
