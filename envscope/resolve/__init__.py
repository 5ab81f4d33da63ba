"""envscope resolution engine (public API).

    from envscope.resolve import Resolver

Path helpers live in :mod:`envscope.resolve.paths`; the merge and context
types in :mod:`envscope.resolve.resolver`.
"""

from .paths import build_chain, canonicalize, find_root
from .resolver import ResolveContext, ResolvedValue, Resolver, merge_chain

__all__ = [
    "ResolveContext",
    "ResolvedValue",
    "Resolver",
    "build_chain",
    "canonicalize",
    "find_root",
    "merge_chain",
]
