"""
envscope Resolution Engine
==========================

Computes the effective set of values for a directory:

1. canonicalize the directory,
2. find the enclosing project root (:func:`paths.find_root`),
3. build the chain ``[root, ..., directory]``,
4. bulk-load every stored value on the chain for the active profile,
5. fold the chain root-first so the deepest definition of each key wins.

Each :class:`ResolvedValue` remembers where it is defined and, if it replaced
an inherited value, the scope of the definition it replaced (the immediately
preceding definer, not necessarily the first).

A :class:`ResolveContext` is an immutable snapshot. Callers that change data
or directory build a fresh one via :meth:`Resolver.resolve`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from envscope.config import DEFAULT_PROFILE
from envscope.errors import EnvScopeError, ResolveError
from envscope.store import Store, StoredValue
from . import paths

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedValue:
    key: str
    value: str
    scope: str                             # defining scope
    overridden: bool = False
    override_origin: Optional[str] = None  # scope whose value this one replaced
    description: Optional[str] = None


@dataclass(frozen=True)
class ResolveContext:
    directory: str                       # canonical target directory
    root: str
    chain: Tuple[str, ...]
    values: Mapping[str, ResolvedValue]
    profile: str

    def sorted_values(self) -> List[ResolvedValue]:
        """All effective values ordered by key."""
        return [self.values[k] for k in sorted(self.values)]

    def local_values(self) -> List[ResolvedValue]:
        """Only the values defined exactly at :attr:`directory`, by key."""
        return [v for v in self.sorted_values() if v.scope == self.directory]

    def is_local(self, value: ResolvedValue) -> bool:
        return value.scope == self.directory

    def get(self, key: str) -> Optional[ResolvedValue]:
        return self.values.get(key)


def merge_chain(chain: List[str], stored: List[StoredValue]) -> Dict[str, ResolvedValue]:
    """Fold ``stored`` rows along ``chain`` (shallow to deep)."""
    by_scope: Dict[str, List[StoredValue]] = {}
    for row in stored:
        by_scope.setdefault(row.path, []).append(row)

    resolved: Dict[str, ResolvedValue] = {}
    for scope in chain:
        for row in by_scope.get(scope, ()):
            previous = resolved.get(row.key)
            resolved[row.key] = ResolvedValue(
                key=row.key,
                value=row.value,
                scope=scope,
                overridden=previous is not None,
                override_origin=previous.scope if previous is not None else None,
                description=row.description,
            )
    return resolved


class Resolver:
    """Profile-bound resolution engine and mutation gateway over a :class:`Store`.

    All mutating helpers canonicalize their directory argument first, so
    ``./sub`` and a symlink to it address the same scope.
    """

    def __init__(self, store: Store, profile: Optional[str] = None) -> None:
        self.store = store
        self.profile = profile or DEFAULT_PROFILE

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, directory: str) -> ResolveContext:
        """Build a fresh :class:`ResolveContext` for ``directory``.

        Raises :class:`ResolveError` on any failure; there is no partial
        result.
        """
        try:
            target = paths.canonicalize(directory)
            root = paths.find_root(target)
            chain = paths.build_chain(root, target)
            stored = self.store.get_values_for_scopes(chain, self.profile)
        except EnvScopeError as exc:
            log.info("resolve failed for %s: %s", directory, exc)
            raise ResolveError(str(directory), str(exc)) from exc

        resolved = merge_chain(chain, stored)
        log.debug("resolved %d value(s) for %s (root %s)", len(resolved), target, root)
        return ResolveContext(
            directory=target,
            root=root,
            chain=tuple(chain),
            values=MappingProxyType(resolved),
            profile=self.profile,
        )

    # ------------------------------------------------------------------
    # Local reads + writes
    # ------------------------------------------------------------------
    def local_entries(self, directory: str) -> Dict[str, StoredValue]:
        """Values stored exactly at ``directory``, keyed by name."""
        path = paths.canonicalize(directory)
        return {v.key: v for v in self.store.get_values_for_scope(path, self.profile)}

    def local_entry(self, directory: str, key: str) -> Optional[StoredValue]:
        return self.store.get_value(paths.canonicalize(directory), self.profile, key)

    def set_value(self, directory: str, key: str, value: str, description: Optional[str] = None) -> None:
        self.store.set_value(paths.canonicalize(directory), self.profile, key, value, description)

    def delete_value(self, directory: str, key: str) -> None:
        self.store.delete_value(paths.canonicalize(directory), self.profile, key)

    def set_values_batch(
        self,
        directory: str,
        values: Mapping[str, str],
        descriptions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        self.store.set_values_batch(paths.canonicalize(directory), self.profile, values, descriptions)

    def delete_values_batch(self, directory: str, keys: List[str]) -> None:
        self.store.delete_values_batch(paths.canonicalize(directory), self.profile, keys)

    def replace_local(
        self,
        directory: str,
        values: Mapping[str, str],
        descriptions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        """Make the local values at ``directory`` exactly ``values`` (one transaction)."""
        self.store.replace_scope_values(paths.canonicalize(directory), self.profile, values, descriptions)
