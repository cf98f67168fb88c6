"""Pure helpers for planning mirror ref updates.

Refs form a slash-delimited namespace in which a name cannot be both a leaf
and a directory: ``refs/heads/x`` and ``refs/heads/x/y`` cannot coexist. An
upstream rename into a deeper path therefore has to remove the shallower
local ref before the new one can be written. :func:`plan_ref_update`
computes that explicitly from the two ref mappings so the caller can prune
before it fetches.

Example
-------
>>> plan = plan_ref_update(
...     local={"refs/heads/x": "a" * 40},
...     remote={"refs/heads/x/y": "a" * 40},
... )
>>> sorted(plan.conflicts)
['refs/heads/x']

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ

RefMap = dict[str, str]

_PEELED_SUFFIX = "^{}"
_SYMBOLIC_HEAD = "HEAD"


def parse_ls_remote(output: str) -> RefMap:
    """Parse ``git ls-remote`` output into a ``name -> oid`` mapping.

    The symbolic ``HEAD`` entry and peeled tag lines (``refs/tags/x^{}``) are
    dropped; they are not refs the mirror stores.
    """
    refs: RefMap = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        oid, _, name = line.partition("\t")
        name = name.strip()
        if name == _SYMBOLIC_HEAD or name.endswith(_PEELED_SUFFIX):
            continue
        refs[name] = oid.strip()
    return refs


def parse_for_each_ref(output: str) -> RefMap:
    """Parse ``git for-each-ref --format='%(objectname) %(refname)'`` output."""
    refs: RefMap = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        oid, _, name = line.partition(" ")
        refs[name.strip()] = oid.strip()
    return refs


def _ancestors(name: str) -> typ.Iterator[str]:
    """Yield every strict directory prefix of ``name`` that could be a ref."""
    parts = name.split("/")
    for end in range(2, len(parts)):
        yield "/".join(parts[:end])


def find_namespace_conflicts(
    existing: cabc.Iterable[str], incoming: cabc.Iterable[str]
) -> dict[str, str]:
    """Map each existing ref that blocks an incoming ref to the ref it blocks.

    An existing ref blocks an incoming one when either is a strict path
    prefix of the other. Refs present in both sets never conflict.
    """
    existing_set = set(existing)
    incoming_set = set(incoming)
    conflicts: dict[str, str] = {}

    for name in sorted(incoming_set - existing_set):
        for prefix in _ancestors(name):
            if prefix in existing_set and prefix not in incoming_set:
                conflicts.setdefault(prefix, name)

    for name in sorted(existing_set - incoming_set):
        for prefix in _ancestors(name):
            if prefix in incoming_set:
                conflicts.setdefault(name, prefix)
                break

    return conflicts


@dataclasses.dataclass(frozen=True, slots=True)
class RefUpdatePlan:
    """Classification of every ref touched by one incremental update."""

    created: frozenset[str]
    updated: frozenset[str]
    unchanged: frozenset[str]
    stale: frozenset[str]
    conflicts: dict[str, str]

    @property
    def deletions(self) -> list[str]:
        """Return refs to delete before fetching, colliding refs first."""
        ordered = sorted(self.conflicts)
        ordered.extend(sorted(self.stale - set(self.conflicts)))
        return ordered

    @property
    def is_noop(self) -> bool:
        """Return True when the remote and local ref sets already agree."""
        return not (self.created or self.updated or self.stale)

    def summary(self) -> dict[str, int]:
        """Return per-category counts for logging."""
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "pruned": len(self.stale),
            "conflicts": len(self.conflicts),
        }


def plan_ref_update(
    local: cabc.Mapping[str, str], remote: cabc.Mapping[str, str]
) -> RefUpdatePlan:
    """Compare local and remote refs and plan the update.

    Moves are not distinguished by fast-forwardness: any changed target is
    an update and is applied by force.
    """
    local_names = set(local)
    remote_names = set(remote)
    shared = local_names & remote_names
    return RefUpdatePlan(
        created=frozenset(remote_names - local_names),
        updated=frozenset(name for name in shared if local[name] != remote[name]),
        unchanged=frozenset(name for name in shared if local[name] == remote[name]),
        stale=frozenset(local_names - remote_names),
        conflicts=find_namespace_conflicts(local_names, remote_names),
    )


__all__ = [
    "RefMap",
    "RefUpdatePlan",
    "find_namespace_conflicts",
    "parse_for_each_ref",
    "parse_ls_remote",
    "plan_ref_update",
]
