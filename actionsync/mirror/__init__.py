"""Bare git mirror of the upstream action repository.

Usage
-----
Create the mirror on first run, then keep it current::

    from actionsync.cache import CacheDirectory
    from actionsync.mirror import MirrorSync

    mirror = MirrorSync(CacheDirectory(cache_root), clone_url)
    mirror.synchronize(fresh=True)
    mirror.synchronize(fresh=False)

"""

from actionsync.mirror.errors import (
    MirrorError,
    MirrorInitError,
    MirrorReadError,
    MirrorSyncError,
    NoMirrorError,
    RefConflictError,
)
from actionsync.mirror.refs import RefUpdatePlan, plan_ref_update
from actionsync.mirror.sync import MirrorSync, open_mirror, read_local_refs

__all__ = [
    "MirrorError",
    "MirrorInitError",
    "MirrorReadError",
    "MirrorSync",
    "MirrorSyncError",
    "NoMirrorError",
    "RefConflictError",
    "RefUpdatePlan",
    "open_mirror",
    "plan_ref_update",
    "read_local_refs",
]
