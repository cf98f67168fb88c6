r"""On-disk cache layout for the mirrored action and its release assets.

The cache root holds two disjoint trees::

    {root}/git/                      bare mirror of the action repository
    {root}/releases/{tag}/{name}     one file per release asset

The mirror is written only by :class:`actionsync.mirror.MirrorSync` and the
release tree only by :class:`actionsync.releases.ReleaseAssetCache`.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

from actionsync.errors import ActionSyncError

_GIT_DIRECTORY = "git"
_RELEASES_DIRECTORY = "releases"
_FORBIDDEN_SEGMENTS = frozenset({"", ".", ".."})
_TAG_ESCAPES = str.maketrans({"%": "%25", "/": "%2F", "\\": "%5C"})


class CachePathError(ActionSyncError):
    """Raised when a release tag or asset name cannot be mapped to a path."""

    @classmethod
    def unsafe_segment(cls, kind: str, value: str) -> CachePathError:
        """Return an error for a tag or file name that would escape the cache."""
        return cls(f"Refusing to use {kind} {value!r} as a cache path segment")


class CacheLocation(typ.Protocol):
    """Paths the pull components need from the cache."""

    def git_path(self) -> Path:
        """Return the root of the bare mirror."""
        ...

    def asset_path(self, tag: str, name: str) -> Path:
        """Return the cached location of asset ``name`` of release ``tag``."""
        ...


def _checked_segment(kind: str, value: str) -> str:
    if value in _FORBIDDEN_SEGMENTS or "/" in value or "\\" in value:
        raise CachePathError.unsafe_segment(kind, value)
    return value


class CacheDirectory:
    """Default :class:`CacheLocation` rooted at a local directory."""

    def __init__(self, root: Path) -> None:
        """Initialise the cache handle; nothing is created until ``ensure``."""
        self.root = root

    def __repr__(self) -> str:
        """Return a debugging representation naming the cache root."""
        return f"CacheDirectory({str(self.root)!r})"

    def ensure(self) -> None:
        """Create the cache root if it does not exist."""
        self.root.mkdir(parents=True, exist_ok=True)

    def git_path(self) -> Path:
        """Return the root of the bare mirror."""
        return self.root / _GIT_DIRECTORY

    def asset_path(self, tag: str, name: str) -> Path:
        """Return the cached location of asset ``name`` of release ``tag``.

        Separators and ``%`` in ``tag`` are percent-encoded, so tags such as
        ``release/2024`` map to a single directory.

        Raises
        ------
        CachePathError
            If ``tag`` or ``name`` is empty or a dot segment, or ``name``
            contains a path separator.

        """
        return (
            self.root
            / _RELEASES_DIRECTORY
            / _checked_segment("release tag", tag.translate(_TAG_ESCAPES))
            / _checked_segment("asset name", name)
        )

    def has_mirror(self) -> bool:
        """Return True when the git location already holds anything."""
        git_path = self.git_path()
        if not git_path.exists():
            return False
        return not git_path.is_dir() or any(git_path.iterdir())


__all__ = ["CacheDirectory", "CacheLocation", "CachePathError"]
