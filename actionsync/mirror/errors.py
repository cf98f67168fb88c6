"""Errors raised while maintaining the bare git mirror."""

from __future__ import annotations

from actionsync.errors import ActionSyncError


class MirrorError(ActionSyncError):
    """Base class for mirror errors."""


class MirrorInitError(MirrorError):
    """Raised when a fresh mirror clone cannot be created."""

    @classmethod
    def not_empty(cls, path: object) -> MirrorInitError:
        """Return an error for a fresh clone into an occupied location."""
        return cls(
            f"Cannot create a fresh mirror: {path} already exists. "
            "Run an incremental pull or remove the cache."
        )

    @classmethod
    def clone_failed(cls, detail: str) -> MirrorInitError:
        """Return an error for a failed ``git clone --mirror``."""
        return cls(f"Mirror clone failed: {detail}")


class NoMirrorError(MirrorError):
    """Raised when an incremental sync finds no existing mirror."""

    def __init__(self, path: object) -> None:
        """Initialise with the location that was expected to hold a mirror."""
        self.path = path
        super().__init__(
            f"No mirror found at {path}; run a fresh pull to create one first."
        )


class RefConflictError(MirrorError):
    """Raised when a ref occupying a colliding namespace slot cannot be removed."""

    def __init__(self, ref: str, blocking: str, detail: str) -> None:
        """Initialise with the blocking ref, the incoming ref and git's output."""
        self.ref = ref
        self.blocking = blocking
        super().__init__(
            f"Cannot write {ref}: removing conflicting ref {blocking} failed: {detail}"
        )


class MirrorSyncError(MirrorError):
    """Raised when an incremental update of the mirror fails."""

    @classmethod
    def git_failed(cls, operation: str, detail: str) -> MirrorSyncError:
        """Return an error for a failed git command during an update."""
        return cls(f"Mirror update failed during {operation}: {detail}")


class MirrorReadError(MirrorError):
    """Raised when the local mirror cannot be read."""

    @classmethod
    def unreadable(cls, path: object, detail: str) -> MirrorReadError:
        """Return an error for a mirror that cannot be opened or listed."""
        return cls(f"Cannot read mirror at {path}: {detail}")

    @classmethod
    def bad_ref(cls, ref: str, detail: str) -> MirrorReadError:
        """Return an error for a ref whose target cannot be resolved."""
        return cls(f"Cannot resolve {ref} to a commit: {detail}")
