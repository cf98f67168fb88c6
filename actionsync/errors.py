"""Base errors shared by every actionsync component."""

from __future__ import annotations


class ActionSyncError(Exception):
    """Base class for all actionsync errors.

    The command line catches this type to turn failures into a non-zero exit
    status without a traceback.
    """


class ActionSyncConfigError(ActionSyncError):
    """Raised when pull configuration is missing or malformed."""

    @classmethod
    def invalid_number(cls, env_var: str, raw: str) -> ActionSyncConfigError:
        """Return an error for an environment variable that is not a number."""
        return cls(f"{env_var} must be a number, got: {raw!r}")

    @classmethod
    def not_positive(cls, env_var: str, value: float) -> ActionSyncConfigError:
        """Return an error for a numeric setting that must be positive."""
        return cls(f"{env_var} must be positive, got: {value}")

    @classmethod
    def invalid_repository(cls, slug: str) -> ActionSyncConfigError:
        """Return an error for a repository that is not ``owner/name``."""
        return cls(f"Invalid repository slug: expected 'owner/name', got {slug!r}")

    @classmethod
    def invalid_url(cls, url: str) -> ActionSyncConfigError:
        """Return an error for a source URL without scheme or host."""
        return cls(f"Source URL must be an absolute http(s) URL, got: {url!r}")
