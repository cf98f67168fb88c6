"""Errors raised while resolving and caching release assets."""

from __future__ import annotations

from actionsync.errors import ActionSyncError

_TRANSIENT_STATUS_THRESHOLD = 500


class ReleaseError(ActionSyncError):
    """Base class for release resolution and caching errors."""


class BranchConfigMissing(ReleaseError):  # noqa: N818 - name mirrors the condition
    """A maintenance ref has no usable release-dependency configuration.

    Resolution absorbs this condition: the ref is skipped with a warning.
    """

    def __init__(self, ref: str, reason: str) -> None:
        """Initialise with the ref and a description of what is wrong."""
        self.ref = ref
        self.reason = reason
        super().__init__(f"{ref}: {reason}")

    @classmethod
    def absent(cls, ref: str, paths: tuple[str, ...]) -> BranchConfigMissing:
        """Return the condition for a ref carrying none of the config files."""
        return cls(ref, f"none of {', '.join(paths)} present")

    @classmethod
    def not_a_commit(cls, ref: str, detail: str) -> BranchConfigMissing:
        """Return the condition for a ref that does not point at a commit."""
        return cls(ref, f"not a commit: {detail}")

    @classmethod
    def unparsable(cls, ref: str, path: str, detail: str) -> BranchConfigMissing:
        """Return the condition for a config file that cannot be decoded."""
        return cls(ref, f"cannot parse {path}: {detail}")


class ReleaseNotFoundError(ReleaseError):
    """Raised when a resolved release tag has no published release."""

    def __init__(self, repository: str, tag: str) -> None:
        """Initialise with the repository slug and the missing tag."""
        self.repository = repository
        self.tag = tag
        super().__init__(f"Release {tag!r} not found in {repository}")


class ReleaseAPIError(ReleaseError):
    """Raised when the release API returns an error or cannot be reached.

    Attributes
    ----------
    status_code
        HTTP status code of the failing response, when there was one.
    transient
        Whether retrying the same request may succeed.

    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        """Initialise with a message, optional status code and retry hint."""
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, url: str) -> ReleaseAPIError:
        """Return an error for a non-2xx HTTP response."""
        return cls(
            f"Release API HTTP {status_code} for {url}",
            status_code=status_code,
            transient=status_code >= _TRANSIENT_STATUS_THRESHOLD,
        )

    @classmethod
    def timeout(cls, url: str) -> ReleaseAPIError:
        """Return an error for a request that timed out."""
        return cls(f"Release API request timed out: {url}", transient=True)

    @classmethod
    def network_error(cls, url: str, detail: str) -> ReleaseAPIError:
        """Return an error for a transport failure."""
        return cls(f"Release API request failed for {url}: {detail}", transient=True)


class ReleaseResponseShapeError(ReleaseError):
    """Raised when release metadata does not match the expected shape."""

    @classmethod
    def invalid(cls, tag: str, detail: str) -> ReleaseResponseShapeError:
        """Return an error for undecodable release metadata."""
        return cls(f"Release metadata for {tag!r} is malformed: {detail}")


class AssetDownloadError(ReleaseError):
    """Raised when an asset cannot be fully written to the cache.

    Attributes
    ----------
    transient
        Whether another attempt at the same download may succeed.

    """

    def __init__(
        self, tag: str, name: str, reason: str, *, transient: bool = False
    ) -> None:
        """Initialise with the release tag, asset name and failure reason."""
        self.tag = tag
        self.name = name
        self.reason = reason
        self.transient = transient
        super().__init__(f"Downloading {name} of release {tag} failed: {reason}")

    @classmethod
    def size_mismatch(
        cls, tag: str, name: str, *, expected: int, written: int
    ) -> AssetDownloadError:
        """Return an error for a download that ended at the wrong length."""
        return cls(
            tag, name, f"expected {expected} bytes, received {written}", transient=True
        )

    @classmethod
    def from_api_error(
        cls, tag: str, name: str, error: ReleaseAPIError
    ) -> AssetDownloadError:
        """Return an error wrapping a failed download request."""
        return cls(tag, name, str(error), transient=error.transient)

    @classmethod
    def storage(cls, tag: str, name: str, detail: str) -> AssetDownloadError:
        """Return an error for a cache file that cannot be written."""
        return cls(tag, name, f"cannot write cache file: {detail}")
