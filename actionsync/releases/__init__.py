"""Relevant-release discovery and release asset caching.

The resolver reads the mirror to find which releases the maintained refs
depend on; the asset cache downloads those releases' assets through a
:class:`ReleaseClient` for either github.com or GitHub Enterprise Server.
"""

from actionsync.releases.assets import FetchResult, ReleaseAssetCache
from actionsync.releases.client import (
    GitHubDotComReleaseClient,
    GitHubEnterpriseReleaseClient,
    ReleaseClient,
    ReleaseClientConfig,
    build_release_client,
)
from actionsync.releases.errors import (
    AssetDownloadError,
    BranchConfigMissing,
    ReleaseAPIError,
    ReleaseError,
    ReleaseNotFoundError,
    ReleaseResponseShapeError,
)
from actionsync.releases.models import Release, ReleaseAsset
from actionsync.releases.relevance import (
    DEFAULT_FORMATS,
    DEFAULT_REF_PATTERN,
    BranchConfigFormat,
    ReleaseRelevanceResolver,
)

__all__ = [
    "DEFAULT_FORMATS",
    "DEFAULT_REF_PATTERN",
    "AssetDownloadError",
    "BranchConfigFormat",
    "BranchConfigMissing",
    "FetchResult",
    "GitHubDotComReleaseClient",
    "GitHubEnterpriseReleaseClient",
    "Release",
    "ReleaseAPIError",
    "ReleaseAsset",
    "ReleaseAssetCache",
    "ReleaseClient",
    "ReleaseClientConfig",
    "ReleaseError",
    "ReleaseNotFoundError",
    "ReleaseRelevanceResolver",
    "ReleaseResponseShapeError",
    "build_release_client",
]
