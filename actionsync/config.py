"""Configuration for pulling the action and its releases.

Usage
-----
Create a configuration with defaults:

>>> config = PullConfig()
>>> config.repository
'github/codeql-action'
>>> config.clone_url
'https://github.com/github/codeql-action'

Point at a GitHub Enterprise Server instance:

>>> PullConfig(source_url="https://ghe.example.com").is_github_dot_com
False

Or load from the ``ACTIONSYNC_*`` environment variables::

    config = PullConfig.from_env()

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import os
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from actionsync.errors import ActionSyncConfigError
from actionsync.releases.client import is_dot_com

DEFAULT_SOURCE_URL = "https://github.com"
DEFAULT_REPOSITORY = "github/codeql-action"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Parse a repository slug into owner and name.

    Raises
    ------
    ActionSyncConfigError
        If the slug is not in ``owner/name`` format.

    Examples
    --------
    >>> parse_repo_slug("github/codeql-action")
    ('github', 'codeql-action')

    """
    if slug.count("/") != 1:
        raise ActionSyncConfigError.invalid_repository(slug)
    owner, name = slug.split("/")
    if not owner or not name:
        raise ActionSyncConfigError.invalid_repository(slug)
    return owner, name


@dc.dataclass(frozen=True, slots=True)
class PullConfig:
    """Settings for one pull of the action repository and its releases.

    Attributes
    ----------
    cache_dir
        Root of the on-disk cache.
    source_url
        Base URL of the GitHub instance hosting the action.
    repository
        Action repository in ``owner/name`` form.
    token
        Optional access token for the source instance. Never shown in
        ``repr``.
    download_concurrency
        Maximum number of simultaneous asset downloads.
    download_attempts
        Attempts per asset before a transient download failure is surfaced.
    git_timeout_s
        Deadline for each git network operation.
    http_timeout_s
        Timeout for each release API request.

    """

    cache_dir: Path = dc.field(default_factory=lambda: Path("cache"))
    source_url: str = DEFAULT_SOURCE_URL
    repository: str = DEFAULT_REPOSITORY
    token: str | None = dc.field(default=None, repr=False)
    download_concurrency: int = 4
    download_attempts: int = 3
    git_timeout_s: float = 600.0
    http_timeout_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate the repository slug and source URL."""
        parse_repo_slug(self.repository)
        parts = urlsplit(self.source_url)
        if parts.scheme not in {"http", "https"} or not parts.hostname:
            raise ActionSyncConfigError.invalid_url(self.source_url)

    @property
    def is_github_dot_com(self) -> bool:
        """Return True when the source instance is github.com."""
        return is_dot_com(self.source_url)

    @property
    def clone_url(self) -> str:
        """Return the git clone URL.

        The URL never carries the token; git receives it separately.
        """
        parts = urlsplit(self.source_url.rstrip("/"))
        path = f"{parts.path}/{self.repository}"
        return urlunsplit((parts.scheme, parts.netloc, path, "", ""))

    @staticmethod
    def _parse_positive(
        env_var: str, default: float, cast: cabc.Callable[[str], float]
    ) -> float:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = cast(raw.strip())
        except ValueError as exc:
            raise ActionSyncConfigError.invalid_number(env_var, raw) from exc
        if value <= 0:
            raise ActionSyncConfigError.not_positive(env_var, value)
        return value

    @classmethod
    def from_env(cls) -> PullConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``ACTIONSYNC_CACHE_DIR``: cache root (default ``./cache``).
        - ``ACTIONSYNC_SOURCE_URL``: source instance (default github.com).
        - ``ACTIONSYNC_SOURCE_REPOSITORY``: ``owner/name`` of the action.
        - ``ACTIONSYNC_SOURCE_TOKEN``: optional access token.
        - ``ACTIONSYNC_DOWNLOAD_CONCURRENCY``: positive integer.
        - ``ACTIONSYNC_DOWNLOAD_ATTEMPTS``: positive integer.
        - ``ACTIONSYNC_GIT_TIMEOUT_S``: positive number of seconds.
        - ``ACTIONSYNC_HTTP_TIMEOUT_S``: positive number of seconds.

        Raises
        ------
        ActionSyncConfigError
            If a numeric variable is malformed or not positive, or the
            repository or source URL is invalid.

        """
        defaults = cls()
        cache_dir = os.environ.get("ACTIONSYNC_CACHE_DIR", "").strip()
        token = os.environ.get("ACTIONSYNC_SOURCE_TOKEN", "").strip()
        return cls(
            cache_dir=Path(cache_dir) if cache_dir else defaults.cache_dir,
            source_url=os.environ.get("ACTIONSYNC_SOURCE_URL", "").strip()
            or defaults.source_url,
            repository=os.environ.get("ACTIONSYNC_SOURCE_REPOSITORY", "").strip()
            or defaults.repository,
            token=token or None,
            download_concurrency=int(
                cls._parse_positive(
                    "ACTIONSYNC_DOWNLOAD_CONCURRENCY",
                    defaults.download_concurrency,
                    int,
                )
            ),
            download_attempts=int(
                cls._parse_positive(
                    "ACTIONSYNC_DOWNLOAD_ATTEMPTS", defaults.download_attempts, int
                )
            ),
            git_timeout_s=cls._parse_positive(
                "ACTIONSYNC_GIT_TIMEOUT_S", defaults.git_timeout_s, float
            ),
            http_timeout_s=cls._parse_positive(
                "ACTIONSYNC_HTTP_TIMEOUT_S", defaults.http_timeout_s, float
            ),
        )


__all__ = ["DEFAULT_REPOSITORY", "DEFAULT_SOURCE_URL", "PullConfig", "parse_repo_slug"]
