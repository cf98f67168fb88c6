"""Pull the action repository and its relevant releases into the cache.

:class:`PullService` wires the cache handle, the clone URL and the release
client into the three pull components and sequences them:

1. :class:`~actionsync.mirror.MirrorSync` clones or updates the bare mirror.
2. :class:`~actionsync.releases.ReleaseRelevanceResolver` reads the mirror
   and names the releases its maintained refs depend on.
3. :class:`~actionsync.releases.ReleaseAssetCache` downloads those
   releases' assets.

Usage
-----
>>> import asyncio
>>> from actionsync.config import PullConfig
>>> from actionsync.pull import PullService
>>>
>>> service = PullService.from_config(PullConfig())
>>> # asyncio.run(service.pull(fresh=True))

"""

from __future__ import annotations

import asyncio
import datetime as dt
import time
import typing as typ

from actionsync.cache import CacheDirectory
from actionsync.mirror import MirrorSync
from actionsync.mirror.sync import DEFAULT_GIT_TIMEOUT_S
from actionsync.observability import PullEventLogger, PullStage
from actionsync.releases import (
    ReleaseAssetCache,
    ReleaseRelevanceResolver,
    build_release_client,
)
from actionsync.releases.assets import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_CONCURRENCY

if typ.TYPE_CHECKING:
    from actionsync.cache import CacheLocation
    from actionsync.config import PullConfig
    from actionsync.releases import FetchResult, ReleaseClient


def _elapsed_since(started: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.monotonic() - started)


class PullService:
    """Entry points used by the command line to pull into the cache.

    The service holds only references to its collaborators and may be
    rebuilt for every invocation.
    """

    def __init__(  # noqa: PLR0913
        self,
        cache: CacheLocation,
        clone_url: str,
        release_client: ReleaseClient,
        repository: str,
        *,
        git_token: str | None = None,
        git_timeout_s: float = DEFAULT_GIT_TIMEOUT_S,
        download_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        download_attempts: int = DEFAULT_MAX_ATTEMPTS,
        resolver: ReleaseRelevanceResolver | None = None,
        event_logger: PullEventLogger | None = None,
        owns_client: bool = False,
    ) -> None:
        """Initialise the service and its pull components."""
        self._repository = repository
        self._release_client = release_client
        self._owns_client = owns_client
        self._mirror = MirrorSync(
            cache, clone_url, token=git_token, timeout_s=git_timeout_s
        )
        self._resolver = resolver or ReleaseRelevanceResolver(cache)
        self._assets = ReleaseAssetCache(
            cache,
            release_client,
            repository,
            max_concurrency=download_concurrency,
            max_attempts=download_attempts,
        )
        self._event_logger = event_logger or PullEventLogger()

    @classmethod
    def from_config(
        cls,
        config: PullConfig,
        *,
        release_client: ReleaseClient | None = None,
    ) -> PullService:
        """Build a service from configuration.

        A release client matching the source host is created (and owned by
        the service) unless one is supplied.
        """
        owns_client = release_client is None
        client = release_client or build_release_client(
            config.source_url,
            token=config.token,
            timeout_s=config.http_timeout_s,
        )
        return cls(
            CacheDirectory(config.cache_dir),
            config.clone_url,
            client,
            config.repository,
            git_token=config.token,
            git_timeout_s=config.git_timeout_s,
            download_concurrency=config.download_concurrency,
            download_attempts=config.download_attempts,
            owns_client=owns_client,
        )

    @property
    def mirror(self) -> MirrorSync:
        """Return the mirror component."""
        return self._mirror

    async def aclose(self) -> None:
        """Close the release client when the service created it."""
        if self._owns_client:
            await self._release_client.aclose()

    async def synchronize_git(self, *, fresh: bool) -> None:
        """Clone (``fresh=True``) or update the bare mirror.

        The blocking git work runs in a worker thread; git itself enforces
        the configured deadline. Cancelling the awaiting task does not stop
        a git process that is already running: it keeps going until it
        finishes or its deadline kills it, and ``asyncio.run`` waits for
        that worker thread before returning.
        """
        started = time.monotonic()
        self._event_logger.log_stage_started(PullStage.GIT, self._repository)
        try:
            await asyncio.to_thread(self._mirror.synchronize, fresh=fresh)
        except Exception as exc:
            self._event_logger.log_stage_failed(
                PullStage.GIT, self._repository, exc, _elapsed_since(started)
            )
            raise
        self._event_logger.log_stage_completed(
            PullStage.GIT, self._repository, _elapsed_since(started), fresh=int(fresh)
        )

    async def synchronize_releases(self) -> FetchResult:
        """Resolve the relevant releases and cache their assets."""
        started = time.monotonic()
        self._event_logger.log_stage_started(PullStage.RELEASES, self._repository)
        try:
            tags = await asyncio.to_thread(self._resolver.resolve)
            result = await self._assets.fetch(tags)
        except Exception as exc:
            self._event_logger.log_stage_failed(
                PullStage.RELEASES, self._repository, exc, _elapsed_since(started)
            )
            raise
        self._event_logger.log_stage_completed(
            PullStage.RELEASES,
            self._repository,
            _elapsed_since(started),
            releases=len(tags),
            downloaded=len(result.downloaded),
            skipped=len(result.skipped),
        )
        return result

    async def pull(self, *, fresh: bool) -> FetchResult:
        """Synchronise the mirror, then the releases it depends on."""
        await self.synchronize_git(fresh=fresh)
        return await self.synchronize_releases()


__all__ = ["PullService"]
