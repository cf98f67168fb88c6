r"""Download release assets into the cache, skipping up-to-date copies.

An asset is up to date when a file exists at its cache path with exactly the
byte size the release API reports. Nothing else about the content is
checked. Downloads stream into a temporary file beside the final path and
are renamed into place only once the full expected size has been written,
so a cached path never holds a partial asset.

Usage
-----
>>> import asyncio
>>> from pathlib import Path
>>> from actionsync.cache import CacheDirectory
>>> from actionsync.releases import GitHubDotComReleaseClient, ReleaseAssetCache
>>>
>>> cache = ReleaseAssetCache(
...     CacheDirectory(Path("cache")),
...     GitHubDotComReleaseClient(),
...     "github/codeql-action",
... )
>>> # asyncio.run(cache.fetch({"codeql-bundle-20200826"}))

"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import dataclasses
import logging
import os
import tempfile
import typing as typ
from pathlib import Path

from actionsync.cache import CachePathError

from .errors import AssetDownloadError, ReleaseAPIError, ReleaseError

if typ.TYPE_CHECKING:
    from actionsync.cache import CacheLocation

    from .client import ReleaseClient
    from .models import ReleaseAsset

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_S = 1.0


@dataclasses.dataclass(slots=True)
class FetchResult:
    """Cache paths written and left untouched by one ``fetch`` call."""

    downloaded: list[Path] = dataclasses.field(default_factory=list)
    skipped: list[Path] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True, slots=True)
class _AssetJob:
    tag: str
    asset: ReleaseAsset
    path: Path


def _is_up_to_date(path: Path, expected_size: int) -> bool:
    try:
        return path.is_file() and path.stat().st_size == expected_size
    except FileNotFoundError:
        return False


def _open_partial(path: Path) -> typ.BinaryIO:
    path.parent.mkdir(parents=True, exist_ok=True)
    return tempfile.NamedTemporaryFile(  # noqa: SIM115 - closed by the caller
        "wb",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".partial",
        delete=False,
    )


class ReleaseAssetCache:
    """Keep the assets of the required releases present in the cache."""

    def __init__(  # noqa: PLR0913
        self,
        cache: CacheLocation,
        client: ReleaseClient,
        repository: str,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_s: float = DEFAULT_BACKOFF_S,
    ) -> None:
        """Initialise the asset cache.

        Parameters
        ----------
        cache
            Cache handle providing the asset paths.
        client
            Release API client for the upstream host.
        repository
            Upstream repository slug (``owner/name``).
        max_concurrency
            Upper bound on simultaneous downloads.
        max_attempts
            Attempts per asset before a transient failure is surfaced.
        backoff_s
            Base delay between attempts; attempt ``n`` waits ``n * backoff_s``.

        """
        if max_concurrency < 1 or max_attempts < 1:
            msg = "max_concurrency and max_attempts must be at least 1"
            raise ValueError(msg)
        self._cache = cache
        self._client = client
        self._repository = repository
        self._max_concurrency = max_concurrency
        self._max_attempts = max_attempts
        self._backoff_s = backoff_s
        self._locks: dict[Path, asyncio.Lock] = {}

    async def fetch(self, tags: cabc.Iterable[str]) -> FetchResult:
        """Ensure every asset of every release in ``tags`` is cached.

        Every release and asset is attempted even after a failure; failures
        are logged and the first one is raised once all work has settled.

        Raises
        ------
        ReleaseNotFoundError
            If a tag has no published release.
        AssetDownloadError
            If an asset could not be fully written.
        CachePathError
            If a tag or asset name cannot be used as a cache path.

        """
        errors: list[Exception] = []
        jobs: list[_AssetJob] = []
        for tag in sorted(set(tags)):
            try:
                release = await self._client.get_release_by_tag(self._repository, tag)
                release_jobs = [
                    _AssetJob(
                        tag=tag,
                        asset=asset,
                        path=self._cache.asset_path(tag, asset.name),
                    )
                    for asset in release.assets
                ]
            except (ReleaseError, CachePathError) as exc:
                logger.error("Cannot load release %s: %s", tag, exc)  # noqa: TRY400
                errors.append(exc)
                continue
            logger.info("Release %s has %d assets", tag, len(release_jobs))
            jobs.extend(release_jobs)

        semaphore = asyncio.Semaphore(self._max_concurrency)
        outcomes = await asyncio.gather(
            *(self._sync_asset(job, semaphore) for job in jobs),
            return_exceptions=True,
        )

        result = FetchResult()
        for job, outcome in zip(jobs, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(
                    "Failed to cache %s of release %s",
                    job.asset.name,
                    job.tag,
                    exc_info=outcome,
                )
                errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome:
                result.downloaded.append(job.path)
            else:
                result.skipped.append(job.path)

        if errors:
            raise errors[0]
        return result

    def _lock_for(self, path: Path) -> asyncio.Lock:
        return self._locks.setdefault(path, asyncio.Lock())

    async def _sync_asset(self, job: _AssetJob, semaphore: asyncio.Semaphore) -> bool:
        """Download ``job`` unless it is up to date; return True if downloaded."""
        async with self._lock_for(job.path):
            if await asyncio.to_thread(_is_up_to_date, job.path, job.asset.size):
                logger.info(
                    "%s of release %s is up to date, skipping", job.asset.name, job.tag
                )
                return False
            async with semaphore:
                await self._download_with_retries(job)
            return True

    async def _download_with_retries(self, job: _AssetJob) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                await self._download(job)
            except AssetDownloadError as exc:
                if not exc.transient or attempt == self._max_attempts:
                    raise
                delay = self._backoff_s * attempt
                logger.warning(
                    "Attempt %d/%d for %s failed (%s); retrying in %.1fs",
                    attempt,
                    self._max_attempts,
                    job.asset.name,
                    exc.reason,
                    delay,
                )
                await asyncio.sleep(delay)
            else:
                return

    async def _download(self, job: _AssetJob) -> None:
        logger.info(
            "Downloading %s of release %s (%d bytes)",
            job.asset.name,
            job.tag,
            job.asset.size,
        )
        try:
            handle = await asyncio.to_thread(_open_partial, job.path)
        except OSError as exc:
            raise AssetDownloadError.storage(job.tag, job.asset.name, str(exc)) from exc

        partial = Path(handle.name)
        committed = False
        try:
            written = 0
            try:
                chunks = self._client.download_asset(self._repository, job.asset.id)
                async with contextlib.aclosing(chunks):
                    async for chunk in chunks:
                        await asyncio.to_thread(handle.write, chunk)
                        written += len(chunk)
            finally:
                await asyncio.to_thread(handle.close)
            if written != job.asset.size:
                raise AssetDownloadError.size_mismatch(
                    job.tag, job.asset.name, expected=job.asset.size, written=written
                )
            await asyncio.to_thread(os.replace, partial, job.path)
            committed = True
        except ReleaseAPIError as exc:
            raise AssetDownloadError.from_api_error(
                job.tag, job.asset.name, exc
            ) from exc
        except OSError as exc:
            raise AssetDownloadError.storage(job.tag, job.asset.name, str(exc)) from exc
        finally:
            if not committed:
                partial.unlink(missing_ok=True)


__all__ = [
    "DEFAULT_BACKOFF_S",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_CONCURRENCY",
    "FetchResult",
    "ReleaseAssetCache",
]
