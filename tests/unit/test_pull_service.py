"""Unit tests for the pull service orchestration."""

from __future__ import annotations

import asyncio
import logging
import threading
import typing as typ

import httpx
import pytest

from actionsync.config import PullConfig
from actionsync.mirror import NoMirrorError
from actionsync.observability import PullEventType
from actionsync.pull import PullService
from actionsync.releases import (
    AssetDownloadError,
    GitHubEnterpriseReleaseClient,
)
from tests.unit.pull_test_helpers import (
    BUNDLE_NAME,
    ENTERPRISE_URL,
    MAIN_RELEASE,
    REPOSITORY,
    V1_RELEASE,
    V4_RELEASE,
    modify_upstream,
    read_tree,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from actionsync.cache import CacheDirectory
    from tests.unit.pull_test_helpers import (
        FakeReleaseAPI,
        UpstreamCommits,
        UpstreamRepo,
    )


class _RecordingClient(GitHubEnterpriseReleaseClient):
    """Enterprise client that records whether it was closed."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        super().__init__(ENTERPRISE_URL, http_client=http_client)
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True
        await super().aclose()


def _service(
    cache: CacheDirectory, upstream: UpstreamRepo, release_api: FakeReleaseAPI
) -> PullService:
    client = GitHubEnterpriseReleaseClient(
        ENTERPRISE_URL, http_client=release_api.http_client()
    )
    return PullService(cache, upstream.url, client, REPOSITORY, git_timeout_s=60.0)


class TestPull:
    """Tests for PullService.pull."""

    @pytest.mark.asyncio
    async def test_fresh_pull_populates_cache(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        upstream_commits: UpstreamCommits,
        release_api: FakeReleaseAPI,
    ) -> None:
        """A fresh pull mirrors every ref and only the needed releases."""
        service = _service(cache, upstream, release_api)

        result = await service.pull(fresh=True)

        assert service.mirror.references() == upstream.refs()
        assert read_tree(cache.root / "releases") == {
            f"{MAIN_RELEASE}/{BUNDLE_NAME}": b"main bundle contents",
            f"{V1_RELEASE}/{BUNDLE_NAME}": b"v1 bundle contents",
            f"{V1_RELEASE}/checksums.txt": b"abc123\n",
        }
        assert len(result.downloaded) == 3
        assert sorted(release_api.metadata_requests()) == [MAIN_RELEASE, V1_RELEASE]

    @pytest.mark.asyncio
    async def test_incremental_pull_fetches_only_new_assets(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        upstream_commits: UpstreamCommits,
        release_api: FakeReleaseAPI,
    ) -> None:
        """Cached assets are kept and newly required ones downloaded."""
        service = _service(cache, upstream, release_api)
        await service.pull(fresh=True)
        modify_upstream(upstream, upstream_commits)

        result = await service.pull(fresh=False)

        assert service.mirror.references() == upstream.refs()
        assert result.downloaded == [cache.asset_path(V4_RELEASE, BUNDLE_NAME)]
        assert len(result.skipped) == 3

    @pytest.mark.asyncio
    async def test_git_failure_skips_releases(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        release_api: FakeReleaseAPI,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Release caching never runs against a missing mirror."""
        service = _service(cache, upstream, release_api)

        with (
            caplog.at_level(logging.INFO, logger="actionsync"),
            pytest.raises(NoMirrorError),
        ):
            await service.pull(fresh=False)

        assert release_api.requests == []
        messages = [r.getMessage() for r in caplog.records]
        assert any(
            PullEventType.STAGE_FAILED in m and "stage=git" in m for m in messages
        )
        assert not any("stage=releases" in m for m in messages)

    @pytest.mark.asyncio
    async def test_release_failure_is_reported_after_git_succeeds(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        upstream_commits: UpstreamCommits,
        release_api: FakeReleaseAPI,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """The mirror stays updated when an asset cannot be cached."""
        release_api.failures[release_api.asset_id(MAIN_RELEASE, BUNDLE_NAME)] = [
            httpx.Response(403)
        ]
        service = _service(cache, upstream, release_api)

        with (
            caplog.at_level(logging.INFO, logger="actionsync"),
            pytest.raises(AssetDownloadError),
        ):
            await service.pull(fresh=True)

        assert service.mirror.references() == upstream.refs()
        messages = [r.getMessage() for r in caplog.records]
        assert any(
            PullEventType.STAGE_COMPLETED in m and "stage=git" in m for m in messages
        )
        assert any(
            PullEventType.STAGE_FAILED in m and "stage=releases" in m
            for m in messages
        )

    @pytest.mark.asyncio
    async def test_stage_completion_is_logged_with_counts(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        upstream_commits: UpstreamCommits,
        release_api: FakeReleaseAPI,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Completed stages carry their counters."""
        service = _service(cache, upstream, release_api)

        with caplog.at_level(logging.INFO, logger="actionsync"):
            await service.pull(fresh=True)

        completed = [
            r.getMessage()
            for r in caplog.records
            if PullEventType.STAGE_COMPLETED in r.getMessage()
        ]
        assert len(completed) == 2
        assert "releases=2" in completed[1]
        assert "downloaded=3" in completed[1]
        assert "skipped=0" in completed[1]

    @pytest.mark.asyncio
    async def test_cancelled_git_stage_lets_git_finish(
        self,
        cache: CacheDirectory,
        upstream: UpstreamRepo,
        release_api: FakeReleaseAPI,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Cancellation returns at once while the git work runs to its end."""
        service = _service(cache, upstream, release_api)
        started = threading.Event()
        release = threading.Event()
        finished = threading.Event()

        def _slow_synchronize(*, fresh: bool) -> None:
            started.set()
            release.wait(5)
            finished.set()

        monkeypatch.setattr(service.mirror, "synchronize", _slow_synchronize)

        task = asyncio.create_task(service.synchronize_git(fresh=True))
        assert await asyncio.to_thread(started.wait, 5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not finished.is_set()
        release.set()
        assert await asyncio.to_thread(finished.wait, 5)


class TestFromConfig:
    """Tests for PullService.from_config and client ownership."""

    @pytest.mark.asyncio
    async def test_supplied_client_is_not_closed(self, tmp_path: Path) -> None:
        """Callers keep ownership of clients they pass in."""
        transport = httpx.MockTransport(lambda _: httpx.Response(404))
        client = _RecordingClient(httpx.AsyncClient(transport=transport))
        service = PullService.from_config(
            PullConfig(cache_dir=tmp_path), release_client=client
        )

        await service.aclose()

        assert not client.closed

    @pytest.mark.asyncio
    async def test_built_client_matches_source(self, tmp_path: Path) -> None:
        """Without a client one is built for the source host and owned."""
        service = PullService.from_config(
            PullConfig(cache_dir=tmp_path, source_url=ENTERPRISE_URL)
        )

        release_client = service._release_client
        assert isinstance(release_client, GitHubEnterpriseReleaseClient)
        assert release_client.api_url == f"{ENTERPRISE_URL}/api/v3"
        await service.aclose()
        assert service._owns_client
