"""Unit tests for the actionsync command line."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from actionsync import cli
from actionsync.cache import CacheDirectory
from actionsync.pull import PullService
from actionsync.releases import GitHubEnterpriseReleaseClient
from tests.unit.pull_test_helpers import (
    BUNDLE_NAME,
    ENTERPRISE_URL,
    MAIN_RELEASE,
    REPOSITORY,
    modify_upstream,
)

if typ.TYPE_CHECKING:
    from actionsync.config import PullConfig
    from tests.unit.pull_test_helpers import (
        FakeReleaseAPI,
        UpstreamCommits,
        UpstreamRepo,
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ACTIONSYNC_CACHE_DIR",
        "ACTIONSYNC_SOURCE_URL",
        "ACTIONSYNC_SOURCE_REPOSITORY",
        "ACTIONSYNC_SOURCE_TOKEN",
        "ACTIONSYNC_DOWNLOAD_ATTEMPTS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def local_service(
    monkeypatch: pytest.MonkeyPatch,
    upstream: UpstreamRepo,
    release_api: FakeReleaseAPI,
) -> list[PullConfig]:
    """Route the CLI's pull service to the local upstream and fake API."""
    configs: list[PullConfig] = []

    def _from_config(config: PullConfig) -> PullService:
        configs.append(config)
        client = GitHubEnterpriseReleaseClient(
            ENTERPRISE_URL, http_client=release_api.http_client()
        )
        return PullService(
            CacheDirectory(config.cache_dir), upstream.url, client, REPOSITORY
        )

    monkeypatch.setattr(PullService, "from_config", staticmethod(_from_config))
    return configs


class TestPullCommand:
    """Tests for the ``pull`` command."""

    def test_first_run_clones_then_later_runs_update(
        self,
        tmp_path: Path,
        upstream: UpstreamRepo,
        upstream_commits: UpstreamCommits,
        local_service: list[PullConfig],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Without ``--fresh`` the mirror is created once, then updated."""
        cache_dir = tmp_path / "cache"

        assert cli.pull(cache_dir=cache_dir, source_url=ENTERPRISE_URL) == 0
        first = capsys.readouterr().out
        modify_upstream(upstream, upstream_commits)
        assert cli.pull(cache_dir=cache_dir, source_url=ENTERPRISE_URL) == 0
        second = capsys.readouterr().out

        assert "3 assets downloaded, 0 already up to date" in first
        assert "1 assets downloaded, 3 already up to date" in second
        assert (cache_dir / "releases" / MAIN_RELEASE / BUNDLE_NAME).is_file()
        assert CacheDirectory(cache_dir).has_mirror()

    def test_update_without_mirror_fails(
        self,
        tmp_path: Path,
        local_service: list[PullConfig],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """``--no-fresh`` on an empty cache exits non-zero."""
        code = cli.pull(cache_dir=tmp_path / "cache", fresh=False)

        assert code == 1
        assert "No mirror found" in capsys.readouterr().err
        assert not (tmp_path / "cache" / "git").exists()

    def test_fresh_over_existing_mirror_fails(
        self,
        tmp_path: Path,
        upstream_commits: UpstreamCommits,
        local_service: list[PullConfig],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """``--fresh`` refuses to replace an existing mirror."""
        cache_dir = tmp_path / "cache"
        assert cli.pull(cache_dir=cache_dir) == 0

        assert cli.pull(cache_dir=cache_dir, fresh=True) == 1
        assert "already exists" in capsys.readouterr().err

    def test_flags_override_environment(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        upstream_commits: UpstreamCommits,
        local_service: list[PullConfig],
    ) -> None:
        """Explicit flags win over ``ACTIONSYNC_*`` variables."""
        monkeypatch.setenv("ACTIONSYNC_CACHE_DIR", str(tmp_path / "env-cache"))
        monkeypatch.setenv("ACTIONSYNC_SOURCE_REPOSITORY", "octo/from-env")
        monkeypatch.setenv("ACTIONSYNC_SOURCE_TOKEN", "env-token")

        cli.pull(
            cache_dir=tmp_path / "flag-cache",
            source_url=ENTERPRISE_URL,
            source_repository=REPOSITORY,
        )

        (config,) = local_service
        assert config.cache_dir == tmp_path / "flag-cache"
        assert config.source_url == ENTERPRISE_URL
        assert config.repository == REPOSITORY
        assert config.token == "env-token"

    def test_invalid_configuration_fails(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Configuration errors exit non-zero without a traceback."""
        monkeypatch.setenv("ACTIONSYNC_DOWNLOAD_ATTEMPTS", "0")

        assert cli.pull(cache_dir=tmp_path / "cache") == 1
        assert "ACTIONSYNC_DOWNLOAD_ATTEMPTS" in capsys.readouterr().err

    def test_unknown_log_level_is_reported(
        self,
        tmp_path: Path,
        local_service: list[PullConfig],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An unknown level falls back to INFO with a notice."""
        cli.pull(cache_dir=tmp_path / "cache", fresh=False, log_level="chatty")

        assert "Unknown log level 'chatty'" in capsys.readouterr().err


def test_build_config_ignores_unset_flags(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Flags left at ``None`` keep the environment's values."""
    monkeypatch.setenv("ACTIONSYNC_SOURCE_URL", ENTERPRISE_URL)

    config = cli._build_config(
        cache_dir=None,
        source_url=None,
        source_repository="octo/action",
        source_token=None,
    )

    assert config.source_url == ENTERPRISE_URL
    assert config.repository == "octo/action"
    assert config.cache_dir == Path("cache")
