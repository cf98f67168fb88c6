"""Unit-test fixtures for mirror, release and pull tests."""

from __future__ import annotations

import typing as typ

import pytest

from actionsync.cache import CacheDirectory
from tests.unit.pull_test_helpers import (
    FakeReleaseAPI,
    UpstreamCommits,
    UpstreamRepo,
    populate_upstream,
    standard_release_api,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def upstream(tmp_path: Path) -> UpstreamRepo:
    """Return an empty bare upstream repository."""
    return UpstreamRepo(tmp_path / "upstream.git")


@pytest.fixture
def upstream_commits(upstream: UpstreamRepo) -> UpstreamCommits:
    """Populate ``upstream`` with the standard refs and return their commits."""
    return populate_upstream(upstream)


@pytest.fixture
def cache(tmp_path: Path) -> CacheDirectory:
    """Return an empty, existing cache directory handle."""
    directory = CacheDirectory(tmp_path / "cache")
    directory.ensure()
    return directory


@pytest.fixture
def release_api() -> FakeReleaseAPI:
    """Return a fake release API publishing the standard releases."""
    return standard_release_api()
