"""Command line for pulling the action and its releases into a cache.

Usage:
    actionsync pull                       # clone on first run, update after
    actionsync pull --no-fresh            # require an existing mirror
    actionsync pull --cache-dir ./cache --source-url https://ghe.example.com

Environment variables:
    ACTIONSYNC_CACHE_DIR, ACTIONSYNC_SOURCE_URL, ACTIONSYNC_SOURCE_REPOSITORY,
    ACTIONSYNC_SOURCE_TOKEN and the tuning variables read by
    :meth:`actionsync.config.PullConfig.from_env`. Flags take precedence.
"""

from __future__ import annotations

import asyncio
import dataclasses
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from actionsync.cache import CacheDirectory
from actionsync.config import PullConfig
from actionsync.errors import ActionSyncError
from actionsync.logging import configure_logging
from actionsync.pull import PullService

if typ.TYPE_CHECKING:
    from actionsync.releases import FetchResult

app = App(
    name="actionsync",
    help="Mirror a GitHub Action and its release bundles into a local cache",
    version="0.1.0",
)


def _build_config(
    *,
    cache_dir: Path | None,
    source_url: str | None,
    source_repository: str | None,
    source_token: str | None,
) -> PullConfig:
    overrides: dict[str, typ.Any] = {
        "cache_dir": cache_dir,
        "source_url": source_url,
        "repository": source_repository,
        "token": source_token,
    }
    config = PullConfig.from_env()
    return dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value}
    )


async def _run_pull(config: PullConfig, *, fresh: bool) -> FetchResult:
    service = PullService.from_config(config)
    try:
        return await service.pull(fresh=fresh)
    finally:
        await service.aclose()


@app.command
def pull(  # noqa: PLR0913
    *,
    cache_dir: Path | None = None,
    source_url: str | None = None,
    source_repository: str | None = None,
    source_token: typ.Annotated[str | None, Parameter(show_default=False)] = None,
    fresh: bool | None = None,
    log_level: typ.Annotated[
        str, Parameter(env_var="ACTIONSYNC_LOG_LEVEL")
    ] = "INFO",
) -> int:
    """Pull the action repository and its relevant releases into the cache.

    Args:
        cache_dir: Cache root directory.
        source_url: Base URL of the GitHub instance hosting the action.
        source_repository: Action repository as ``owner/name``.
        source_token: Access token for the source instance.
        fresh: Clone a new mirror instead of updating an existing one.
            Defaults to cloning only when the cache holds no mirror yet.
        log_level: Logging verbosity.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    _, invalid_level = configure_logging(log_level)
    if invalid_level:
        print(f"Unknown log level {log_level!r}, using INFO", file=sys.stderr)

    try:
        config = _build_config(
            cache_dir=cache_dir,
            source_url=source_url,
            source_repository=source_repository,
            source_token=source_token,
        )
        cache = CacheDirectory(config.cache_dir)
        cache.ensure()
        use_fresh = not cache.has_mirror() if fresh is None else fresh
        result = asyncio.run(_run_pull(config, fresh=use_fresh))
    except ActionSyncError as exc:
        print(f"Pull failed: {exc}", file=sys.stderr)
        return 1

    print(
        f"Pulled {config.repository} into {config.cache_dir} "
        f"({len(result.downloaded)} assets downloaded, "
        f"{len(result.skipped)} already up to date)"
    )
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
