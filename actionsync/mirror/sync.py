"""Bare mirror maintenance for the upstream action repository.

A fresh pull clones the remote with ``git clone --mirror`` and keeps every
ref it exposes, including refs no maintenance pattern will ever select. An
incremental pull reconciles the local refs with ``git ls-remote`` output:
refs removed upstream, and refs whose name now collides with a deeper
upstream path, are deleted first, then a forced, pruning fetch writes the
new and moved refs.
"""

from __future__ import annotations

import base64
import logging
import shutil
import typing as typ

import git

from .errors import (
    MirrorInitError,
    MirrorReadError,
    MirrorSyncError,
    NoMirrorError,
    RefConflictError,
)
from .refs import (
    RefMap,
    RefUpdatePlan,
    parse_for_each_ref,
    parse_ls_remote,
    plan_ref_update,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from actionsync.cache import CacheLocation

logger = logging.getLogger(__name__)

_MIRROR_REFSPEC = "+refs/*:refs/*"
_FOR_EACH_REF_FORMAT = "--format=%(objectname) %(refname)"
_TOKEN_USER = "x-access-token"
DEFAULT_GIT_TIMEOUT_S = 600.0


def _git_detail(exc: git.GitCommandError) -> str:
    stderr = exc.stderr.strip() if isinstance(exc.stderr, str) else ""
    return stderr or str(exc)


def git_auth_env(token: str | None) -> dict[str, str]:
    """Return environment variables that authenticate git over HTTP.

    The token travels as an ``http.extraHeader`` set through git's
    ``GIT_CONFIG_*`` variables, so it stays out of the clone URL and the
    mirror's stored configuration. Prompts are always disabled.

    Examples
    --------
    >>> git_auth_env(None)
    {'GIT_TERMINAL_PROMPT': '0'}

    """
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if token:
        credentials = base64.b64encode(f"{_TOKEN_USER}:{token}".encode()).decode()
        env |= {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {credentials}",
        }
    return env


def open_mirror(path: Path) -> git.Repo:
    """Open the bare mirror at ``path``.

    Raises
    ------
    NoMirrorError
        If ``path`` does not hold a bare git repository.

    """
    try:
        repo = git.Repo(path)
    except (git.NoSuchPathError, git.InvalidGitRepositoryError) as exc:
        raise NoMirrorError(path) from exc
    if not repo.bare:
        repo.close()
        raise NoMirrorError(path)
    return repo


def read_local_refs(repo: git.Repo) -> RefMap:
    """Return every ref stored in ``repo`` mapped to its object id.

    The symbolic ``HEAD`` is not a ref under ``refs/`` and is never listed.
    """
    try:
        output = repo.git.for_each_ref(_FOR_EACH_REF_FORMAT)
    except git.GitCommandError as exc:
        raise MirrorReadError.unreadable(repo.git_dir, _git_detail(exc)) from exc
    return parse_for_each_ref(output)


class MirrorSync:
    """Create and update the bare mirror behind a :class:`CacheLocation`."""

    def __init__(
        self,
        cache: CacheLocation,
        clone_url: str,
        *,
        token: str | None = None,
        timeout_s: float = DEFAULT_GIT_TIMEOUT_S,
    ) -> None:
        """Initialise with the cache handle and the upstream clone URL.

        ``clone_url`` must not carry credentials; ``token`` is handed to each
        network command through :func:`git_auth_env` instead.
        """
        self._cache = cache
        self._clone_url = clone_url
        self._env = git_auth_env(token)
        self._timeout_s = timeout_s

    def synchronize(self, *, fresh: bool) -> None:
        """Clone (``fresh=True``) or incrementally update the mirror.

        Raises
        ------
        MirrorInitError
            If a fresh clone is requested over an existing cache or fails.
        NoMirrorError
            If an incremental update finds no mirror.
        MirrorSyncError
            If any git operation of an incremental update fails.
        RefConflictError
            If a ref blocking a renamed upstream ref cannot be removed.

        """
        if fresh:
            self._clone()
        else:
            self._update()

    def references(self) -> RefMap:
        """Return the refs currently stored in the mirror."""
        repo = open_mirror(self._cache.git_path())
        try:
            return read_local_refs(repo)
        finally:
            repo.close()

    def _clone(self) -> None:
        path = self._cache.git_path()
        if path.exists() and (not path.is_dir() or any(path.iterdir())):
            raise MirrorInitError.not_empty(path)

        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning mirror into %s", path)
        try:
            git.Git().clone(
                "--mirror",
                "--",
                self._clone_url,
                str(path),
                env=self._env,
                kill_after_timeout=self._timeout_s,
            )
        except git.GitCommandError as exc:
            shutil.rmtree(path, ignore_errors=True)
            raise MirrorInitError.clone_failed(_git_detail(exc)) from exc

        repo = open_mirror(path)
        try:
            logger.info("Mirror cloned with %d refs", len(read_local_refs(repo)))
        finally:
            repo.close()

    def _update(self) -> None:
        repo = open_mirror(self._cache.git_path())
        try:
            plan = plan_ref_update(read_local_refs(repo), self._remote_refs(repo))
            logger.info("Updating mirror: %s", plan.summary())
            self._delete_refs(repo, plan)
            self._run(
                repo, "fetch", "--prune", "--force", self._clone_url, _MIRROR_REFSPEC
            )
        finally:
            repo.close()

    def _remote_refs(self, repo: git.Repo) -> RefMap:
        return parse_ls_remote(self._run(repo, "ls_remote", self._clone_url))

    def _delete_refs(self, repo: git.Repo, plan: RefUpdatePlan) -> None:
        for ref in plan.deletions:
            blocked = plan.conflicts.get(ref)
            if blocked is not None:
                logger.info("Removing %s to make room for %s", ref, blocked)
            else:
                logger.info("Pruning %s", ref)
            try:
                repo.git.update_ref("-d", ref)
            except git.GitCommandError as exc:
                if blocked is not None:
                    raise RefConflictError(blocked, ref, _git_detail(exc)) from exc
                raise MirrorSyncError.git_failed("prune", _git_detail(exc)) from exc

    def _run(self, repo: git.Repo, command: str, *args: str) -> str:
        try:
            return getattr(repo.git, command)(
                *args, env=self._env, kill_after_timeout=self._timeout_s
            )
        except git.GitCommandError as exc:
            raise MirrorSyncError.git_failed(
                command.replace("_", "-"), _git_detail(exc)
            ) from exc


__all__ = [
    "DEFAULT_GIT_TIMEOUT_S",
    "MirrorSync",
    "git_auth_env",
    "open_mirror",
    "read_local_refs",
]
