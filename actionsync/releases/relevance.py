"""Work out which releases the maintained refs of the mirror depend on.

Only refs matching the maintenance pattern are inspected (by default the
``main`` branch and ``vN`` branches and tags). Each one names the release it
needs in a JSON configuration file in its tip tree. Refs without usable
configuration are skipped with a warning so that one unconfigured branch
cannot block the others.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import logging
import re
import typing as typ

import git
import msgspec
from git.exc import BadName, BadObject

from actionsync.mirror import MirrorReadError, open_mirror, read_local_refs

from .errors import BranchConfigMissing

if typ.TYPE_CHECKING:
    from actionsync.cache import CacheLocation

logger = logging.getLogger(__name__)

DEFAULT_REF_PATTERN = re.compile(r"^refs/(heads|tags)/(main|v\d+)$")


@dataclasses.dataclass(frozen=True, slots=True)
class BranchConfigFormat:
    """Location of the release tag inside a ref's tree.

    Attributes
    ----------
    path
        Slash-separated path of a JSON file relative to the tree root.
    key
        Top-level key of that file holding the release tag.

    """

    path: str
    key: str

    def read(self, tree: git.Tree) -> bytes | None:
        """Return the raw file content, or ``None`` when the file is absent."""
        try:
            item = tree / self.path
        except KeyError:
            return None
        if not isinstance(item, git.Blob):
            return None
        return item.data_stream.read()

    def parse(self, ref: str, content: bytes) -> str:
        """Extract the release tag from ``content``.

        Raises
        ------
        BranchConfigMissing
            If the content is not a JSON object with a non-empty string at
            ``key``.

        """
        try:
            document = msgspec.json.decode(content, type=dict[str, typ.Any])
        except msgspec.DecodeError as exc:
            raise BranchConfigMissing.unparsable(ref, self.path, str(exc)) from exc
        tag = document.get(self.key)
        if not isinstance(tag, str) or not tag.strip():
            detail = f"{self.key!r} is missing or not a string"
            raise BranchConfigMissing.unparsable(ref, self.path, detail)
        return tag.strip()


DEFAULTS_JSON = BranchConfigFormat(path="src/defaults.json", key="bundleVersion")
DEFAULT_FORMATS: tuple[BranchConfigFormat, ...] = (DEFAULTS_JSON,)


class ReleaseRelevanceResolver:
    """Resolve the set of release tags the mirror's maintained refs need."""

    def __init__(
        self,
        cache: CacheLocation,
        *,
        ref_pattern: re.Pattern[str] = DEFAULT_REF_PATTERN,
        formats: cabc.Sequence[BranchConfigFormat] = DEFAULT_FORMATS,
    ) -> None:
        """Initialise with the cache handle and the configuration contract.

        ``formats`` are tried in order on each ref; the first file present
        decides the ref's release tag.
        """
        if not formats:
            msg = "At least one branch configuration format is required"
            raise ValueError(msg)
        self._cache = cache
        self._ref_pattern = ref_pattern
        self._formats = tuple(formats)

    def resolve(self) -> set[str]:
        """Return the deduplicated release tags required by maintained refs.

        Raises
        ------
        NoMirrorError
            If there is no mirror to read.
        MirrorReadError
            If the mirror's refs or trees cannot be read.

        """
        repo = open_mirror(self._cache.git_path())
        try:
            refs = read_local_refs(repo)
            tags: set[str] = set()
            for ref in sorted(refs):
                if not self._ref_pattern.match(ref):
                    continue
                try:
                    tag = self._release_tag_for(repo, ref)
                except BranchConfigMissing as exc:
                    logger.warning("Ignoring %s: %s", ref, exc.reason)
                    continue
                logger.info("%s depends on release %s", ref, tag)
                tags.add(tag)
        finally:
            repo.close()
        return tags

    def _release_tag_for(self, repo: git.Repo, ref: str) -> str:
        tree = self._tree_for(repo, ref)
        for config_format in self._formats:
            content = config_format.read(tree)
            if content is not None:
                return config_format.parse(ref, content)
        raise BranchConfigMissing.absent(ref, tuple(f.path for f in self._formats))

    def _tree_for(self, repo: git.Repo, ref: str) -> git.Tree:
        try:
            return repo.commit(ref).tree
        except ValueError as exc:
            raise BranchConfigMissing.not_a_commit(ref, str(exc)) from exc
        except (BadName, BadObject) as exc:
            raise MirrorReadError.bad_ref(ref, str(exc)) from exc


__all__ = [
    "DEFAULTS_JSON",
    "DEFAULT_FORMATS",
    "DEFAULT_REF_PATTERN",
    "BranchConfigFormat",
    "ReleaseRelevanceResolver",
]
