"""Release metadata returned by the GitHub releases API."""

from __future__ import annotations

import msgspec


class ReleaseAsset(msgspec.Struct, frozen=True):
    """A single downloadable file attached to a release.

    Attributes
    ----------
    id
        Identifier of the asset in the release API.
    name
        File name, unique within its release.
    size
        Size of the asset in bytes as reported by the API.

    """

    id: int
    name: str
    size: int


class Release(msgspec.Struct, frozen=True):
    """A published release and its assets."""

    tag_name: str
    name: str | None = None
    assets: list[ReleaseAsset] = msgspec.field(default_factory=list)


def decode_release(payload: bytes) -> Release:
    """Decode a release JSON document, ignoring fields not modelled here."""
    return msgspec.json.decode(payload, type=Release)


__all__ = ["Release", "ReleaseAsset", "decode_release"]
