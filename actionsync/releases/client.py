"""Release API clients for github.com and GitHub Enterprise Server.

Both hosts serve the same REST resources under different base URLs, so the
business logic depends only on :class:`ReleaseClient` and one of the two
concrete clients is chosen once, by :func:`build_release_client`.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ
from urllib.parse import quote, urlsplit

import httpx
import msgspec

from .errors import (
    ReleaseAPIError,
    ReleaseNotFoundError,
    ReleaseResponseShapeError,
)
from .models import Release, decode_release

DOTCOM_HOST = "github.com"
DOTCOM_API_URL = "https://api.github.com"
ENTERPRISE_API_SUFFIX = "/api/v3"

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404
_JSON_MEDIA_TYPE = "application/vnd.github+json"
_BINARY_MEDIA_TYPE = "application/octet-stream"
_API_VERSION = "2022-11-28"


class ReleaseClient(typ.Protocol):
    """Read-only access to a repository's releases."""

    async def get_release_by_tag(self, repository: str, tag: str) -> Release:
        """Return the release published under ``tag``."""
        ...

    def download_asset(
        self, repository: str, asset_id: int
    ) -> cabc.AsyncGenerator[bytes, None]:
        """Yield the binary content of an asset in chunks."""
        ...

    async def aclose(self) -> None:
        """Release any owned HTTP resources."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseClientConfig:
    """Connection settings shared by both release clients."""

    api_url: str
    token: str | None = dataclasses.field(default=None, repr=False)
    timeout_s: float = 60.0
    user_agent: str = "actionsync/0.1"


class _RestReleaseClient:
    """REST implementation of :class:`ReleaseClient` over ``httpx``."""

    def __init__(
        self,
        config: ReleaseClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._api_url = config.api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    @property
    def api_url(self) -> str:
        """Return the base URL requests are sent to."""
        return self._api_url

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, accept: str) -> dict[str, str]:
        headers = {
            "Accept": accept,
            "User-Agent": self._config.user_agent,
            "X-GitHub-Api-Version": _API_VERSION,
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        return headers

    def _release_url(self, repository: str, tag: str) -> str:
        encoded = quote(tag, safe="")
        return f"{self._api_url}/repos/{repository}/releases/tags/{encoded}"

    def _asset_url(self, repository: str, asset_id: int) -> str:
        return f"{self._api_url}/repos/{repository}/releases/assets/{asset_id}"

    async def get_release_by_tag(self, repository: str, tag: str) -> Release:
        """Return the release published under ``tag``.

        Raises
        ------
        ReleaseNotFoundError
            If the API answers 404 for the tag.
        ReleaseAPIError
            For other HTTP errors, timeouts and transport failures.
        ReleaseResponseShapeError
            If the response body is not a release document.

        """
        url = self._release_url(repository, tag)
        try:
            response = await self._client.get(
                url, headers=self._headers(_JSON_MEDIA_TYPE)
            )
        except httpx.TimeoutException as exc:
            raise ReleaseAPIError.timeout(url) from exc
        except httpx.RequestError as exc:
            raise ReleaseAPIError.network_error(url, str(exc)) from exc

        if response.status_code == _HTTP_NOT_FOUND:
            raise ReleaseNotFoundError(repository, tag)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise ReleaseAPIError.http_error(response.status_code, url)
        try:
            return decode_release(response.content)
        except msgspec.DecodeError as exc:
            raise ReleaseResponseShapeError.invalid(tag, str(exc)) from exc

    async def download_asset(
        self, repository: str, asset_id: int
    ) -> cabc.AsyncGenerator[bytes, None]:
        """Yield the binary content of an asset in chunks.

        The asset endpoint serves JSON metadata unless the binary media type
        is requested; storage redirects are followed.
        """
        url = self._asset_url(repository, asset_id)
        try:
            async with self._client.stream(
                "GET",
                url,
                headers=self._headers(_BINARY_MEDIA_TYPE),
                follow_redirects=True,
            ) as response:
                if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
                    raise ReleaseAPIError.http_error(response.status_code, url)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.TimeoutException as exc:
            raise ReleaseAPIError.timeout(url) from exc
        except httpx.RequestError as exc:
            raise ReleaseAPIError.network_error(url, str(exc)) from exc


class GitHubDotComReleaseClient(_RestReleaseClient):
    """Release client for repositories hosted on github.com."""

    def __init__(
        self,
        token: str | None = None,
        *,
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise against the public API endpoint."""
        super().__init__(
            ReleaseClientConfig(
                api_url=DOTCOM_API_URL, token=token, timeout_s=timeout_s
            ),
            http_client=http_client,
        )


class GitHubEnterpriseReleaseClient(_RestReleaseClient):
    """Release client for a GitHub Enterprise Server instance."""

    def __init__(
        self,
        host_url: str,
        token: str | None = None,
        *,
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise against ``{host_url}/api/v3``."""
        super().__init__(
            ReleaseClientConfig(
                api_url=f"{host_url.rstrip('/')}{ENTERPRISE_API_SUFFIX}",
                token=token,
                timeout_s=timeout_s,
            ),
            http_client=http_client,
        )


def is_dot_com(source_url: str) -> bool:
    """Return True when ``source_url`` points at github.com."""
    host = (urlsplit(source_url).hostname or "").lower()
    return host in {DOTCOM_HOST, f"www.{DOTCOM_HOST}"}


def build_release_client(
    source_url: str,
    *,
    token: str | None = None,
    timeout_s: float = 60.0,
    http_client: httpx.AsyncClient | None = None,
) -> ReleaseClient:
    """Return the release client matching the host of ``source_url``."""
    if is_dot_com(source_url):
        return GitHubDotComReleaseClient(
            token, timeout_s=timeout_s, http_client=http_client
        )
    return GitHubEnterpriseReleaseClient(
        source_url, token, timeout_s=timeout_s, http_client=http_client
    )


__all__ = [
    "DOTCOM_API_URL",
    "GitHubDotComReleaseClient",
    "GitHubEnterpriseReleaseClient",
    "ReleaseClient",
    "ReleaseClientConfig",
    "build_release_client",
    "is_dot_com",
]
