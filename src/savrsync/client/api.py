"""HTTP client for a remoteStorage account.

This module provides:
- RemoteStorageClient: Async client for one scope of a remoteStorage server
- Folder listing, file get/put/delete operations
- A bounded in-memory replica of recent bodies for offline reads

Paths are relative to the scope (e.g. ``saves/my-article/article.json``);
folder paths end with ``/``.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import httpx

from savrsync.core.config import RemoteConfig

logger = logging.getLogger(__name__)

# Bodies kept for offline reads, least recently used evicted first
DEFAULT_REPLICA_SIZE = 256


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


class RemoteUnavailableError(APIError):
    """The storage server could not be reached."""


@dataclass
class RemoteFile:
    """A file body fetched from remote storage.

    Attributes:
        path: File path relative to the scope.
        data: Body decoded as text.
        content_type: Content type reported by the server.
        etag: Version reported by the server.
        content: Raw body bytes; derived from ``data`` when not given.
    """

    path: str
    data: str
    content_type: str
    etag: str | None = None
    content: bytes = b""

    def __post_init__(self) -> None:
        if not self.content and self.data:
            self.content = self.data.encode("utf-8")

    @property
    def size(self) -> int:
        """Size of the body in bytes."""
        return len(self.content)


class RemoteStorageClient:
    """Async HTTP client for one remoteStorage scope."""

    def __init__(
        self,
        config: RemoteConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        replica_size: int = DEFAULT_REPLICA_SIZE,
    ) -> None:
        """Initialize the storage client.

        Args:
            config: Remote configuration with URL, token, and settings.
            transport: Optional transport override.
            replica_size: Maximum number of bodies kept for offline reads.
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.storage_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
            transport=transport,
        )
        self._replica: OrderedDict[str, RemoteFile] = OrderedDict()
        self._replica_size = replica_size

    @property
    def config(self) -> RemoteConfig:
        """Get the remote configuration."""
        return self._config

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> RemoteStorageClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    def _remember(self, remote_file: RemoteFile) -> None:
        self._replica[remote_file.path] = remote_file
        self._replica.move_to_end(remote_file.path)
        while len(self._replica) > self._replica_size:
            self._replica.popitem(last=False)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token", response.status_code)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code >= 400:
            raise APIError(
                f"Storage request failed: {response.reason_phrase}",
                response.status_code,
            )
        return response

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise RemoteUnavailableError(f"{method} {path} failed: {e}") from e
        return self._handle_response(response)

    # === Folder operations ===

    async def get_listing(self, prefix: str = "") -> dict[str, bool]:
        """List the entries of one folder.

        Args:
            prefix: Folder path relative to the scope ("" for the scope root).

        Returns:
            Mapping of entry name to is-directory. Directory names end with "/".
            A missing folder lists as empty.
        """
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        try:
            response = await self._request("GET", prefix)
        except NotFoundError:
            return {}

        items = response.json().get("items", {})
        return {name: name.endswith("/") for name in items}

    # === File operations ===

    async def get_file(self, path: str, allow_network: bool = True) -> RemoteFile | None:
        """Get a file body.

        Args:
            path: File path relative to the scope.
            allow_network: When False, answer only from recently seen bodies.

        Returns:
            The file, or None if it does not exist (or is not known offline).
        """
        if not allow_network:
            remote_file = self._replica.get(path)
            if remote_file is not None:
                self._replica.move_to_end(path)
            return remote_file

        try:
            response = await self._request("GET", path)
        except NotFoundError:
            self._replica.pop(path, None)
            return None

        remote_file = RemoteFile(
            path=path,
            data=response.text,
            content_type=response.headers.get("content-type", "application/octet-stream"),
            etag=response.headers.get("etag"),
            content=response.content,
        )
        self._remember(remote_file)
        return remote_file

    async def store_file(self, mime_type: str, path: str, content: str | bytes) -> str | None:
        """Create or overwrite a file.

        Args:
            mime_type: Content type of the body.
            path: File path relative to the scope.
            content: File body.

        Returns:
            The new ETag, if the server reported one.
        """
        response = await self._request(
            "PUT",
            path,
            content=content,
            headers={"Content-Type": mime_type},
        )
        body = content.encode("utf-8") if isinstance(content, str) else content
        self._remember(RemoteFile(
            path=path,
            data=body.decode("utf-8", errors="replace"),
            content_type=mime_type,
            etag=response.headers.get("etag"),
            content=body,
        ))
        logger.debug("Stored %s (%s)", path, mime_type)
        return response.headers.get("etag")

    async def remove(self, path: str) -> None:
        """Delete a file. Deleting a missing file is not an error."""
        try:
            await self._request("DELETE", path)
        except NotFoundError:
            logger.debug("Remove of missing path %s ignored", path)
        self._replica.pop(path, None)
