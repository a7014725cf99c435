"""Client for the external media storage service.

Images are uploaded to a Cloudinary-compatible REST API and later destroyed
by their public id. The client owns one pooled ``httpx.AsyncClient`` that is
created lazily and closed at application shutdown. Every request carries the
configured timeout; timeouts, transport failures and error responses all
surface as ``StorageError``.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import Request

from chirp.core.errors import ExternalServiceError
from chirp.core.settings import settings

logger = logging.getLogger(__name__)

# Parameters the upload API excludes from the request signature.
_UNSIGNED_PARAMS = frozenset({"file", "api_key", "resource_type", "cloud_name"})


class StorageError(ExternalServiceError):
    """Raised when the storage service cannot complete a request."""

    default_message = "Media storage request failed"


class StorageDisabledError(StorageError):
    """Raised when storage is used without credentials configured."""

    default_message = "Media storage is not configured"


@dataclass(frozen=True)
class StorageConfig:
    """Immutable configuration for storage operations."""

    cloud_name: str | None
    api_key: str | None
    api_secret: str | None
    base_url: str
    timeout_seconds: float


@dataclass(frozen=True)
class StoredMedia:
    """Reference to an uploaded object."""

    url: str
    storage_id: str


def load_storage_config() -> StorageConfig:
    """Build configuration object from global settings."""
    return StorageConfig(
        cloud_name=settings.storage_cloud_name,
        api_key=settings.storage_api_key,
        api_secret=settings.storage_api_secret,
        base_url=settings.storage_base_url.rstrip("/"),
        timeout_seconds=float(settings.storage_timeout_seconds),
    )


def sign_params(params: Mapping[str, Any], api_secret: str) -> str:
    """Return the SHA-1 request signature expected by the upload API.

    Signed parameters are sorted by name, joined as ``k=v`` pairs with ``&``
    and suffixed with the API secret.
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class MediaStorageClient:
    """HTTP client wrapper for upload and destroy calls."""

    def __init__(
        self,
        config: StorageConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_storage_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.config.cloud_name and self.config.api_key and self.config.api_secret)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise StorageDisabledError()

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{self.config.base_url}/{self.config.cloud_name}",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _signed_form(self, params: dict[str, Any]) -> dict[str, str]:
        form = {key: str(value) for key, value in params.items() if value is not None}
        form["timestamp"] = str(int(time.time()))
        form["signature"] = sign_params(form, self.config.api_secret or "")
        form["api_key"] = self.config.api_key or ""
        return form

    async def _post(
        self,
        path: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]] | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.post(path, data=data, files=files)
        except httpx.TimeoutException as exc:
            raise StorageError("Media storage request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Media storage request to %s failed: %s", path, exc)
            raise StorageError() from exc

        if response.status_code >= httpx.codes.BAD_REQUEST:
            logger.warning("Media storage responded to %s with %d", path, response.status_code)
            raise StorageError(f"Media storage responded with {response.status_code}")
        try:
            payload: dict[str, Any] = response.json()
        except ValueError as exc:
            raise StorageError("Media storage returned an unreadable response") from exc
        return payload

    async def upload(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        folder: str,
    ) -> StoredMedia:
        """Upload an image and return its public URL and storage id."""
        form = self._signed_form({"folder": folder})
        payload = await self._post(
            "/image/upload",
            data=form,
            files={"file": (filename, content, content_type)},
        )
        url = payload.get("secure_url") or payload.get("url")
        storage_id = payload.get("public_id")
        if not url or not storage_id:
            raise StorageError("Media storage response is missing the uploaded reference")
        logger.info("Uploaded %s (%d bytes) to %s", storage_id, len(content), folder)
        return StoredMedia(url=url, storage_id=storage_id)

    async def destroy(self, storage_id: str) -> None:
        """Delete an uploaded object; destroying a missing object is not an error."""
        form = self._signed_form({"public_id": storage_id})
        payload = await self._post("/image/destroy", data=form)
        result = payload.get("result")
        if result not in ("ok", "not found"):
            logger.warning("Media storage could not destroy %s: %s", storage_id, result)
            raise StorageError("Media storage could not destroy the object")
        logger.info("Destroyed %s (%s)", storage_id, result)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def get_storage(request: Request) -> MediaStorageClient:
    """Return the storage client owned by the running application."""
    storage: MediaStorageClient = request.app.state.storage
    return storage
