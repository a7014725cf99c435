"""Helpers shared by every flow that accepts an uploaded image."""
from __future__ import annotations

import logging

from fastapi import UploadFile

from chirp.core.errors import ExternalServiceError, ValidationError
from chirp.core.settings import settings
from chirp.services.storage import MediaStorageClient, StorageError, StoredMedia

logger = logging.getLogger(__name__)


def has_file(upload: UploadFile | None) -> bool:
    """Browsers submit an empty part for an untouched file input."""
    return upload is not None and bool(upload.filename)


async def read_image(upload: UploadFile) -> bytes:
    """Read an uploaded image, enforcing type and size limits."""
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Only image uploads are allowed")

    data = await upload.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(
            f"File size exceeds the limit of {settings.max_upload_megabytes} MB"
        )
    if not data:
        raise ValidationError("Uploaded file is empty")
    return data


async def upload_image(
    storage: MediaStorageClient, upload: UploadFile, *, folder: str
) -> StoredMedia:
    """Validate and upload one image; storage failures become a 500."""
    data = await read_image(upload)
    try:
        return await storage.upload(
            data,
            filename=upload.filename or "upload",
            content_type=upload.content_type or "application/octet-stream",
            folder=folder,
        )
    except StorageError as exc:
        logger.error("Image upload failed: %s", exc.message)
        raise ExternalServiceError("Failed to upload image") from exc


async def discard_uploaded(storage: MediaStorageClient, storage_id: str) -> None:
    """Best-effort destroy of an object no committed row references.

    Covers compensation for uncommitted rows and release of images whose rows
    are already gone. A failure is logged for later reconciliation instead of
    raised.
    """
    try:
        await storage.destroy(storage_id)
    except StorageError as exc:
        logger.warning("Could not destroy stored object %s, left for reconciliation: %s", storage_id, exc.message)
