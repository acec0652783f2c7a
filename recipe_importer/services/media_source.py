"""Loading of uploaded image/PDF sources from temporary storage."""

import logging
from dataclasses import dataclass

from recipe_importer.errors import AcquisitionFailure, InputError, UnreadableMedia
from recipe_importer.services.storage import UPLOADS_BUCKET, BlobStorage, StorageError

logger = logging.getLogger(__name__)

# Anything smaller cannot be a legible photo or PDF page
MIN_MEDIA_BYTES = 100

# Claude Vision accepts 5MB base64 per image; base64 adds ~33%
MAX_VISION_IMAGE_BYTES = int(3.75 * 1024 * 1024)
MAX_PDF_BYTES = 32 * 1024 * 1024

IMAGE_TYPES_BY_EXTENSION = {
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


@dataclass
class MediaSource:
    """Raw bytes of an uploaded source document."""

    path: str
    data: bytes
    media_type: str  # "image" or "pdf"
    mime_type: str


def mime_type_for(path: str, media_type: str) -> str:
    if media_type == "pdf":
        return "application/pdf"
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return IMAGE_TYPES_BY_EXTENSION.get(extension, "image/jpeg")


def validate_storage_paths(storage_paths: list[str]) -> str:
    """Return the single uploaded path of a media import.

    Raises:
        InputError: If not exactly one non-empty path is given.
    """
    if not storage_paths:
        raise InputError("storagePaths must contain one uploaded file")
    if len(storage_paths) > 1:
        raise InputError("Only one file per import is supported")
    path = storage_paths[0].strip()
    if not path:
        raise InputError("storagePaths must contain one uploaded file")
    return path


class MediaSourceLoader:
    """Download and validate a single uploaded file."""

    def __init__(self, storage: BlobStorage):
        self.storage = storage

    async def load(self, storage_paths: list[str], media_type: str) -> MediaSource:
        """Fetch the uploaded file for an import.

        Raises:
            InputError: If not exactly one path is given.
            AcquisitionFailure: If the file cannot be downloaded.
            UnreadableMedia: If the file is empty, too small or too large.
        """
        if media_type not in ("image", "pdf"):
            raise InputError('mediaType must be "image" or "pdf"')
        path = validate_storage_paths(storage_paths)

        try:
            data = await self.storage.download(UPLOADS_BUCKET, path)
        except StorageError as e:
            raise AcquisitionFailure(f"Failed to download file {path}") from e

        logger.info(f"Downloaded uploaded {media_type} {path} ({len(data)} bytes)")

        if len(data) < MIN_MEDIA_BYTES:
            raise UnreadableMedia("The uploaded file is empty or too small to contain a recipe.")

        limit = MAX_PDF_BYTES if media_type == "pdf" else MAX_VISION_IMAGE_BYTES
        if len(data) > limit:
            raise UnreadableMedia(
                "Image too large. Please try with a smaller or lower quality image."
                if media_type == "image"
                else "PDF too large. Please try with a smaller document."
            )

        return MediaSource(path=path, data=data, media_type=media_type, mime_type=mime_type_for(path, media_type))

    async def cleanup(self, storage_paths: list[str]) -> None:
        """Delete temporary uploads. Failures are logged only."""
        try:
            await self.storage.remove(UPLOADS_BUCKET, storage_paths)
        except StorageError as e:
            logger.error(f"Failed to delete temporary uploads {storage_paths}: {e}")
