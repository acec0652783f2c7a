"""Recipe hero image download, validation and upload.

Image handling never fails an import: every error is logged and the recipe
is kept without an image.
"""

import logging
from urllib.parse import urlparse

import httpx

from recipe_importer.errors import MediaFailure
from recipe_importer.services.storage import IMAGES_BUCKET, BlobStorage, StorageError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
EXTENSION_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def resolve_image_type(content_type: str, url: str) -> str:
    """Determine the MIME type from the response header, falling back to the URL extension.

    Raises:
        MediaFailure: If neither names an allowed image type.
    """
    mime_type = content_type.split(";")[0].strip().lower()
    if mime_type in ALLOWED_IMAGE_TYPES:
        return mime_type

    extension = urlparse(url).path.rsplit(".", 1)[-1].lower() if "." in urlparse(url).path else ""
    if extension in EXTENSION_TYPES:
        return EXTENSION_TYPES[extension]

    raise MediaFailure(f"Unsupported image type: {content_type or 'unknown'}")


class ImagePipeline:
    """Download a candidate image and store it under a recipe-scoped path."""

    def __init__(
        self,
        storage: BlobStorage,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.storage = storage
        self.timeout = timeout
        self.transport = transport

    async def download(self, image_url: str) -> tuple[bytes, str]:
        """Download and validate an image. Returns (bytes, mime_type).

        Raises:
            MediaFailure: On any download or validation problem.
        """
        if urlparse(image_url).scheme not in ("http", "https"):
            raise MediaFailure("Invalid image URL protocol")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "RecipeImporter/1.0 (Recipe Import Bot)", "Accept": "image/*"},
                transport=self.transport,
            ) as client:
                response = await client.get(image_url)
        except httpx.TimeoutException as e:
            raise MediaFailure("Image download timed out") from e
        except httpx.HTTPError as e:
            raise MediaFailure(f"Image download failed: {e}") from e

        if not response.is_success:
            raise MediaFailure(f"Failed to fetch image: {response.status_code}")

        mime_type = resolve_image_type(response.headers.get("content-type", ""), image_url)
        data = response.content
        if not data:
            raise MediaFailure("Empty image data")
        if len(data) > MAX_IMAGE_BYTES:
            raise MediaFailure(f"Image too large: {len(data) / 1024 / 1024:.1f}MB")

        logger.info(f"Downloaded {len(data) / 1024:.1f}KB image from {image_url}")
        return data, mime_type

    async def attach(self, image_url: str | None, recipe_id: int) -> str | None:
        """Store the image for a recipe and return its public URL, or None on any failure."""
        if not image_url:
            return None

        try:
            data, mime_type = await self.download(image_url)
            path = f"{recipe_id}.{ALLOWED_IMAGE_TYPES[mime_type]}"
            await self.storage.upload(IMAGES_BUCKET, path, data, mime_type)
        except MediaFailure as e:
            logger.warning(f"Image for recipe {recipe_id} skipped: {e.message}")
            return None
        except StorageError as e:
            logger.warning(f"Image upload for recipe {recipe_id} failed: {e}")
            return None

        public_url = self.storage.public_url(IMAGES_BUCKET, path)
        logger.info(f"Image uploaded for recipe {recipe_id}: {public_url}")
        return public_url
