"""Video metadata and thumbnail lookup via platform public APIs.

Metadata is best effort: every failure degrades to platform defaults and
never fails an import.
"""

import logging
from dataclasses import dataclass

import httpx

from recipe_importer.models.enums import VideoPlatform
from recipe_importer.services.source_classifier import SourceRoute

logger = logging.getLogger(__name__)

YOUTUBE_DATA_API_URL = "https://www.googleapis.com/youtube/v3/videos"
OEMBED_ENDPOINTS = {
    VideoPlatform.YOUTUBE: "https://www.youtube.com/oembed",
    VideoPlatform.INSTAGRAM: "https://www.instagram.com/api/v1/oembed/",
    VideoPlatform.TIKTOK: "https://www.tiktok.com/oembed",
}
DEFAULT_TITLES = {
    VideoPlatform.YOUTUBE: "YouTube Recipe Video",
    VideoPlatform.INSTAGRAM: "Instagram Recipe Reel",
    VideoPlatform.TIKTOK: "TikTok Recipe Video",
}

# Highest resolution first; maxresdefault does not exist for every video
YOUTUBE_THUMBNAIL_VARIANTS = ("maxresdefault", "sddefault", "hqdefault", "mqdefault")


@dataclass
class VideoMetadata:
    """Title, author, description and thumbnail of a video."""

    platform: VideoPlatform
    video_id: str
    title: str
    author: str
    description: str | None = None
    thumbnail_url: str | None = None


def youtube_thumbnail_urls(video_id: str) -> list[str]:
    """Candidate YouTube thumbnail URLs, highest resolution first."""
    return [f"https://img.youtube.com/vi/{video_id}/{v}.jpg" for v in YOUTUBE_THUMBNAIL_VARIANTS]


class VideoMetadataClient:
    """Fetch video metadata with short timeouts."""

    def __init__(
        self,
        youtube_api_key: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.youtube_api_key = youtube_api_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": "RecipeImporter/1.0"},
            transport=self.transport,
        )

    async def fetch(self, route: SourceRoute) -> VideoMetadata:
        """Get metadata for a classified video route."""
        platform = route.platform
        metadata = VideoMetadata(
            platform=platform,
            video_id=route.video_id,
            title=DEFAULT_TITLES[platform],
            author="Unknown",
        )

        if platform == VideoPlatform.YOUTUBE:
            await self._fill_from_youtube_api(metadata)
            metadata.thumbnail_url = youtube_thumbnail_urls(route.video_id)[0]

        # oEmbed covers every platform; for YouTube it only fills what the Data API missed
        if platform != VideoPlatform.YOUTUBE or metadata.title == DEFAULT_TITLES[platform]:
            await self._fill_from_oembed(metadata, route.normalized_url)

        return metadata

    async def _fill_from_youtube_api(self, metadata: VideoMetadata) -> None:
        if not self.youtube_api_key:
            logger.warning("YOUTUBE_API_KEY not set - video descriptions will not be available")
            return

        params = {"id": metadata.video_id, "part": "snippet", "key": self.youtube_api_key}
        try:
            async with self._client() as client:
                response = await client.get(YOUTUBE_DATA_API_URL, params=params)
            response.raise_for_status()
            items = response.json().get("items") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"YouTube Data API error: {e}")
            return

        if not items:
            logger.warning(f"YouTube video {metadata.video_id} not found via Data API")
            return

        snippet = items[0].get("snippet", {})
        metadata.title = snippet.get("title") or metadata.title
        metadata.author = snippet.get("channelTitle") or metadata.author
        metadata.description = snippet.get("description") or None

    async def _fill_from_oembed(self, metadata: VideoMetadata, url: str) -> None:
        params = {"url": url}
        if metadata.platform == VideoPlatform.YOUTUBE:
            params["format"] = "json"
        try:
            async with self._client() as client:
                response = await client.get(OEMBED_ENDPOINTS[metadata.platform], params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{metadata.platform.value} oEmbed failed: {e}")
            return

        metadata.title = data.get("title") or metadata.title
        metadata.author = data.get("author_name") or metadata.author
        if metadata.platform != VideoPlatform.YOUTUBE:
            metadata.thumbnail_url = data.get("thumbnail_url") or metadata.thumbnail_url

    async def verify_url(self, url: str) -> bool:
        """Check that a URL answers a HEAD request with a 2xx status."""
        try:
            async with self._client() as client:
                response = await client.head(url)
            return response.is_success
        except httpx.HTTPError:
            return False

    async def best_thumbnail(self, metadata: VideoMetadata) -> str | None:
        """Pick the thumbnail to use as the recipe image.

        For YouTube the highest resolution variant that actually exists is
        used; other platforms return the oEmbed thumbnail as is.
        """
        if metadata.platform != VideoPlatform.YOUTUBE:
            return metadata.thumbnail_url

        for url in youtube_thumbnail_urls(metadata.video_id):
            if await self.verify_url(url):
                return url
        logger.info(f"No reachable YouTube thumbnail for {metadata.video_id}")
        return None
