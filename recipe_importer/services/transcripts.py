"""Video transcript providers.

Each provider implements ``TranscriptProvider.fetch``. The primary provider
reads platform captions; the speech-to-text provider derives a transcript
from the video's audio and is chained behind the primary with
``FallbackTranscriptProvider``.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from recipe_importer.errors import AcquisitionFailure, TranscriptNotAvailable
from recipe_importer.models.enums import VideoPlatform

logger = logging.getLogger(__name__)

# OpenAI speech-to-text upload limit
MAX_AUDIO_BYTES = 25 * 1024 * 1024


@dataclass
class TranscriptSegment:
    """Spoken text starting at ``offset_ms`` into the video."""

    text: str
    offset_ms: int
    duration_ms: int = 0


@dataclass
class Transcript:
    """Time-coded transcript of a video."""

    segments: list[TranscriptSegment]
    language: str = "unknown"
    source: str = "captions"
    metadata: dict = field(default_factory=dict)


class TranscriptProvider(Protocol):
    """Fetch a transcript for a video URL."""

    async def fetch(self, url: str, platform: VideoPlatform, language: str | None = None) -> Transcript:
        """Raises TranscriptNotAvailable when the video has no usable transcript."""
        ...


class SupadataTranscriptProvider:
    """Caption-based transcripts from the Supadata API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def endpoint_for(self, platform: VideoPlatform) -> str:
        return f"{self.base_url}/{platform.value}/transcript"

    async def fetch(self, url: str, platform: VideoPlatform, language: str | None = None) -> Transcript:
        params = {"url": url}
        if language:
            params["lang"] = language
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.endpoint_for(platform), params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise AcquisitionFailure("Timed out fetching video transcript") from e
        except httpx.HTTPError as e:
            raise AcquisitionFailure(f"Transcript service unreachable: {e}") from e

        if response.status_code == 404:
            raise AcquisitionFailure(_error_message(response) or "Video not found or unavailable")
        if response.status_code in (400, 422):
            # The provider uses these when the video has no captions
            raise TranscriptNotAvailable(_error_message(response) or "No transcript available for this video")
        if not response.is_success:
            raise AcquisitionFailure(
                f"Transcript service error ({response.status_code}): {_error_message(response) or response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AcquisitionFailure("Invalid response from transcript service") from e
        if not isinstance(data, dict):
            raise AcquisitionFailure("Invalid response from transcript service")
        content = data.get("content") or []
        if not isinstance(content, list) or not content:
            raise TranscriptNotAvailable()

        segments = [
            TranscriptSegment(
                text=str(item.get("text", "")),
                offset_ms=int(item.get("offset") or 0),
                duration_ms=int(item.get("duration") or 0),
            )
            for item in content
            if isinstance(item, dict)
        ]
        return Transcript(segments=segments, language=data.get("lang") or "unknown")


def _error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message") or data.get("error")
    return None


class WhisperTranscriptProvider:
    """Speech-to-text transcripts for videos without captions.

    Resolves an audio stream through an audio extraction service, downloads
    it and transcribes it with the OpenAI audio API. The result is a single
    untimed segment, so time windows are not applied to it.
    """

    def __init__(
        self,
        api_key: str,
        audio_extraction_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.audio_extraction_url = audio_extraction_url
        self.timeout = timeout
        self.transport = transport
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def _resolve_audio_url(self, http: httpx.AsyncClient, url: str) -> str:
        response = await http.post(
            self.audio_extraction_url,
            json={"url": url, "aFormat": "mp3", "isAudioOnly": True, "disableMetadata": True},
            headers={"Accept": "application/json"},
        )
        if not response.is_success:
            raise TranscriptNotAvailable(f"Failed to extract audio: {response.status_code}")
        data = response.json()
        if data.get("status") in ("stream", "redirect") and data.get("url"):
            return data["url"]
        raise TranscriptNotAvailable(data.get("text") or "Audio extraction failed")

    async def fetch(self, url: str, platform: VideoPlatform, language: str | None = None) -> Transcript:
        logger.info(f"Extracting audio from {platform.value} video for transcription")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as http:
                audio_url = await self._resolve_audio_url(http, url)
                response = await http.get(audio_url)
        except httpx.HTTPError as e:
            raise TranscriptNotAvailable(f"Audio download failed: {e}") from e

        if not response.is_success:
            raise TranscriptNotAvailable(f"Failed to download audio: {response.status_code}")
        if len(response.content) > MAX_AUDIO_BYTES:
            raise TranscriptNotAvailable(
                "Audio file too large for transcription (max 25MB). Try a shorter video."
            )

        kwargs = {"language": language} if language else {}
        try:
            result = await self.client.audio.transcriptions.create(
                model="whisper-1",
                file=("audio.mp3", response.content),
                **kwargs,
            )
        except OpenAIError as e:
            raise AcquisitionFailure(f"Speech-to-text failed: {e}") from e

        text = (result.text or "").strip()
        if not text:
            raise TranscriptNotAvailable("No speech detected in the video audio")

        return Transcript(
            segments=[TranscriptSegment(text=text, offset_ms=0)],
            language=language or "auto",
            source="speech_to_text",
        )


class FallbackTranscriptProvider:
    """Try ``primary`` and fall back to ``fallback`` only when no transcript is available."""

    def __init__(self, primary: TranscriptProvider, fallback: TranscriptProvider):
        self.primary = primary
        self.fallback = fallback

    async def fetch(self, url: str, platform: VideoPlatform, language: str | None = None) -> Transcript:
        try:
            return await self.primary.fetch(url, platform, language)
        except TranscriptNotAvailable as e:
            logger.info(f"Primary transcript unavailable ({e.message}); trying speech-to-text fallback")
        return await self.fallback.fetch(url, platform, language)


def filter_segments(
    segments: list[TranscriptSegment], start_ms: int | None, end_ms: int | None
) -> list[TranscriptSegment]:
    """Keep segments whose offset lies inside the window. Either bound may be open."""
    return [
        s
        for s in segments
        if (start_ms is None or s.offset_ms >= start_ms) and (end_ms is None or s.offset_ms <= end_ms)
    ]


def segments_to_text(segments: list[TranscriptSegment]) -> str:
    return " ".join(s.text.strip() for s in segments if s.text.strip())


def transcript_text(transcript: Transcript, start_ms: int | None, end_ms: int | None) -> str:
    """Flatten the transcript inside the requested window into plain text.

    Raises:
        AcquisitionFailure: If nothing is spoken inside the window.
    """
    segments = transcript.segments
    # Speech-to-text output carries no timing, so the window cannot be applied
    if transcript.source != "speech_to_text":
        segments = filter_segments(segments, start_ms, end_ms)
    elif start_ms is not None or end_ms is not None:
        logger.warning(
            f"Ignoring time window {start_ms}-{end_ms} ms: speech-to-text transcript has no timing"
        )
    text = segments_to_text(segments)
    if not text:
        raise AcquisitionFailure(
            "No transcript content found in the specified time range. "
            "Try adjusting the timestamps or leave them empty to use the full video."
        )
    return text
