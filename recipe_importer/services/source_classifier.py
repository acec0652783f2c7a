"""URL classification and timestamp parsing.

Pure string analysis: nothing in this module touches the network.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from recipe_importer.errors import InputError
from recipe_importer.models.enums import SourceKind, VideoPlatform

# Hosts owned by each platform. A URL on one of these hosts that matches none
# of the platform's ID patterns is rejected rather than treated as a webpage.
PLATFORM_HOSTS: dict[VideoPlatform, tuple[str, ...]] = {
    VideoPlatform.YOUTUBE: ("youtube.com", "youtu.be"),
    VideoPlatform.INSTAGRAM: ("instagram.com",),
    VideoPlatform.TIKTOK: ("tiktok.com",),
}

VIDEO_PATTERNS: dict[VideoPlatform, list[re.Pattern[str]]] = {
    VideoPlatform.YOUTUBE: [
        re.compile(
            r"(?:youtube\.com/watch\?(?:.*&)?v=|youtube\.com/shorts/|youtu\.be/)([a-zA-Z0-9_-]{11})",
            re.IGNORECASE,
        ),
    ],
    VideoPlatform.INSTAGRAM: [
        re.compile(r"instagram\.com/(?:reel|reels|p)/([a-zA-Z0-9_-]+)", re.IGNORECASE),
    ],
    VideoPlatform.TIKTOK: [
        re.compile(r"tiktok\.com/@[\w.-]+/video/(\d+)", re.IGNORECASE),
        re.compile(r"vm\.tiktok\.com/([a-zA-Z0-9]+)", re.IGNORECASE),
    ],
}


@dataclass(frozen=True)
class SourceRoute:
    """Acquisition route decided for a URL."""

    kind: SourceKind
    url: str
    platform: VideoPlatform | None = None
    video_id: str | None = None

    @property
    def is_video(self) -> bool:
        return self.kind == SourceKind.VIDEO

    @property
    def normalized_url(self) -> str:
        if self.platform is None or self.video_id is None:
            return self.url
        return normalized_video_url(self.url, self.platform, self.video_id)


def validate_source_url(url: str) -> str:
    """Check that a URL is an absolute http(s) URL and return it stripped."""
    url = (url or "").strip()
    if not url:
        raise InputError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InputError("Invalid URL format")
    return url


def detect_platform(url: str) -> VideoPlatform | None:
    """Return the video platform whose hosts the URL belongs to, if any."""
    host = (urlparse(url).hostname or "").lower()
    for platform, hosts in PLATFORM_HOSTS.items():
        if any(host == h or host.endswith("." + h) for h in hosts):
            return platform
    return None


def extract_video_id(url: str, platform: VideoPlatform) -> str | None:
    """Extract the platform-specific video identifier from a URL."""
    for pattern in VIDEO_PATTERNS[platform]:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def classify_source(url: str) -> SourceRoute:
    """Decide whether a URL is a generic webpage or a supported video.

    Raises:
        InputError: If the URL is malformed, or belongs to a video platform
            but carries no extractable video identifier.
    """
    url = validate_source_url(url)
    platform = detect_platform(url)
    if platform is None:
        return SourceRoute(kind=SourceKind.WEBSITE, url=url)

    video_id = extract_video_id(url, platform)
    if not video_id:
        raise InputError(f"Could not extract video identifier from {platform.value} URL")

    return SourceRoute(kind=SourceKind.VIDEO, url=url, platform=platform, video_id=video_id)


def normalized_video_url(url: str, platform: VideoPlatform, video_id: str) -> str:
    """Get the canonical URL for transcript and metadata lookups."""
    if platform == VideoPlatform.YOUTUBE:
        return f"https://www.youtube.com/watch?v={video_id}"
    if platform == VideoPlatform.INSTAGRAM:
        return f"https://www.instagram.com/reel/{video_id}/"
    # TikTok URLs keep the username, which the canonical form needs
    return url


def parse_timestamp(value: str | None) -> int | None:
    """Parse ``MM:SS`` or ``HH:MM:SS`` into milliseconds.

    An empty or missing value means "no bound" and returns None.

    Raises:
        InputError: If the value is not numeric, has the wrong number of
            components, or minutes/seconds fall outside 0-59.
    """
    if value is None or not value.strip():
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isascii() and p.isdigit() for p in parts):
        raise InputError(f"Invalid timestamp '{value}'. Use MM:SS or HH:MM:SS")

    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        hours, (minutes, seconds) = 0, numbers
        if minutes > 59 or seconds > 59:
            raise InputError(f"Invalid timestamp '{value}': minutes and seconds must be 0-59")
    else:
        hours, minutes, seconds = numbers
        if hours > 23 or minutes > 59 or seconds > 59:
            raise InputError(
                f"Invalid timestamp '{value}': hours must be 0-23, minutes and seconds 0-59"
            )

    return (hours * 3600 + minutes * 60 + seconds) * 1000


def parse_time_window(start: str | None, end: str | None) -> tuple[int | None, int | None]:
    """Parse an optional start/end pair, rejecting an end before the start."""
    start_ms = parse_timestamp(start)
    end_ms = parse_timestamp(end)
    if start_ms is not None and end_ms is not None and end_ms < start_ms:
        raise InputError("End timestamp must not be before start timestamp")
    return start_ms, end_ms
