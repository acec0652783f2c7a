"""Webpage acquisition and JSON-LD recipe pre-extraction."""

import json
import logging
import re
from typing import Any

import httpx
from bs4 import BeautifulSoup, Comment

from recipe_importer.errors import AcquisitionFailure

logger = logging.getLogger(__name__)

USER_AGENT = "RecipeImporter/1.0 (Recipe Import Bot)"

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,de;q=0.8",
}

# Tags that never carry recipe content
NOISE_TAGS = ("script", "style", "noscript", "nav", "footer", "header", "svg", "iframe")

ISO_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$",
    re.IGNORECASE,
)


class WebpageFetcher:
    """Fetch webpage HTML with a bounded timeout."""

    def __init__(self, timeout: float = 15.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> str:
        """Fetch HTML for a URL.

        Raises:
            AcquisitionFailure: On timeout, transport error, non-2xx status or
                a non-HTML content type.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=REQUEST_HEADERS,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise AcquisitionFailure(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise AcquisitionFailure(f"Failed to fetch URL: {e}") from e

        if not response.is_success:
            raise AcquisitionFailure(
                f"Failed to fetch URL: {response.status_code} {response.reason_phrase}"
            )

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type and "application/xhtml" not in content_type:
            raise AcquisitionFailure(f"Invalid content type: {content_type}. Expected HTML.")

        logger.info(f"Fetched {len(response.text)} characters of HTML from {url}")
        return response.text


def _is_recipe_type(value: Any) -> bool:
    if isinstance(value, str):
        return value == "Recipe"
    if isinstance(value, list):
        return "Recipe" in value
    return False


def _find_recipe(node: Any) -> dict | None:
    """Search a parsed JSON-LD value for the first Recipe object."""
    if isinstance(node, list):
        for item in node:
            found = _find_recipe(item)
            if found:
                return found
        return None

    if not isinstance(node, dict):
        return None

    if _is_recipe_type(node.get("@type")):
        return node

    graph = node.get("@graph")
    if isinstance(graph, list):
        for item in graph:
            if isinstance(item, dict) and _is_recipe_type(item.get("@type")):
                return item
    return None


def extract_json_ld(html: str) -> dict | None:
    """Extract the first schema.org Recipe object embedded as JSON-LD.

    Handles single objects, top-level arrays, ``@graph`` containers (common
    on WordPress sites) and ``@type`` given as a list. Blocks that fail to
    parse are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", attrs={"type": re.compile(r"application/ld\+json", re.I)}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            parsed = json.loads(raw.strip())
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON-LD block")
            continue

        recipe = _find_recipe(parsed)
        if recipe:
            return recipe
    return None


def clean_html(html: str, max_length: int) -> str:
    """Reduce HTML to its visible text for the extraction prompt.

    Scripts, styles, comments, navigation, headers and footers are removed
    and whitespace is collapsed. Output longer than ``max_length`` is
    truncated with a marker.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    text = re.sub(r"\s+", " ", soup.get_text(" ")).strip()
    if len(text) > max_length:
        text = text[:max_length] + "\n... [truncated]"
    return text


def parse_iso_duration(duration: str | None) -> int | None:
    """Parse an ISO 8601 duration (e.g. ``PT1H30M``) into whole minutes."""
    if not duration or not isinstance(duration, str):
        return None
    match = ISO_DURATION_PATTERN.match(duration.strip())
    if not match or not any(match.groupdict().values()):
        return None
    parts = {k: int(v or 0) for k, v in match.groupdict().items()}
    return parts["days"] * 24 * 60 + parts["hours"] * 60 + parts["minutes"] + parts["seconds"] // 60


def extract_author_name(author: Any) -> str | None:
    """Author may be a string, a Person object, or a list of either."""
    if isinstance(author, list):
        author = author[0] if author else None
    if isinstance(author, str):
        return author or None
    if isinstance(author, dict):
        return author.get("name") or None
    return None


def extract_first_string(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, list) and value and isinstance(value[0], str):
        return value[0]
    return None


def extract_image_url(image: Any) -> str | None:
    """Image may be a URL, a list of URLs, or an ImageObject (or a list of those)."""
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, str):
        return image or None
    if isinstance(image, dict):
        return image.get("url") or image.get("contentUrl") or None
    return None
