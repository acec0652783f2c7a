"""Structured recipe extraction from webpage HTML, transcripts and OCR text."""

import base64
import json
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from recipe_importer.errors import ExtractionFailure
from recipe_importer.schemas.extraction import ExtractedRecipe
from recipe_importer.services.llm import LLMService, TokenUsage, strip_code_fence
from recipe_importer.services.llm_prompts import (
    IMAGE_OCR_PROMPT,
    PDF_OCR_PROMPT,
    PromptContext,
    build_ocr_text_prompt,
    build_system_prompt,
    build_transcript_prompt,
    build_webpage_prompt,
)
from recipe_importer.services.video_metadata import VideoMetadata
from recipe_importer.services.webpage import clean_html

logger = logging.getLogger(__name__)

# Large enough for the whole page text; clean_html output is truncated again by the prompt builder
CLEANED_HTML_LIMIT = 50000


@dataclass
class ExtractionResult:
    """Validated payload plus the model usage it cost."""

    recipe: ExtractedRecipe
    usage: TokenUsage = field(default_factory=TokenUsage)
    models: list[str] = field(default_factory=list)


@dataclass
class OCRResult:
    """Text read from an uploaded image or PDF."""

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""


def parse_extraction_payload(text: str) -> ExtractedRecipe:
    """Parse and validate the model's reply.

    Raises:
        ExtractionFailure: If the reply is not JSON or does not match the schema.
    """
    payload = strip_code_fence(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse extraction response as JSON: {e}")
        logger.debug(f"Raw response: {text[:2000]}")
        raise ExtractionFailure(f"Failed to parse recipe data: {e.msg}") from e

    try:
        return ExtractedRecipe.model_validate(data)
    except ValidationError as e:
        logger.error(f"Extraction response failed schema validation: {e.error_count()} error(s)")
        logger.debug(f"Validation errors: {e.errors()}")
        raise ExtractionFailure("Failed to parse recipe data: response did not match the recipe schema") from e


class RecipeExtractor:
    """Turn acquired content into a validated ``ExtractedRecipe``."""

    def __init__(
        self,
        llm: LLMService,
        extraction_timeout: float = 120.0,
        ocr_timeout: float = 300.0,
    ):
        self.llm = llm
        self.extraction_timeout = extraction_timeout
        self.ocr_timeout = ocr_timeout

    async def _extract(self, ctx: PromptContext, source: str, user_prompt: str) -> ExtractionResult:
        logger.info(f"Calling extraction model (source={source}, reword={ctx.reword}, language={ctx.language})")
        result = await self.llm.generate(
            user_prompt,
            system_prompt=build_system_prompt(ctx, source),
            timeout=self.extraction_timeout,
        )
        recipe = parse_extraction_payload(result.text)
        return ExtractionResult(recipe=recipe, usage=result.usage, models=[result.model])

    async def extract_from_webpage(self, html: str, json_ld: dict | None, ctx: PromptContext) -> ExtractionResult:
        if json_ld:
            logger.info("Found JSON-LD recipe data")
        else:
            logger.info("No JSON-LD found, extracting from page text")
        prompt = build_webpage_prompt(clean_html(html, CLEANED_HTML_LIMIT), json_ld)
        return await self._extract(ctx, "webpage", prompt)

    async def extract_from_transcript(
        self, transcript: str, metadata: VideoMetadata, ctx: PromptContext
    ) -> ExtractionResult:
        prompt = build_transcript_prompt(transcript, metadata.title, metadata.author, metadata.description)
        return await self._extract(ctx, "transcript", prompt)

    async def extract_from_text(self, text: str, ctx: PromptContext) -> ExtractionResult:
        """Extract from text produced by OCR."""
        return await self._extract(ctx, "ocr", build_ocr_text_prompt(text))

    async def transcribe_image(self, data: bytes, mime_type: str) -> OCRResult:
        """Read all text from a recipe photo with a vision-capable model."""
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": mime_type,
                    "data": base64.standard_b64encode(data).decode("utf-8"),
                },
            },
            {"type": "text", "text": IMAGE_OCR_PROMPT},
        ]
        result = await self.llm.generate(
            content, model=self.llm.vision_model, max_tokens=4096, timeout=self.ocr_timeout
        )
        return OCRResult(text=result.text, usage=result.usage, model=result.model)

    async def transcribe_pdf(self, data: bytes) -> OCRResult:
        """Read all recipe text from a PDF document."""
        content = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": base64.standard_b64encode(data).decode("utf-8"),
                },
            },
            {"type": "text", "text": PDF_OCR_PROMPT},
        ]
        result = await self.llm.generate(
            content, model=self.llm.vision_model, max_tokens=8192, timeout=self.ocr_timeout
        )
        return OCRResult(text=result.text, usage=result.usage, model=result.model)
