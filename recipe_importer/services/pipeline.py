"""End-to-end recipe import: admission, acquisition, extraction, persistence, charging."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.orm import Session, sessionmaker

from recipe_importer.errors import (
    InputError,
    InsufficientTokens,
    NotARecipe,
    RateLimitExceeded,
    RecipeImportError,
    TranscriptNotAvailable,
    UnreadableMedia,
)
from recipe_importer.models.enums import ImportStatus, SourceKind
from recipe_importer.models.import_log import ImportLog
from recipe_importer.models.ingredient import Ingredient, MeasurementType
from recipe_importer.schemas.recipe_import import (
    ImportResponse,
    ImportStats,
    MediaImportRequest,
    TokensUsed,
    UrlImportRequest,
)
from recipe_importer.services.extractor import ExtractionResult, RecipeExtractor
from recipe_importer.services.import_log import ImportLogger
from recipe_importer.services.ingredient_resolver import IngredientResolver
from recipe_importer.services.llm import TokenUsage
from recipe_importer.services.llm_prompts import PromptContext
from recipe_importer.services.media import ImagePipeline
from recipe_importer.services.media_source import MediaSourceLoader, validate_storage_paths
from recipe_importer.services.metering import TOKEN_COSTS, MeteringGate
from recipe_importer.services.persistence import RecipeWriter
from recipe_importer.services.source_classifier import SourceRoute, classify_source, parse_time_window
from recipe_importer.services.transcripts import TranscriptProvider, transcript_text
from recipe_importer.services.video_metadata import VideoMetadata, VideoMetadataClient
from recipe_importer.services.webpage import (
    WebpageFetcher,
    extract_author_name,
    extract_first_string,
    extract_image_url,
    extract_json_ld,
    parse_iso_duration,
)

logger = logging.getLogger(__name__)

# Shorter OCR output cannot hold a recipe
MIN_OCR_TEXT_LENGTH = 50

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while importing the recipe"

ContextLoader = Callable[[], Awaitable[PromptContext]]


class ImportStage(str, Enum):
    """Progress of one import."""

    IDLE = "idle"
    RATE_CHECKED = "rate_checked"
    BALANCE_CHECKED = "balance_checked"
    ACQUIRING = "acquiring"
    EXTRACTING = "extracting"
    VALIDATED = "validated"
    PERSISTING = "persisting"
    MEDIA_ATTACHED = "media_attached"
    DEDUCTED = "deducted"
    DONE = "done"
    REJECTED = "rejected"
    ERRORED = "errored"


# Recognized outcomes that end in REJECTED rather than ERRORED
REJECTIONS = (RateLimitExceeded, InsufficientTokens, NotARecipe, TranscriptNotAvailable, UnreadableMedia)


@dataclass
class AcquiredRecipe:
    """Extraction result plus what the media step needs afterwards."""

    extraction: ExtractionResult
    image_url: str | None = None
    video: VideoMetadata | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    models: list[str] = field(default_factory=list)


class ImportPipeline:
    """Run a single import. Instances are created per request."""

    def __init__(
        self,
        db: Session,
        session_factory: sessionmaker,
        webpage_fetcher: WebpageFetcher,
        metadata_client: VideoMetadataClient,
        transcript_provider: TranscriptProvider,
        extractor: RecipeExtractor,
        media_loader: MediaSourceLoader,
        image_pipeline: ImagePipeline,
        metering: MeteringGate | None = None,
        import_logger: ImportLogger | None = None,
        writer: RecipeWriter | None = None,
        on_stage: Callable[[ImportStage], None] | None = None,
    ):
        self.db = db
        self.session_factory = session_factory
        self.webpage_fetcher = webpage_fetcher
        self.metadata_client = metadata_client
        self.transcript_provider = transcript_provider
        self.extractor = extractor
        self.media_loader = media_loader
        self.image_pipeline = image_pipeline
        self.metering = metering or MeteringGate(db)
        self.import_logger = import_logger or ImportLogger(db)
        self.writer = writer or RecipeWriter(db)
        self.on_stage = on_stage

        self.stage = ImportStage.IDLE
        self._log: ImportLog | None = None

    def _advance(self, stage: ImportStage) -> None:
        self.stage = stage
        logger.debug(f"Import stage: {stage.value}")
        if self._log is not None:
            self.import_logger.set_stage(self._log, stage.value)
        if self.on_stage is not None:
            self.on_stage(stage)

    # --- Entry points ---

    async def import_url(self, user_id: str, request: UrlImportRequest) -> ImportResponse:
        """Import from a webpage or a supported video URL."""
        try:
            route = classify_source(request.url)
            start_ms, end_ms = parse_time_window(request.start_timestamp, request.end_timestamp)
        except InputError as e:
            logger.info(f"Rejected import request from user {user_id}: {e.message}")
            return ImportResponse(success=False, error=e.message)

        if route.is_video:

            async def acquire(ctx_loader):
                return await self._acquire_video(route, start_ms, end_ms, request.language, ctx_loader)

        else:

            async def acquire(ctx_loader):
                return await self._acquire_webpage(route, ctx_loader)

        return await self._run(
            user_id, route.kind, route.normalized_url, route.normalized_url, request.language, request.reword, acquire
        )

    async def import_media(self, user_id: str, request: MediaImportRequest) -> ImportResponse:
        """Import from an uploaded image or PDF via OCR."""
        try:
            path = validate_storage_paths(request.storage_paths)
        except InputError as e:
            logger.info(f"Rejected media import request from user {user_id}: {e.message}")
            return ImportResponse(success=False, error=e.message)

        kind = SourceKind(request.media_type)

        async def acquire(ctx_loader):
            return await self._acquire_media(request.storage_paths, kind, ctx_loader)

        response = await self._run(user_id, kind, path, None, request.language, request.reword, acquire)
        if response.success:
            await self.media_loader.cleanup(request.storage_paths)
        return response

    # --- Shared flow ---

    def _admit(self, user_id: str, kind: SourceKind) -> None:
        rate = self.metering.check_rate_limit(user_id)
        if not rate.allowed:
            raise RateLimitExceeded(
                "Rate limit exceeded. Please try again later.",
                remaining=rate.remaining,
                reset_at=rate.reset_at,
            )
        self._advance(ImportStage.RATE_CHECKED)

        balance = self.metering.check_balance(user_id, kind)
        if not balance.allowed:
            raise InsufficientTokens(required=balance.required, available=balance.available)
        self._advance(ImportStage.BALANCE_CHECKED)

    async def _run(
        self,
        user_id: str,
        kind: SourceKind,
        log_source: str | None,
        source_url: str | None,
        language: str,
        reword: bool,
        acquire: Callable[[ContextLoader], Awaitable[AcquiredRecipe]],
    ) -> ImportResponse:
        started = time.monotonic()
        self.stage = ImportStage.IDLE
        self._log = None

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            self._admit(user_id, kind)
            self._log = self.import_logger.start(user_id, kind, log_source)
            self._advance(ImportStage.ACQUIRING)

            context: dict = {}

            async def ctx_loader() -> PromptContext:
                ingredients, units = await self._load_context()
                context["units"] = units
                return PromptContext(
                    ingredients=ingredients,
                    measurement_types=[{"name_en": u.name_en, "name_de": u.name_de} for u in units],
                    language=language,
                    reword=reword,
                )

            acquired = await acquire(ctx_loader)
            extracted = acquired.extraction.recipe
            if not extracted.is_valid_recipe:
                raise NotARecipe(extracted.error_message or "The content does not contain a valid recipe")
            self._advance(ImportStage.VALIDATED)

            self._fill_header_from_source(acquired)

            self._advance(ImportStage.PERSISTING)
            resolver = IngredientResolver(self.db, context.get("units"))
            result = self.writer.write(extracted, user_id, source_url, kind, language, resolver)

            if not kind.is_media:
                image_url = await self._select_image(acquired)
                stored_url = await self.image_pipeline.attach(image_url, result.recipe_id)
                if stored_url:
                    self.writer.set_image(result.recipe_id, stored_url)
                    self._advance(ImportStage.MEDIA_ATTACHED)

            cost = TOKEN_COSTS[kind]
            new_balance = self.metering.deduct(user_id, kind, result.recipe_id)
            if new_balance is not None:
                self._advance(ImportStage.DEDUCTED)

            self._advance(ImportStage.DONE)
            recipe_name = extracted.recipe.name
            self.import_logger.finish(
                self._log,
                ImportStatus.SUCCESS,
                elapsed_ms(),
                recipe_id=result.recipe_id,
                recipe_name=recipe_name,
                tokens_used=cost if new_balance is not None else 0,
                usage=acquired.usage,
                models=acquired.models,
            )
            return ImportResponse(
                success=True,
                import_id=self._log.id,
                recipe_id=result.recipe_id,
                recipe_name=recipe_name,
                tokens_deducted=cost if new_balance is not None else None,
                tokens_remaining=new_balance,
                stats=ImportStats(
                    steps_count=result.steps_written,
                    ingredients_count=result.ingredients_written,
                    new_ingredients_count=result.new_ingredients_count,
                    tokens_used=TokensUsed(
                        input_tokens=acquired.usage.input_tokens,
                        output_tokens=acquired.usage.output_tokens,
                    ),
                ),
            )

        except RecipeImportError as e:
            self._advance(ImportStage.REJECTED if isinstance(e, REJECTIONS) else ImportStage.ERRORED)
            logger.info(f"Import for user {user_id} ended with {type(e).__name__}: {e.message}")
            if self._log is not None:
                self.import_logger.finish(self._log, ImportStatus.FAILED, elapsed_ms(), error_message=e.message)
            return self._failure_response(e)

        except Exception:
            logger.exception(f"Unexpected error importing {kind.value} for user {user_id}")
            self.db.rollback()
            self._advance(ImportStage.ERRORED)
            if self._log is not None:
                self.import_logger.finish(
                    self._log, ImportStatus.FAILED, elapsed_ms(), error_message=UNEXPECTED_ERROR_MESSAGE
                )
            return ImportResponse(
                success=False,
                import_id=self._log.id if self._log is not None else None,
                error=UNEXPECTED_ERROR_MESSAGE,
            )

    def _failure_response(self, error: RecipeImportError) -> ImportResponse:
        response = ImportResponse(
            success=False,
            import_id=self._log.id if self._log is not None else None,
            error=error.message,
        )
        if isinstance(error, RateLimitExceeded):
            response.rate_limit_remaining = error.remaining
            response.rate_limit_reset = error.reset_at
        elif isinstance(error, InsufficientTokens):
            response.tokens_required = error.required
            response.tokens_available = error.available
        return response

    # --- Context ---

    def _read_ingredients(self) -> list[dict]:
        with self.session_factory() as session:
            rows = session.query(Ingredient).order_by(Ingredient.id).all()
            return [{"id": i.id, "name_en": i.name_en, "name_de": i.name_de} for i in rows]

    def _read_measurement_types(self) -> list[MeasurementType]:
        with self.session_factory() as session:
            return session.query(MeasurementType).order_by(MeasurementType.id).all()

    async def _load_context(self) -> tuple[list[dict], list[MeasurementType]]:
        """Read the ingredient and unit vocabularies concurrently, each in its own session."""
        return await asyncio.gather(
            asyncio.to_thread(self._read_ingredients),
            asyncio.to_thread(self._read_measurement_types),
        )

    # --- Acquisition per source kind ---

    async def _acquire_webpage(self, route: SourceRoute, ctx_loader: ContextLoader) -> AcquiredRecipe:
        html = await self.webpage_fetcher.fetch(route.url)
        json_ld = extract_json_ld(html)
        ctx = await ctx_loader()

        self._advance(ImportStage.EXTRACTING)
        extraction = await self.extractor.extract_from_webpage(html, json_ld, ctx)

        page_image = extract_image_url(json_ld.get("image")) if json_ld else None
        header = extraction.recipe.recipe
        if json_ld and header is not None:
            # Structured data fills what the model left empty
            header.author = header.author or extract_author_name(json_ld.get("author"))
            header.recipe_yield = header.recipe_yield or extract_first_string(json_ld.get("recipeYield"))
            if header.prep_time_minutes is None:
                header.prep_time_minutes = parse_iso_duration(json_ld.get("prepTime"))
            if header.cook_time_minutes is None:
                header.cook_time_minutes = parse_iso_duration(json_ld.get("cookTime"))
        return AcquiredRecipe(
            extraction=extraction,
            image_url=page_image or (header.image_url if header else None),
            usage=extraction.usage,
            models=extraction.models,
        )

    async def _acquire_video(
        self,
        route: SourceRoute,
        start_ms: int | None,
        end_ms: int | None,
        language: str,
        ctx_loader: ContextLoader,
    ) -> AcquiredRecipe:
        metadata = await self.metadata_client.fetch(route)
        transcript = await self.transcript_provider.fetch(route.normalized_url, route.platform, language)
        text = transcript_text(transcript, start_ms, end_ms)
        logger.info(
            f"Transcript for {route.platform.value} video {route.video_id}: {len(text)} chars ({transcript.source})"
        )
        ctx = await ctx_loader()

        self._advance(ImportStage.EXTRACTING)
        extraction = await self.extractor.extract_from_transcript(text, metadata, ctx)
        return AcquiredRecipe(
            extraction=extraction,
            video=metadata,
            usage=extraction.usage,
            models=extraction.models,
        )

    async def _acquire_media(
        self, storage_paths: list[str], kind: SourceKind, ctx_loader: ContextLoader
    ) -> AcquiredRecipe:
        source = await self.media_loader.load(storage_paths, kind.value)
        ctx = await ctx_loader()

        self._advance(ImportStage.EXTRACTING)
        if kind == SourceKind.PDF:
            ocr = await self.extractor.transcribe_pdf(source.data)
        else:
            ocr = await self.extractor.transcribe_image(source.data, source.mime_type)

        if len(ocr.text.strip()) < MIN_OCR_TEXT_LENGTH:
            raise UnreadableMedia("Could not extract readable text from the image. Please try a clearer photo.")
        logger.info(f"OCR extracted {len(ocr.text)} chars from {source.path}")

        extraction = await self.extractor.extract_from_text(ocr.text, ctx)
        return AcquiredRecipe(
            extraction=extraction,
            usage=ocr.usage + extraction.usage,
            models=[ocr.model, *extraction.models],
        )

    # --- Media ---

    def _fill_header_from_source(self, acquired: AcquiredRecipe) -> None:
        header = acquired.extraction.recipe.recipe
        if header is None or acquired.video is None:
            return
        if not header.author and acquired.video.author != "Unknown":
            header.author = acquired.video.author

    async def _select_image(self, acquired: AcquiredRecipe) -> str | None:
        if acquired.video is not None:
            return await self.metadata_client.best_thumbnail(acquired.video)
        return acquired.image_url
