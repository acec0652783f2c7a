"""FastAPI dependencies for authentication, database and the import pipeline."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from recipe_importer.config import get_settings
from recipe_importer.database import get_db, get_session_factory
from recipe_importer.services.auth import decode_access_token
from recipe_importer.services.extractor import RecipeExtractor
from recipe_importer.services.llm import LLMService
from recipe_importer.services.media import ImagePipeline
from recipe_importer.services.media_source import MediaSourceLoader
from recipe_importer.services.pipeline import ImportPipeline
from recipe_importer.services.storage import BlobStorage, create_storage
from recipe_importer.services.transcripts import (
    FallbackTranscriptProvider,
    SupadataTranscriptProvider,
    TranscriptProvider,
    WhisperTranscriptProvider,
)
from recipe_importer.services.video_metadata import VideoMetadataClient
from recipe_importer.services.webpage import WebpageFetcher

security = HTTPBearer()


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """Get the account id (``sub`` claim) of the bearer token."""
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(user_id)


@lru_cache
def get_storage() -> BlobStorage:
    """Get the configured blob storage backend."""
    return create_storage(get_settings())


def get_llm_service() -> LLMService:
    """Get LLM service instance."""
    return LLMService()


def get_transcript_provider() -> TranscriptProvider:
    """Caption transcripts, with speech-to-text fallback when OpenAI is configured."""
    settings = get_settings()
    provider: TranscriptProvider = SupadataTranscriptProvider(
        base_url=settings.supadata_base_url,
        api_key=settings.supadata_api_key,
        timeout=settings.transcript_timeout_seconds,
    )
    if settings.openai_api_key:
        provider = FallbackTranscriptProvider(
            provider,
            WhisperTranscriptProvider(
                api_key=settings.openai_api_key,
                audio_extraction_url=settings.audio_extraction_url,
                timeout=settings.transcript_timeout_seconds,
            ),
        )
    return provider


def get_import_pipeline(
    db: Annotated[Session, Depends(get_db)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
    storage: Annotated[BlobStorage, Depends(get_storage)],
    llm_service: Annotated[LLMService, Depends(get_llm_service)],
    transcript_provider: Annotated[TranscriptProvider, Depends(get_transcript_provider)],
) -> ImportPipeline:
    """Get import pipeline with dependencies."""
    settings = get_settings()
    return ImportPipeline(
        db=db,
        session_factory=session_factory,
        webpage_fetcher=WebpageFetcher(timeout=settings.webpage_timeout_seconds),
        metadata_client=VideoMetadataClient(
            youtube_api_key=settings.youtube_api_key,
            timeout=settings.metadata_timeout_seconds,
        ),
        transcript_provider=transcript_provider,
        extractor=RecipeExtractor(
            llm_service,
            extraction_timeout=settings.extraction_timeout_seconds,
            ocr_timeout=settings.ocr_timeout_seconds,
        ),
        media_loader=MediaSourceLoader(storage),
        image_pipeline=ImagePipeline(storage, timeout=settings.image_timeout_seconds),
    )
