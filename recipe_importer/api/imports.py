"""Recipe import API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from recipe_importer.api.dependencies import get_current_user_id, get_import_pipeline
from recipe_importer.database import get_db
from recipe_importer.schemas.recipe_import import (
    ImportJobResponse,
    ImportResponse,
    MediaImportRequest,
    UrlImportRequest,
)
from recipe_importer.services.import_log import ImportLogger
from recipe_importer.services.pipeline import ImportPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/recipes", tags=["recipe-import"])


@router.post("/import", response_model=ImportResponse, response_model_exclude_none=True)
async def import_recipe_from_url(
    data: UrlImportRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    pipeline: Annotated[ImportPipeline, Depends(get_import_pipeline)],
):
    """Import a recipe from a webpage or a YouTube, Instagram or TikTok video.

    Domain failures (rate limit, tokens, not a recipe, ...) return 200 with
    ``success=false``.
    """
    logger.info(f"URL import requested by user {user_id}: {data.url}")
    return await pipeline.import_url(user_id, data)


@router.post("/import/media", response_model=ImportResponse, response_model_exclude_none=True)
async def import_recipe_from_media(
    data: MediaImportRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    pipeline: Annotated[ImportPipeline, Depends(get_import_pipeline)],
):
    """Import a recipe from an uploaded photo or PDF."""
    logger.info(f"{data.media_type} import requested by user {user_id}")
    return await pipeline.import_media(user_id, data)


@router.get("/import/{import_id}", response_model=ImportJobResponse, response_model_exclude_none=True)
async def get_import_status(
    import_id: int,
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
):
    """Get the status of an import attempt."""
    import_log = ImportLogger(db).get_for_user(import_id, user_id)
    if not import_log:
        raise HTTPException(status_code=404, detail="Import not found")
    return import_log
