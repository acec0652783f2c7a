"""Token balance API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recipe_importer.api.dependencies import get_current_user_id
from recipe_importer.database import get_db
from recipe_importer.schemas.recipe_import import TokenBalanceResponse
from recipe_importer.services.metering import MeteringGate

router = APIRouter(prefix="/api/v1/tokens", tags=["tokens"])


@router.get("/balance", response_model=TokenBalanceResponse)
async def get_token_balance(
    db: Annotated[Session, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
):
    """Get the caller's token balance and remaining imports in the rate limit window."""
    gate = MeteringGate(db)
    rate = gate.check_rate_limit(user_id)
    return TokenBalanceResponse(
        balance=gate.get_balance(user_id),
        rate_limit_remaining=rate.remaining,
        rate_limit_reset=rate.reset_at,
    )
