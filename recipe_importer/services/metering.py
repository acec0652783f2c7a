"""Rate limiting, balance checks and token deduction for imports."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_importer.config import get_settings
from recipe_importer.models.enums import SourceKind, TransactionType
from recipe_importer.models.import_log import ImportLog
from recipe_importer.models.tokens import TokenAccount, TokenTransaction

logger = logging.getLogger(__name__)

TOKEN_COSTS: dict[SourceKind, int] = {
    SourceKind.WEBSITE: 1,
    SourceKind.VIDEO: 2,
    SourceKind.IMAGE: 3,
    SourceKind.PDF: 3,
}

RATE_LIMIT_MAX = 150
RATE_LIMIT_WINDOW = timedelta(hours=24)

DEDUCTION_REASONS: dict[SourceKind, str] = {
    SourceKind.WEBSITE: "import_website",
    SourceKind.VIDEO: "import_video",
    SourceKind.IMAGE: "import_media",
    SourceKind.PDF: "import_media",
}
SIGNUP_REASON = "signup_bonus"


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_at: datetime


@dataclass
class BalanceStatus:
    allowed: bool
    required: int
    available: int


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class MeteringGate:
    """Guards paid work for one account.

    Checks are read-then-act without locking; two concurrent imports from the
    same account can both pass.
    """

    def __init__(self, db: Session):
        self.db = db

    def check_rate_limit(self, user_id: str, now: datetime | None = None) -> RateLimitStatus:
        """Count admitted import attempts in the trailing window."""
        now = now or datetime.now(UTC)
        window_start = now - RATE_LIMIT_WINDOW

        count, oldest = (
            self.db.query(func.count(ImportLog.id), func.min(ImportLog.created_at))
            .filter(ImportLog.user_id == user_id, ImportLog.created_at >= window_start)
            .one()
        )

        reset_at = _as_utc(oldest) + RATE_LIMIT_WINDOW if oldest is not None else now + RATE_LIMIT_WINDOW
        remaining = max(0, RATE_LIMIT_MAX - count)
        return RateLimitStatus(allowed=count < RATE_LIMIT_MAX, remaining=remaining, reset_at=reset_at)

    def ensure_account(self, user_id: str) -> TokenAccount:
        """Get the token account, creating it with the signup grant on first use."""
        account = self.db.get(TokenAccount, user_id)
        if account is not None:
            return account

        grant = get_settings().signup_token_grant
        account = TokenAccount(user_id=user_id, balance=grant)
        self.db.add(account)
        self.db.add(
            TokenTransaction(
                user_id=user_id,
                amount=grant,
                type=TransactionType.CREDIT.value,
                reason=SIGNUP_REASON,
                balance_after=grant,
            )
        )
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Created token account for user {user_id} with {grant} tokens")
        return account

    def get_balance(self, user_id: str) -> int:
        return self.ensure_account(user_id).balance

    def check_balance(self, user_id: str, kind: SourceKind) -> BalanceStatus:
        required = TOKEN_COSTS[kind]
        available = self.get_balance(user_id)
        return BalanceStatus(allowed=available >= required, required=required, available=available)

    def deduct(self, user_id: str, kind: SourceKind, recipe_id: int) -> int | None:
        """Debit the cost of ``kind`` and record the transaction.

        Returns the new balance, or None when the debit could not be written.
        The recipe is kept either way.
        """
        cost = TOKEN_COSTS[kind]
        try:
            account = self.ensure_account(user_id)
            # Concurrent imports may both pass the balance check; never go below zero
            debited = min(cost, account.balance)
            account.balance = account.balance - debited
            self.db.add(
                TokenTransaction(
                    user_id=user_id,
                    amount=-debited,
                    type=TransactionType.DEBIT.value,
                    reason=DEDUCTION_REASONS[kind],
                    related_recipe_id=recipe_id,
                    balance_after=account.balance,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to deduct {cost} tokens from user {user_id} for recipe {recipe_id}: {e}")
            return None

        logger.info(f"Deducted {debited} tokens from user {user_id}, balance now {account.balance}")
        return account.balance
