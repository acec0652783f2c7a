"""Token balance and audit models."""

from sqlalchemy import Column, ForeignKey, Integer, String

from recipe_importer.database import Base
from recipe_importer.models.mixins import TimestampMixin


class TokenAccount(Base, TimestampMixin):
    """Prepaid token balance of one account."""

    __tablename__ = "token_accounts"

    user_id = Column(String(64), primary_key=True)
    balance = Column(Integer, nullable=False, default=0)


class TokenTransaction(Base, TimestampMixin):
    """Audit log entry for every credit and debit."""

    __tablename__ = "token_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    type = Column(String(10), nullable=False)  # credit, debit
    reason = Column(String(50), nullable=False)  # signup_bonus, import_website, import_video, import_media
    related_recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)
    balance_after = Column(Integer, nullable=False)
