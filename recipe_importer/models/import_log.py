"""ImportLog model for import job tracking and rate limiting."""

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String, Text

from recipe_importer.database import Base
from recipe_importer.models.mixins import TimestampMixin


class ImportLog(Base, TimestampMixin):
    """One row per admitted import attempt.

    The row is created as ``pending`` once the metering checks pass and is
    updated as the pipeline advances, so clients that lose their connection
    can poll for the outcome. Rows in the trailing window also drive the
    rate limit.
    """

    __tablename__ = "import_logs"
    __table_args__ = (Index("ix_import_logs_user_created", "user_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False)
    import_type = Column(String(10), nullable=False)  # url, video, image, pdf
    source = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    stage = Column(String(30), nullable=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)
    recipe_name = Column(String(255), nullable=True)
    tokens_used = Column(Integer, nullable=True)
    input_tokens = Column(Integer, nullable=True)
    output_tokens = Column(Integer, nullable=True)
    models_used = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
