"""Import attempt tracking: ``ImportLog`` rows plus one-line lifecycle logs."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_importer.models.enums import ImportStatus, SourceKind
from recipe_importer.models.import_log import ImportLog
from recipe_importer.services.llm import TokenUsage

logger = logging.getLogger(__name__)

MAX_SOURCE_LENGTH = 500


class ImportLogger:
    """Persist and update the ``ImportLog`` row of one import attempt."""

    def __init__(self, db: Session):
        self.db = db

    def _emit(self, log: ImportLog) -> None:
        parts = [
            "[recipe_import]",
            f"id={log.id}",
            f"user={log.user_id}",
            f"type={log.import_type}",
            f"status={log.status}",
        ]
        if log.stage:
            parts.append(f"stage={log.stage}")
        if log.recipe_id is not None:
            parts.append(f"recipe={log.recipe_id}")
        if log.tokens_used is not None:
            parts.append(f"tokens={log.tokens_used}")
        if log.duration_ms is not None:
            parts.append(f"duration={log.duration_ms}ms")
        if log.error_message:
            parts.append(f'error="{log.error_message}"')
        line = " ".join(parts)
        if log.status == ImportStatus.FAILED.value:
            logger.warning(line)
        else:
            logger.info(line)

    def start(self, user_id: str, kind: SourceKind, source: str | None) -> ImportLog:
        """Record an admitted attempt. The row counts toward the rate limit."""
        log = ImportLog(
            user_id=user_id,
            import_type=kind.import_type,
            source=source[:MAX_SOURCE_LENGTH] if source else None,
            status=ImportStatus.PENDING.value,
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        self._emit(log)
        return log

    def set_stage(self, log: ImportLog, stage: str) -> None:
        try:
            log.stage = stage
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to record stage {stage} for import {log.id}: {e}")

    def finish(
        self,
        log: ImportLog,
        status: ImportStatus,
        duration_ms: int,
        recipe_id: int | None = None,
        recipe_name: str | None = None,
        tokens_used: int | None = None,
        usage: TokenUsage | None = None,
        models: list[str] | None = None,
        error_message: str | None = None,
    ) -> None:
        """Mark the attempt succeeded or failed. Never raises."""
        try:
            log.status = status.value
            log.duration_ms = duration_ms
            log.recipe_id = recipe_id
            log.recipe_name = recipe_name[:255] if recipe_name else None
            log.tokens_used = tokens_used
            if usage is not None:
                log.input_tokens = usage.input_tokens
                log.output_tokens = usage.output_tokens
            log.models_used = models or None
            log.error_message = error_message
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update import log {log.id}: {e}")
            return
        self._emit(log)

    def get_for_user(self, import_id: int, user_id: str) -> ImportLog | None:
        return (
            self.db.query(ImportLog)
            .filter(ImportLog.id == import_id, ImportLog.user_id == user_id)
            .first()
        )
