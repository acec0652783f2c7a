"""Enums for model fields."""

from enum import Enum


class SourceKind(str, Enum):
    """Kind of source a recipe is imported from. Determines cost and acquisition strategy."""

    WEBSITE = "website"
    VIDEO = "video"
    IMAGE = "image"
    PDF = "pdf"

    @property
    def is_media(self) -> bool:
        """Check if this source is an uploaded file rather than a URL."""
        return self in (SourceKind.IMAGE, SourceKind.PDF)

    @property
    def import_type(self) -> str:
        """Import type as recorded in the import log."""
        return "url" if self == SourceKind.WEBSITE else self.value


class VideoPlatform(str, Enum):
    """Supported short-form video platforms."""

    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"


class ImportStatus(str, Enum):
    """Status of an import attempt."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class TransactionType(str, Enum):
    """Direction of a token transaction."""

    CREDIT = "credit"
    DEBIT = "debit"
