"""Domain exceptions raised by the import pipeline.

Every subclass of ``RecipeImportError`` is a recognized outcome: the pipeline
turns it into a ``success=false`` response carrying ``message``. Anything
else reaching the pipeline boundary is treated as unexpected.
"""

from datetime import datetime


class RecipeImportError(Exception):
    """Base class for recognized import failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(RecipeImportError):
    """Malformed URL, timestamp or missing required field."""


class RateLimitExceeded(RecipeImportError):
    """Account is at or above the rolling import ceiling."""

    def __init__(self, message: str, remaining: int, reset_at: datetime):
        super().__init__(message)
        self.remaining = remaining
        self.reset_at = reset_at


class InsufficientTokens(RecipeImportError):
    """Token balance is below the cost of the requested source kind."""

    def __init__(self, required: int, available: int):
        super().__init__("Insufficient tokens")
        self.required = required
        self.available = available


class AcquisitionFailure(RecipeImportError):
    """Source content could not be fetched."""


class TranscriptNotAvailable(AcquisitionFailure):
    """The video has no usable transcript."""

    def __init__(self, message: str = "No transcript available for this video"):
        super().__init__(message)


class ExtractionFailure(RecipeImportError):
    """The extraction model failed or returned a payload that does not validate."""


class NotARecipe(RecipeImportError):
    """The extraction model reported that the content is not a recipe."""


class UnreadableMedia(RecipeImportError):
    """OCR produced too little text, or the uploaded file cannot be processed."""


class PersistenceError(RecipeImportError):
    """The recipe header row could not be created."""


class MediaFailure(RecipeImportError):
    """Hero image download, validation or upload failed."""
