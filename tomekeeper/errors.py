"""Error taxonomy for the ingestion pipeline.

Only :class:`BatchValidationError` escapes ``submit_batch``. Every other
pipeline error is captured on the queue item it belongs to.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for all ingestion errors."""


class BatchValidationError(IngestError):
    """The batch was rejected before any item was touched."""


class DuplicateTitleError(IngestError):
    def __init__(self, title: str):
        self.title = title
        super().__init__("Rulebook with this title already exists")


class RetryExhaustedError(IngestError):
    """Raised by the retry wrapper once every attempt has failed."""

    def __init__(self, label: str, attempts: int, last_error: BaseException | None):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        detail = str(last_error) if last_error is not None else ""
        if not detail and last_error is not None:
            detail = type(last_error).__name__
        super().__init__(f"{label} failed after {attempts} attempts: {detail or 'Unknown error'}")


class UploadError(IngestError):
    pass


class ExtractionError(IngestError):
    pass


class WorldAssemblyError(IngestError):
    pass


class InvalidTransitionError(IngestError):
    """A queue item was asked to move to a status its lifecycle forbids."""


class RecordNotFoundError(IngestError):
    pass
