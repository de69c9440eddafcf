"""
Error taxonomy for the translation job engine.

AbortError is cooperative cancellation and always maps a job to CANCELLED.
Every other error raised while a job runs maps that job to FAILED.
"""

from typing import Optional


class TranslatorError(Exception):
    """Base class for all errors raised by the translator."""
    pass


class ConfigurationError(TranslatorError):
    """Required credential or configuration value is missing."""
    pass


class ValidationError(TranslatorError):
    """Malformed user input, rejected before any job is created."""
    pass


class AbortError(TranslatorError):
    """Operation was cancelled through its cancellation token."""

    def __init__(self, message: str = "Request aborted by user."):
        super().__init__(message)


class RemoteCallError(TranslatorError):
    """The translation/extraction client reported a failed call."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ChunkTranslationError(RemoteCallError):
    """A single chunk failed; carries its 1-based position."""

    def __init__(self, chunk_number: int, total_chunks: int, cause: BaseException):
        self.chunk_number = chunk_number
        self.total_chunks = total_chunks
        self.cause = cause
        super().__init__(
            f"Error translating chunk {chunk_number}/{total_chunks}: {cause}"
        )


class InvalidTransitionError(TranslatorError):
    """A job was asked to move to a state its current state cannot reach."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id}: cannot move from {current} to {target}")
