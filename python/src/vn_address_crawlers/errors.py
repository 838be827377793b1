from __future__ import annotations


class ConverterError(RuntimeError):
    pass


class ValidationError(ConverterError):
    pass


class NoValidRecords(ConverterError):
    pass


class InputOrderError(ConverterError):
    pass


class InvalidCursor(ConverterError):
    pass


class CheckpointCorrupt(ConverterError):
    pass


class WorkflowError(ConverterError):
    """A single conversion attempt failed at one of the UI stages."""


class ElementNotFound(WorkflowError):
    pass


class PrefectureNotFound(WorkflowError):
    def __init__(self, original: str, fallback: str | None = None) -> None:
        self.original = original
        self.fallback = fallback
        if fallback is None:
            message = f"Prefecture not found: {original} (no fallback available)"
        else:
            message = f"Prefecture not found: {original} (tried fallback: {fallback})"
        super().__init__(message)


class ConversionTimeout(WorkflowError):
    pass


class ExtractionFailed(WorkflowError):
    pass


class RetryExhaustedError(ConverterError):
    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(str(last_error))
