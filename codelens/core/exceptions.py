"""Exception taxonomy for the relay.

Only ConfigurationError is allowed to end the process. Everything else is
caught at the dispatcher/orchestrator boundary and turned into a notice.
"""
from typing import Optional


class CodelensError(Exception):
    """Base exception for codelens errors."""
    pass


class ConfigurationError(CodelensError):
    """Raised at startup when required configuration is missing."""
    pass


class NormalizationError(CodelensError):
    """Raised when an inbound event cannot be turned into prompt text."""

    def __init__(self, modality: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{modality}: {message}")
        self.modality = modality
        self.cause = cause


class ExtractorNotReadyError(NormalizationError):
    """Raised when OCR is requested before the engine finished initializing."""

    def __init__(self, message: str = "OCR engine is not initialized"):
        super().__init__("image", message)


class CompletionError(CodelensError):
    """Raised when the completion service call fails."""
    pass


class StorageError(CodelensError):
    """Base exception for transcript storage faults."""
    pass


class StorageReadError(StorageError):
    """Raised when a persisted transcript cannot be read or parsed."""
    pass


class StorageWriteError(StorageError):
    """Raised when a transcript cannot be written."""
    pass


class DeliveryError(CodelensError):
    """Raised when a message segment cannot be sent."""
    pass
