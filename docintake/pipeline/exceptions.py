class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class DocumentNotFoundError(PipelineError):
    """Raised when a document cannot be found in the database."""


class InvalidLevelError(PipelineError):
    """Raised when the requested processing level is outside 1..4."""
