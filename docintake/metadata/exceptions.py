class MetadataError(Exception):
    """Base exception for structured metadata extraction."""


class MetadataValidationError(MetadataError):
    """Raised when extracted data fails required-field or consistency checks."""


class MetadataExtractionError(MetadataError):
    """Raised when the extraction agent cannot produce a usable answer."""
