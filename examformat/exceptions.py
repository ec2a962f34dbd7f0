class ProcessingError(Exception):
    """Base class for processing failures."""


class InputFileError(ProcessingError):
    """Raised when an input file is unsupported or unreadable."""


class ExportError(ProcessingError):
    """Raised when the exam document cannot be written."""


class ExtractionError(ProcessingError):
    """Base class for remote extraction failures."""


class QuotaExceeded(ExtractionError):
    """Raised when the extraction service keeps reporting rate/usage limits."""


class MalformedResponse(ExtractionError):
    """Raised when the service returns an empty or schema-invalid payload."""


class TransportFailure(ExtractionError):
    """Raised when the service is unreachable or fails for a non-quota reason."""


class ExtractionCancelled(ExtractionError):
    """Raised when an in-flight extraction is cancelled by the caller."""
