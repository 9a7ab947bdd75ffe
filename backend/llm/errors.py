"""Errors raised while turning generator output into usable content."""

RAW_EXCERPT_LIMIT = 5000


class GenerationError(Exception):
    """Base class for failures of a generation action."""

    retryable = True


class GeneratorUnavailableError(GenerationError):
    """The content generator call itself failed (provider error, missing credential)."""

    retryable = False


class MalformedGenerationError(GenerationError):
    """Generator output could not be coerced into the expected JSON shape."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw_excerpt = (raw or "")[:RAW_EXCERPT_LIMIT]


class ValidationError(MalformedGenerationError):
    """Parsed JSON lacks the minimal required shape (no usable root/label) or exceeds limits."""
