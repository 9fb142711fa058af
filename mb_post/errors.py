from __future__ import annotations


NO_IMAGE_MESSAGE = "Please upload at least one product image."
GENERATION_FAILED_MESSAGE = "Something went wrong while generating the posts. Please try again."
GENERATION_IN_PROGRESS_MESSAGE = "A generation is already in progress."


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class EncodingError(RuntimeError):
    """Raised when an image source cannot be read or is not an image."""


class LLMError(RuntimeError):
    """Raised when an OpenAI model call or structured parse fails."""


class InputError(RuntimeError):
    """Raised when a submission is invalid before any backend call."""


class GenerationError(RuntimeError):
    """
    Raised when a generation cycle fails as a whole.

    The message is always safe to show to end users; the underlying cause is
    chained for diagnostics.
    """

    def __init__(self, message: str = GENERATION_FAILED_MESSAGE) -> None:
        super().__init__(message)
