"""
Error types raised by the adapter layer.

Every adapter catches downstream failures, logs them and re-raises one of
these with the original exception attached as ``__cause__``.
"""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class UnsupportedFormatError(AssistantError):
    """Audio MIME type is not one the transcription service accepts."""

    def __init__(self, mime_type: str) -> None:
        super().__init__("Unsupported audio format. Please use WebM, WAV, or MP3.")
        self.mime_type = mime_type


class SizeLimitExceededError(AssistantError):
    """Audio payload is larger than the transcription upload limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Audio file size exceeds {limit // (1024 * 1024)}MB limit")
        self.size = size
        self.limit = limit


class TranscriptionFailedError(AssistantError):
    """Hosted speech-to-text call failed."""


class SynthesisFailedError(AssistantError):
    """Hosted text-to-speech call failed."""


class CompletionFailedError(AssistantError):
    """Hosted chat completion or embedding call failed."""


class NoResponseGeneratedError(AssistantError):
    """Chat completion returned no content."""


class StorageFailedError(AssistantError):
    """A read or write against the document/embedding store failed."""


class DocumentNotFoundError(StorageFailedError):
    """No document exists to update."""


class InitializationFailedError(AssistantError):
    """The adapter layer cannot start (e.g. missing API credential)."""
