"""Error taxonomy for transcription sessions.

Only MalformedResult is recovered inside a session; everything else ends the
session and reaches the HTTP layer as a 500.
"""


class TranscriptionError(Exception):
    """Base class for session failures surfaced to the caller."""


class NoFileUploaded(TranscriptionError):
    pass


class EngineConfigurationError(TranscriptionError):
    """Bad or missing recognition credentials/configuration."""


class AudioPreparationError(TranscriptionError):
    """The upload could not be read or the transcoder failed to launch."""


class MalformedResult(TranscriptionError):
    """A recognition payload could not be parsed. The segment is dropped."""


class EngineCanceledWithError(TranscriptionError):
    def __init__(self, details: str, code: str | None = None):
        super().__init__(details)
        self.details = details
        self.code = code


class SessionTimeoutError(TranscriptionError):
    pass


class UnexpectedProcessingError(TranscriptionError):
    """Wraps any other exception raised while handling a request."""
