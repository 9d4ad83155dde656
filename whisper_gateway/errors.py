"""
Error taxonomy for the transcription pipeline.

Every error carries the HTTP status it maps to and a message that is safe to
return to the client. Diagnostic output (tool stderr, OS errors) lives on
``detail`` and is only ever logged.
"""


class GatewayError(Exception):
    """Base class for errors surfaced to clients through the response envelope."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None, detail: str = ""):
        self.message = message or self.public_message
        self.detail = detail
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ValidationError(GatewayError):
    """Missing or malformed request input."""

    status_code = 400
    public_message = "Invalid request"


class StorageError(GatewayError):
    """Filesystem failure while persisting or locating an artifact."""

    public_message = "Error saving the uploaded file"


class TranscodeFailure(GatewayError):
    """ffmpeg could not be launched or exited with a non-zero status."""

    public_message = "Error while encoding to wav"


class RecognitionFailure(GatewayError):
    """whisper.cpp could not be launched or exited with a non-zero status."""

    public_message = "Error while transcribing"


class NotFoundError(GatewayError):
    # The documented surface reports a missing subtitle file as a server error
    public_message = "Subtitle file not found"
