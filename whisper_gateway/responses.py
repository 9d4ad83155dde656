import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import BinaryIO

from flask import Response, jsonify

from whisper_gateway.errors import GatewayError, NotFoundError, StorageError
from whisper_gateway.models import ResponseEnvelope, TranscriptionResult

logger = logging.getLogger(__name__)

SUBTITLE_DOWNLOAD_NAME = "subtitles.srt"
CHUNK_SIZE = 64 * 1024


def success_response(result: TranscriptionResult) -> tuple[Response, int]:
    envelope = ResponseEnvelope(result=result.text, id=result.job_id)
    return jsonify(envelope.to_dict()), 200


def error_response(error: GatewayError) -> tuple[Response, int]:
    """Envelope carrying only the client-safe message of an error."""
    envelope = ResponseEnvelope(message=error.message)
    return jsonify(envelope.to_dict()), error.status_code


def message_response(message: str, status_code: int) -> tuple[Response, int]:
    return jsonify(ResponseEnvelope(message=message).to_dict()), status_code


def not_allowed_response() -> tuple[Response, int]:
    # Kept as 200 for existing clients that GET /transcribe
    return jsonify(ResponseEnvelope(result="Not allowed").to_dict()), 200


def _stream_file(
    f: BinaryIO, name: str, on_close: Callable[[], None] | None
) -> Iterator[bytes]:
    try:
        with f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                yield chunk
    finally:
        if on_close is not None:
            try:
                on_close()
            except Exception as e:
                logger.error(f"Post-download cleanup of {name} failed: {e}")


def subtitle_response(path: Path, on_close: Callable[[], None] | None = None) -> Response:
    """
    Stream a subtitle file as a download named subtitles.srt.

    Args:
        path: Subtitle file on disk
        on_close: Called once the body has been sent (or the client went away);
            errors it raises are logged only

    Returns:
        Flask response streaming the file

    Raises:
        NotFoundError: If the file disappeared before it could be opened
        StorageError: If the file cannot be opened
    """
    try:
        size = path.stat().st_size
        f = open(path, "rb")
    except FileNotFoundError as e:
        # removed by a concurrent download
        raise NotFoundError(detail=str(e)) from e
    except OSError as e:
        raise StorageError("Error reading the subtitle file", detail=str(e)) from e

    response = Response(
        _stream_file(f, path.name, on_close),
        mimetype="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{SUBTITLE_DOWNLOAD_NAME}"',
            "Content-Length": str(size),
        },
    )
    # HEAD requests never iterate the body
    response.call_on_close(f.close)
    return response
