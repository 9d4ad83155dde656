"""
Flask application for the Whisper gateway.
Wires the transcription pipeline to its HTTP surface.
"""

import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from whisper_gateway import __version__
from whisper_gateway.config import ResolvedConfig, resolve_config
from whisper_gateway.errors import GatewayError
from whisper_gateway.models import TranscriptionOptions
from whisper_gateway.pipeline import TranscriptionPipeline
from whisper_gateway.process import ProcessInvoker
from whisper_gateway.recognizer import WhisperRecognizer
from whisper_gateway.responses import (
    error_response,
    message_response,
    not_allowed_response,
    subtitle_response,
    success_response,
)
from whisper_gateway.storage import JobStorage
from whisper_gateway.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)


def build_pipeline(config: ResolvedConfig, invoker: ProcessInvoker) -> TranscriptionPipeline:
    storage = JobStorage(config.work_dir, retain_artifacts=config.retain_artifacts)
    storage.ensure_work_dir()

    return TranscriptionPipeline(
        config=config,
        storage=storage,
        transcoder=FFmpegTranscoder(invoker, config.ffmpeg_path, timeout=config.stage_deadline),
        recognizer=WhisperRecognizer(invoker, config),
    )


def create_app(
    config: ResolvedConfig | None = None, invoker: ProcessInvoker | None = None
) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Resolved configuration (resolved from the environment when omitted)
        invoker: Process invoker used for ffmpeg and whisper.cpp

    Returns:
        Configured Flask app
    """
    if config is None:
        config = resolve_config()
    if invoker is None:
        invoker = ProcessInvoker()

    pipeline = build_pipeline(config, invoker)

    app = Flask(__name__)
    app.extensions["whisper_gateway"] = pipeline

    # -------------------------------------------------------------- #
    # Routes
    # -------------------------------------------------------------- #

    @app.route("/transcribe", methods=["GET", "POST"])
    def transcribe():
        """
        Transcribe an uploaded audio/video file.

        Accepts multipart/form-data with:
        - file: Media file (any container ffmpeg can read)
        - lang: Optional language code (default: en)
        - translate: Optional flag, translate to English instead of transcribing
        - subs: Optional flag, also produce subtitles for /getsubs
        - speedUp: Optional flag, faster lower-fidelity decoding
        """
        if request.method == "GET":
            return not_allowed_response()

        logger.info("Got POST for transcribing...")
        options = TranscriptionOptions.from_form(request.form)
        result = pipeline.transcribe(request.files.get("file"), options)
        return success_response(result)

    @app.route("/getsubs", methods=["GET"])
    def get_subs():
        """Download the subtitles of a previous job; removed afterwards unless files are kept."""
        job_id = request.args.get("id", "")
        path = pipeline.subtitle_path(job_id)

        logger.info(f"[{job_id}] Sending subtitles")
        return subtitle_response(path, on_close=lambda: pipeline.release_subtitles(job_id))

    @app.route("/status", methods=["GET"])
    def status():
        errors = config.validate()

        return (
            jsonify(
                {
                    "status": "ok" if not errors else "degraded",
                    "version": __version__,
                    "model": config.model_name,
                    "threads": config.thread_count,
                    "processors": config.process_count,
                    "truncate_seconds": config.truncate_seconds,
                    "keep_files": config.retain_artifacts,
                    "errors": errors,
                }
            ),
            200,
        )

    # -------------------------------------------------------------- #
    # Error Handlers
    # -------------------------------------------------------------- #

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error: GatewayError):
        logger.warning(f"{request.method} {request.path} failed ({error.status_code}): {error}")
        return error_response(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return message_response(error.name, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}: {error}")
        return error_response(GatewayError())

    return app
