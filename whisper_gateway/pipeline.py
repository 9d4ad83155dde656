"""
Transcription pipeline.

Drives one request through storage, transcoding and recognition:

    RECEIVED -> VALIDATED -> STORED -> TRANSCODED -> RECOGNIZED -> RESPONDED

The first failure moves the job to ABORTED, cleans up what was created and
re-raises. There is no retry at any stage: ffmpeg and whisper.cpp failures are
deterministic for the same input. A launched process is never cancelled, even
if the client disconnects.
"""

import logging
from enum import Enum
from pathlib import Path

from werkzeug.datastructures import FileStorage

from whisper_gateway.config import ResolvedConfig
from whisper_gateway.errors import GatewayError, NotFoundError, ValidationError
from whisper_gateway.models import TranscriptionOptions, TranscriptionResult
from whisper_gateway.recognizer import WhisperRecognizer
from whisper_gateway.storage import ArtifactKind, JobStorage
from whisper_gateway.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)


class JobStage(Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    STORED = "stored"
    TRANSCODED = "transcoded"
    RECOGNIZED = "recognized"
    RESPONDED = "responded"
    ABORTED = "aborted"


class TranscriptionPipeline:
    """Per-request orchestration of the transcode and recognize stages."""

    def __init__(
        self,
        config: ResolvedConfig,
        storage: JobStorage,
        transcoder: FFmpegTranscoder,
        recognizer: WhisperRecognizer,
    ):
        self.config = config
        self.storage = storage
        self.transcoder = transcoder
        self.recognizer = recognizer

    # -------------------------------------------------------------- #
    # Transcription
    # -------------------------------------------------------------- #

    def validate_upload(self, upload: FileStorage | None) -> FileStorage:
        if upload is None or not upload.filename:
            raise ValidationError("No file provided")
        return upload

    def transcribe(
        self, upload: FileStorage | None, options: TranscriptionOptions
    ) -> TranscriptionResult:
        """
        Run one upload through the full pipeline.

        Args:
            upload: The uploaded "file" form field, None if it was missing
            options: Parsed per-request options

        Returns:
            TranscriptionResult with the job id and the transcript text

        Raises:
            GatewayError: On the first failing stage, after cleanup
        """
        logger.debug(f"Request {JobStage.RECEIVED.value} with {options}")
        upload = self.validate_upload(upload)

        job_id = self.storage.allocate()
        logger.info(f"[{job_id}] Upload {upload.filename!r}")
        stage = self._advance(job_id, JobStage.VALIDATED)

        try:
            raw_path = self.storage.persist_upload(job_id, upload.stream)
            stage = self._advance(job_id, JobStage.STORED)

            audio_path = self.storage.path_for(job_id, ArtifactKind.NORMALIZED_AUDIO)
            self.transcoder.transcode(raw_path, audio_path, self.config.truncate_seconds)
            # the raw container is a disposable intermediate, retention does not apply
            self.storage.cleanup(job_id, [ArtifactKind.RAW_UPLOAD], force=True)
            stage = self._advance(job_id, JobStage.TRANSCODED)

            text = self.recognizer.recognize(audio_path, options)
            self.storage.cleanup(job_id, [ArtifactKind.NORMALIZED_AUDIO])
            stage = self._advance(job_id, JobStage.RECOGNIZED)
        except Exception as e:
            self._abort(job_id, stage, e)
            raise

        self._advance(job_id, JobStage.RESPONDED)
        return TranscriptionResult(job_id=job_id, text=text)

    def _advance(self, job_id: str, stage: JobStage) -> JobStage:
        logger.info(f"[{job_id}] Job {stage.value}")
        return stage

    def _abort(self, job_id: str, stage: JobStage, error: Exception) -> None:
        if isinstance(error, GatewayError):
            logger.error(f"[{job_id}] Job aborted after {stage.value}: {error}")
        else:
            logger.exception(f"[{job_id}] Job aborted after {stage.value}: {error}")

        # Nothing on disk belongs to this job before the upload is stored
        if stage is JobStage.VALIDATED:
            return

        if self.storage.exists(job_id, ArtifactKind.RAW_UPLOAD):
            self.storage.cleanup(job_id, [ArtifactKind.RAW_UPLOAD], force=True)

        leftovers = [
            kind
            for kind in (ArtifactKind.NORMALIZED_AUDIO, ArtifactKind.SUBTITLES)
            if self.storage.exists(job_id, kind)
        ]
        if leftovers:
            self.storage.cleanup(job_id, leftovers)

    # -------------------------------------------------------------- #
    # Subtitles
    # -------------------------------------------------------------- #

    def subtitle_path(self, job_id: str | None) -> Path:
        """
        Locate the subtitle file of a previous job.

        Raises:
            ValidationError: If no id was given
            NotFoundError: If no subtitle file exists under the id
        """
        if not job_id:
            raise ValidationError("ID does not exist")

        path = self.storage.path_for(job_id, ArtifactKind.SUBTITLES)
        if not path.is_file():
            raise NotFoundError(detail=f"No subtitle file at {path}")
        return path

    def release_subtitles(self, job_id: str) -> None:
        """Remove a job's subtitle file once it has been delivered."""
        self.storage.cleanup(job_id, [ArtifactKind.SUBTITLES])
