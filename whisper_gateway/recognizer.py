"""
whisper.cpp recognition adapter.
Runs the whisper.cpp command line binary on a normalized WAV and captures the transcript.
"""

import logging
import subprocess
from pathlib import Path

from whisper_gateway.config import DEFAULT_PROCESSORS, DEFAULT_THREADS, ResolvedConfig
from whisper_gateway.errors import RecognitionFailure
from whisper_gateway.models import TranscriptionOptions
from whisper_gateway.process import ProcessInvoker

logger = logging.getLogger(__name__)


class WhisperRecognizer:
    def __init__(self, invoker: ProcessInvoker, config: ResolvedConfig):
        self.invoker = invoker
        self.config = config

    def build_args(self, audio_path: Path, options: TranscriptionOptions) -> list[str]:
        """
        Build the whisper.cpp argument list for one request.

        Timestamps are always disabled (-nt) so stdout is plain text. Thread and
        processor counts are only passed when they differ from whisper.cpp's own
        defaults.

        Args:
            audio_path: Normalized WAV to transcribe
            options: Per-request options

        Returns:
            Argument list (without the binary)
        """
        args = ["-m", str(self.config.model_path), "-nt", "-l", options.language]

        if options.subtitles:
            args.append("-osrt")
        if options.speed_up:
            args.append("--speed-up")
        if options.translate:
            args.append("--translate")

        if self.config.thread_count != DEFAULT_THREADS:
            args += ["-t", str(self.config.thread_count)]
        if self.config.process_count != DEFAULT_PROCESSORS:
            args += ["-p", str(self.config.process_count)]

        args += ["-f", str(audio_path)]
        return args

    def recognize(self, audio_path: Path, options: TranscriptionOptions) -> str:
        """
        Transcribe a normalized WAV file.

        When subtitles are requested whisper.cpp writes <audio>.srt as a side
        effect; its presence is checked when the subtitles are downloaded.

        Returns:
            Transcript text as printed by whisper.cpp

        Raises:
            RecognitionFailure: If whisper.cpp cannot be launched, times out or exits non-zero
        """
        binary = str(self.config.whisper_binary_path)
        args = self.build_args(audio_path, options)
        logger.info(f"Running whisper: {binary} {' '.join(args)}")

        try:
            result = self.invoker.run(binary, args, timeout=self.config.stage_deadline)
        except subprocess.TimeoutExpired as e:
            raise RecognitionFailure(detail=f"whisper timed out after {e.timeout}s") from e
        except OSError as e:
            raise RecognitionFailure(detail=f"Could not launch {binary}: {e}") from e

        if not result.ok:
            raise RecognitionFailure(
                detail=f"whisper exited with status {result.returncode}: {result.diagnostic}"
            )

        return result.stdout
