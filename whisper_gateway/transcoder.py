"""
ffmpeg transcoding adapter.
Converts any input container to the mono 16 kHz signed 16-bit PCM WAV whisper.cpp expects.
"""

import logging
import subprocess
from pathlib import Path

from whisper_gateway.errors import TranscodeFailure
from whisper_gateway.process import ProcessInvoker

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1
CODEC = "pcm_s16le"


class FFmpegTranscoder:
    def __init__(self, invoker: ProcessInvoker, ffmpeg_path: str, timeout: int | None = None):
        self.invoker = invoker
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def build_args(self, raw_path: Path, out_path: Path, truncate_seconds: int = 0) -> list[str]:
        """Build the ffmpeg argument list; -t is only added when truncation is configured."""
        args = ["-y", "-i", str(raw_path)]
        if truncate_seconds > 0:
            args += ["-t", str(truncate_seconds)]
        args += ["-ar", str(SAMPLE_RATE), "-ac", str(CHANNELS), "-c:a", CODEC, str(out_path)]
        return args

    def transcode(self, raw_path: Path, out_path: Path, truncate_seconds: int = 0) -> None:
        """
        Transcode raw_path into a normalized WAV at out_path, overwriting it.

        Raises:
            TranscodeFailure: If ffmpeg cannot be launched, times out or exits non-zero
        """
        args = self.build_args(raw_path, out_path, truncate_seconds)

        try:
            result = self.invoker.run(self.ffmpeg_path, args, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise TranscodeFailure(detail=f"ffmpeg timed out after {e.timeout}s") from e
        except OSError as e:
            raise TranscodeFailure(detail=f"Could not launch {self.ffmpeg_path}: {e}") from e

        if not result.ok:
            raise TranscodeFailure(
                detail=f"ffmpeg exited with status {result.returncode}: {result.diagnostic}"
            )

        logger.info(f"Transcoded {raw_path.name} -> {out_path.name}")
