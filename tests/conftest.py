"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides
fixtures and configuration that can be used across all tests.

The pipeline never needs the real ffmpeg or whisper.cpp here: FakeInvoker
stands in for both binaries. Tests that need the real ffmpeg live in
tests/integration and skip when it is not installed.
"""

import io
import math
import struct
import subprocess
import threading
import wave
from pathlib import Path

import pytest
from werkzeug.datastructures import FileStorage

from whisper_gateway.app import create_app
from whisper_gateway.config import ResolvedConfig
from whisper_gateway.process import ProcessInvoker, ProcessResult

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (need ffmpeg on PATH)")
    config.addinivalue_line("markers", "slow: Slow running tests")


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Apply a timeout to all tests except those marked as slow."""
    for item in items:
        if "slow" not in item.keywords:
            item.add_marker(pytest.mark.timeout(30))


# ============================================================================
# Process Doubles
# ============================================================================


class FakeInvoker(ProcessInvoker):
    """
    Fake ffmpeg and whisper.cpp.

    ffmpeg copies its input file to its output file. whisper prints the audio
    file's contents as the transcript and writes <audio>.srt when -osrt is
    passed. Set fail_on to "ffmpeg" or "whisper" to make that tool exit
    non-zero, and launch_error to make it fail to start instead.
    """

    def __init__(self, ffmpeg_path: str, whisper_path: str):
        self.ffmpeg_path = str(ffmpeg_path)
        self.whisper_path = str(whisper_path)
        self.fail_on: str | None = None
        self.launch_error = False

        self.calls: list[tuple[str, list[str], int | None]] = []
        # (audio path, existed when whisper started)
        self.audio_seen: list[tuple[Path, bool]] = []
        self._lock = threading.Lock()

    def run(self, executable, args, working_dir=None, timeout=None) -> ProcessResult:
        tool = "ffmpeg" if executable == self.ffmpeg_path else "whisper"
        with self._lock:
            self.calls.append((tool, list(args), timeout))

        if self.fail_on == tool:
            if self.launch_error:
                raise FileNotFoundError(f"No such file or directory: {executable}")
            return ProcessResult(stdout="", stderr=f"{tool}: secret internal failure", returncode=1)

        if tool == "ffmpeg":
            return self._ffmpeg(args)
        return self._whisper(args)

    def tool_calls(self, tool: str) -> list[list[str]]:
        return [args for name, args, _ in self.calls if name == tool]

    def _ffmpeg(self, args: list[str]) -> ProcessResult:
        source = Path(args[args.index("-i") + 1])
        target = Path(args[-1])
        target.write_bytes(source.read_bytes())
        return ProcessResult(stdout="", stderr="", returncode=0)

    def _whisper(self, args: list[str]) -> ProcessResult:
        audio = Path(args[args.index("-f") + 1])
        with self._lock:
            self.audio_seen.append((audio, audio.is_file()))

        text = audio.read_text()
        if "-osrt" in args:
            Path(f"{audio}.srt").write_text(f"1\n00:00:00,000 --> 00:00:02,000\n{text}\n")
        return ProcessResult(stdout=text, stderr="", returncode=0)


class StubInvoker(ProcessInvoker):
    """Returns a preset result (or raises a preset error) and records every call."""

    def __init__(self, result: ProcessResult | None = None, error: Exception | None = None):
        self.result = result or ProcessResult(stdout="", stderr="", returncode=0)
        self.error = error
        self.calls: list[dict] = []

    def run(self, executable, args, working_dir=None, timeout=None) -> ProcessResult:
        self.calls.append({"executable": executable, "args": list(args), "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.result


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def gateway_config(tmp_path: Path) -> ResolvedConfig:
    """Default configuration rooted in a temporary directory."""
    return ResolvedConfig(
        whisper_binary_path=tmp_path / "whisper.cpp" / "main",
        model_dir=tmp_path / "whisper.cpp" / "models",
        work_dir=tmp_path / "whisper.cpp" / "samples",
        ffmpeg_path="fake-ffmpeg",
    )


@pytest.fixture
def fake_invoker(gateway_config: ResolvedConfig) -> FakeInvoker:
    return FakeInvoker(gateway_config.ffmpeg_path, gateway_config.whisper_binary_path)


@pytest.fixture
def stub_invoker():
    """Factory for StubInvoker instances."""

    def _make(result: ProcessResult | None = None, error: Exception | None = None):
        return StubInvoker(result=result, error=error)

    return _make


@pytest.fixture
def timeout_error():
    return subprocess.TimeoutExpired(cmd="tool", timeout=5)


@pytest.fixture
def make_app(fake_invoker: FakeInvoker):
    """Factory building the Flask app around the fake tools."""

    def _make(config: ResolvedConfig):
        return create_app(config, fake_invoker)

    return _make


@pytest.fixture
def app(make_app, gateway_config: ResolvedConfig):
    return make_app(gateway_config)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def upload():
    """Factory for an uploaded file as Flask hands it to the pipeline."""

    def _make(data: bytes = b"hello from the clip", filename: str = "clip.webm") -> FileStorage:
        return FileStorage(stream=io.BytesIO(data), filename=filename)

    return _make


def work_dir_files(config: ResolvedConfig) -> list[str]:
    """Names of all files currently in the working directory."""
    if not config.work_dir.exists():
        return []
    return sorted(p.name for p in config.work_dir.iterdir())


@pytest.fixture
def list_work_dir():
    return work_dir_files


def write_tone_wav(path: Path, seconds: float, rate: int = 44100, channels: int = 2) -> Path:
    """Write a 440 Hz tone as 16-bit PCM WAV."""
    frames = io.BytesIO()
    for i in range(int(seconds * rate)):
        sample = int(12000 * math.sin(2 * math.pi * 440 * i / rate))
        frames.write(struct.pack("<h", sample) * channels)

    with wave.open(str(path), "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(frames.getvalue())
    return path


@pytest.fixture
def write_tone():
    return write_tone_wav
