"""
Configuration resolver for the Whisper gateway.
Resolves every setting from the process environment, then a .env file, then a default.
"""

import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

# -------------------------------------------------------------- #
# Constants
# -------------------------------------------------------------- #

# whisper.cpp compiled-in defaults
DEFAULT_THREADS = 4
DEFAULT_PROCESSORS = 1
DEFAULT_MODEL = "small"

MODEL_FILE_PREFIX = "ggml"
MODEL_FILE_EXTENSION = "bin"

DEFAULT_ENV_FILE = ".env"

TRUE_VALUES = frozenset({"1", "t", "true", "y", "yes", "on"})

SettingSource = tuple[str, Mapping[str, str | None]]


# -------------------------------------------------------------- #
# Helpers
# -------------------------------------------------------------- #


def parse_bool(value: str | None) -> bool:
    """Parse a flag value from a form field or setting. Anything unrecognised is False."""
    if value is None:
        return False
    return value.strip().lower() in TRUE_VALUES


def resolve_setting(
    key: str, default: str, sources: Sequence[SettingSource]
) -> tuple[str, str]:
    """
    Resolve a single setting against an ordered list of sources.

    Args:
        key: Setting name, looked up under the same name in every source
        default: Value used when no source defines the key
        sources: Ordered (name, mapping) pairs, first match wins

    Returns:
        Tuple of (value, name of the source that supplied it)
    """
    for name, values in sources:
        value = values.get(key)
        if value is not None and value.strip():
            return value.strip(), name
    return default, "default"


def load_env_file(env_file: Path) -> dict[str, str | None]:
    """Read a .env file without touching os.environ. A missing file yields no values."""
    if not env_file.exists():
        logger.info(f"No {env_file} file found, using environment and defaults")
        return {}

    logger.info(f"Loading settings from: {env_file}")
    return dict(dotenv_values(env_file))


# -------------------------------------------------------------- #
# Resolved Configuration
# -------------------------------------------------------------- #


@dataclass(frozen=True)
class ResolvedConfig:
    """Read-only runtime configuration shared by every request."""

    thread_count: int = DEFAULT_THREADS
    process_count: int = DEFAULT_PROCESSORS
    model_name: str = DEFAULT_MODEL
    truncate_seconds: int = 0
    retain_artifacts: bool = False

    whisper_binary_path: Path = Path("whisper.cpp/main")
    model_dir: Path = Path("whisper.cpp/models")
    work_dir: Path = Path("whisper.cpp/samples")
    ffmpeg_path: str = "ffmpeg"

    # 0 disables the per-stage deadline
    stage_timeout: int = 0

    host: str = "0.0.0.0"
    port: int = 9090
    debug: bool = False

    @property
    def model_path(self) -> Path:
        """Model file resolved by the whisper.cpp naming convention."""
        return self.model_dir / f"{MODEL_FILE_PREFIX}-{self.model_name}.{MODEL_FILE_EXTENSION}"

    @property
    def stage_deadline(self) -> int | None:
        return self.stage_timeout or None

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.whisper_binary_path.exists():
            errors.append(f"Whisper binary not found at: {self.whisper_binary_path}")

        if not self.model_path.exists():
            errors.append(f"Whisper model not found at: {self.model_path}")

        if shutil.which(self.ffmpeg_path) is None:
            errors.append(f"ffmpeg not found: {self.ffmpeg_path}")

        return errors


def resolve_config(
    environ: Mapping[str, str] | None = None, env_file: str | Path = DEFAULT_ENV_FILE
) -> ResolvedConfig:
    """
    Resolve the runtime configuration once at startup.

    Every key is looked up in the environment first, then in ``env_file``, and
    finally falls back to its default. Unparsable values are logged and replaced
    by the default, so this never raises.

    Args:
        environ: Environment mapping (defaults to os.environ)
        env_file: Secondary settings file

    Returns:
        The immutable resolved configuration
    """
    if environ is None:
        environ = os.environ

    sources: list[SettingSource] = [
        ("environment", environ),
        (str(env_file), load_env_file(Path(env_file))),
    ]

    def setting(key: str, default: str) -> str:
        value, source = resolve_setting(key, default, sources)
        logger.info(f"{key}={value} (from {source})")
        return value

    def int_setting(key: str, default: int, minimum: int = 0) -> int:
        raw = setting(key, str(default))
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"Invalid integer for {key}: {raw!r}, defaulting to {default}")
            return default
        if value < minimum:
            logger.warning(f"{key} must be >= {minimum}, got {value}, defaulting to {default}")
            return default
        return value

    def path_setting(key: str, default: str) -> Path:
        return Path(setting(key, default)).resolve()

    return ResolvedConfig(
        thread_count=int_setting("WHISPER_THREADS", DEFAULT_THREADS, minimum=1),
        process_count=int_setting("WHISPER_PROCESSORS", DEFAULT_PROCESSORS, minimum=1),
        model_name=setting("WHISPER_MODEL", DEFAULT_MODEL),
        truncate_seconds=int_setting("CUT_MEDIA_SECONDS", 0),
        retain_artifacts=parse_bool(setting("KEEP_FILES", "false")),
        whisper_binary_path=path_setting("WHISPER_BINARY_PATH", "whisper.cpp/main"),
        model_dir=path_setting("WHISPER_MODEL_DIR", "whisper.cpp/models"),
        work_dir=path_setting("SAMPLES_DIR", "whisper.cpp/samples"),
        ffmpeg_path=setting("FFMPEG_PATH", "ffmpeg"),
        stage_timeout=int_setting("STAGE_TIMEOUT_SECONDS", 0),
        host=setting("FLASK_HOST", "0.0.0.0"),
        port=int_setting("FLASK_PORT", 9090, minimum=1),
        debug=parse_bool(setting("FLASK_DEBUG", "false")),
    )
