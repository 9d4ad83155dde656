import logging
import shutil
import uuid
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from whisper_gateway.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

# -------------------------------------------------------------- #
# Artifact Kinds
# -------------------------------------------------------------- #


class ArtifactKind(Enum):
    """On-disk files produced or consumed by one job, keyed by file suffix."""

    RAW_UPLOAD = ".webm"
    NORMALIZED_AUDIO = ".wav"
    # whisper.cpp writes subtitles beside the input as <input>.srt
    SUBTITLES = ".wav.srt"


ALL_ARTIFACTS = tuple(ArtifactKind)


def is_valid_job_id(job_id: str) -> bool:
    """Check that a job id is a canonical uuid string."""
    try:
        return str(uuid.UUID(job_id)) == job_id
    except (ValueError, TypeError, AttributeError):
        return False


# -------------------------------------------------------------- #
# Job Storage
# -------------------------------------------------------------- #


class JobStorage:
    """Per-job temporary files under a single working directory."""

    def __init__(self, work_dir: Path, retain_artifacts: bool = False):
        self.work_dir = Path(work_dir)
        self.retain_artifacts = retain_artifacts

    def ensure_work_dir(self) -> None:
        self.work_dir.mkdir(parents=True, exist_ok=True)

    def allocate(self) -> str:
        """Mint a new 128-bit random job id. No file is created."""
        return str(uuid.uuid4())

    def path_for(self, job_id: str, kind: ArtifactKind) -> Path:
        """
        Build the path of an artifact.

        Args:
            job_id: Job identifier returned by allocate()
            kind: Which artifact of the job

        Returns:
            Absolute path inside the working directory

        Raises:
            NotFoundError: If job_id is not a well-formed identifier
        """
        if not is_valid_job_id(job_id):
            raise NotFoundError(detail=f"Malformed job id: {job_id!r}")
        return self.work_dir / f"{job_id}{kind.value}"

    def exists(self, job_id: str, kind: ArtifactKind) -> bool:
        return self.path_for(job_id, kind).is_file()

    def persist_upload(self, job_id: str, stream: BinaryIO) -> Path:
        """
        Stream an upload body to the job's raw-upload path.

        Args:
            job_id: Job identifier
            stream: Readable binary stream of the uploaded file

        Returns:
            Path of the stored upload

        Raises:
            StorageError: If the file already exists or cannot be written
        """
        path = self.path_for(job_id, ArtifactKind.RAW_UPLOAD)
        try:
            with open(path, "xb") as f:
                shutil.copyfileobj(stream, f)
        except FileExistsError as e:
            raise StorageError(detail=f"Upload path already exists: {path}") from e
        except OSError as e:
            # drop the partial write, the path belongs to this job alone
            path.unlink(missing_ok=True)
            raise StorageError(detail=f"Could not write {path}: {e}") from e

        logger.info(f"[{job_id}] Stored upload at {path} ({path.stat().st_size} bytes)")
        return path

    def cleanup(self, job_id: str, kinds: Iterable[ArtifactKind], force: bool = False) -> None:
        """
        Remove artifacts of a job. Failures are logged, never raised.

        Args:
            job_id: Job identifier
            kinds: Artifacts to remove
            force: Remove even when artifact retention is configured
        """
        if self.retain_artifacts and not force:
            logger.debug(f"[{job_id}] Keeping artifacts (retention enabled)")
            return

        for kind in kinds:
            try:
                path = self.path_for(job_id, kind)
                path.unlink()
                logger.info(f"[{job_id}] Removed {kind.name.lower()} file: {path}")
            except FileNotFoundError:
                logger.warning(f"[{job_id}] Could not remove {kind.name.lower()}: already gone")
            except (OSError, NotFoundError) as e:
                logger.error(f"[{job_id}] Could not remove {kind.name.lower()}: {e}")
