"""
External process invocation.
Narrow seam around subprocess so the pipeline can run against a test double.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Best available error text from the process output."""
        return (self.stderr or self.stdout or "").strip()


class ProcessInvoker:
    """Runs an external binary to completion and captures its output."""

    def run(
        self,
        executable: str,
        args: list[str],
        working_dir: Path | None = None,
        timeout: int | None = None,
    ) -> ProcessResult:
        """
        Run an executable and wait for it to finish.

        Args:
            executable: Path or name of the binary
            args: Arguments passed after the executable
            working_dir: Directory to run in (defaults to the current one)
            timeout: Seconds before the process is killed (None waits forever)

        Returns:
            ProcessResult with captured stdout, stderr and exit status. Output is
            decoded as UTF-8, undecodable bytes become U+FFFD.

        Raises:
            OSError: If the binary cannot be launched
            subprocess.TimeoutExpired: If the timeout elapses
        """
        cmd = [str(executable), *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        proc = subprocess.run(
            cmd,
            cwd=working_dir,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return ProcessResult(stdout=proc.stdout, stderr=proc.stderr, returncode=proc.returncode)
