"""
command_jobs.py

Defines a base class for ffmpeg command jobs and specialized implementations
for the pipeline steps that run a command to completion (segment merge and
loop transcodes).
"""

import logging
import subprocess
from typing import List, Optional

from .utils import run_cmd
from .exceptions import CommandExecutionError, MergeError, TranscodeError

logger = logging.getLogger(__name__)

def _stderr_tail(stderr: Optional[str], lines: int = 20) -> str:
    if not stderr:
        return ""
    return "\n".join(stderr.strip().splitlines()[-lines:])

class CommandJob:
    """
    Base class representing a command job.

    Attributes:
        cmd (List[str]): The command to run
        timeout (Optional[float]): Seconds before the command is killed
    """
    def __init__(self, cmd: List[str], timeout: Optional[float] = None):
        self.cmd = cmd
        self.timeout = timeout

    def execute(self) -> None:
        """
        Execute the stored command.

        Raises:
            CommandExecutionError: If command fails or times out
        """
        logger.debug("Executing command: %s", " ".join(self.cmd))
        try:
            run_cmd(self.cmd, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            raise CommandExecutionError(
                f"Command failed with exit code {e.returncode}: {self.cmd[0]}",
                module="command_jobs",
                stderr=_stderr_tail(e.stderr)
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CommandExecutionError(
                f"Command timed out after {self.timeout:.1f}s: {self.cmd[0]}",
                module="command_jobs",
                stderr=_stderr_tail(e.stderr if isinstance(e.stderr, str) else None)
            ) from e
        except OSError as e:
            raise CommandExecutionError(
                f"Command could not be started: {e}",
                module="command_jobs"
            ) from e

class ConcatJob(CommandJob):
    """Job for concatenating encoded segments."""
    def execute(self) -> None:
        try:
            super().execute()
        except CommandExecutionError as e:
            detail = f": {e.stderr}" if e.stderr else ""
            raise MergeError(
                f"Merge process failed: {e.message}{detail}",
                module="concatenation"
            ) from e

class TranscodeJob(CommandJob):
    """Job for one transcode pass of a loop format."""
    def __init__(self, cmd: List[str], output_format: str, timeout: Optional[float] = None):
        super().__init__(cmd, timeout)
        self.output_format = output_format

    def execute(self) -> None:
        try:
            super().execute()
        except CommandExecutionError as e:
            detail = f": {e.stderr}" if e.stderr else ""
            raise TranscodeError(
                f"{self.output_format} transcode failed: {e.message}{detail}",
                output_format=self.output_format
            ) from e
