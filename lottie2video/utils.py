"""Utility functions for the lottie2video rendering pipeline"""

import logging
import shutil
import subprocess
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

import psutil

from .exceptions import DependencyError, PipelineTimeoutError

logger = logging.getLogger(__name__)

def run_cmd(cmd: List[str], capture_output: bool = True, check: bool = True,
            timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    """Run a command and handle errors"""
    logger.debug("Running command: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=capture_output,
            check=check,
            text=True,
            timeout=timeout
        )
        if result.stdout:
            logger.debug("Command stdout: %s", result.stdout)
        if result.stderr:
            logger.debug("Command stderr: %s", result.stderr)
        return result
    except subprocess.CalledProcessError as e:
        logger.error("Command failed: %s", " ".join(cmd))
        logger.error("Error output: %s", e.stderr)
        raise
    except subprocess.TimeoutExpired:
        logger.error("Command timed out after %.1fs: %s", timeout, " ".join(cmd))
        raise

def kill_process_tree(process: subprocess.Popen, timeout: float = 5.0) -> None:
    """Kill a running process and everything it spawned."""
    if process is None or process.poll() is not None:
        return
    try:
        children = psutil.Process(process.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []
    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    process.kill()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Process %d did not exit after kill", process.pid)

class Deadline:
    """Monotonic wall-clock ceiling shared by the pipeline stages.

    A deadline created with ``seconds=None`` never expires.
    """
    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, stage: str) -> None:
        """Raise PipelineTimeoutError if the ceiling has passed."""
        if self.expired():
            raise PipelineTimeoutError(
                f"Pipeline exceeded {self.seconds:.1f}s during {stage}",
                module="pipeline"
            )

    def clamp(self, timeout: Optional[float]) -> Optional[float]:
        """Return the smaller of a stage timeout and the time left."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

def get_file_size(path: Union[str, Path]) -> int:
    """Get file size in bytes"""
    return Path(path).stat().st_size

def is_nonempty_file(path: Union[str, Path]) -> bool:
    path = Path(path)
    return path.is_file() and path.stat().st_size > 0

def get_timestamp() -> str:
    """Get current timestamp in YYYYMMDD_HHMMSS format"""
    return datetime.now().strftime("%Y%m%d_%H%M%S")

def format_size(size: int) -> str:
    """Format file size for display"""
    for unit in ['B', 'KiB', 'MiB', 'GiB', 'TiB']:
        if size < 1024:
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}TiB"

def check_dependencies(commands: Iterable[str]) -> None:
    """
    Check that the external tools are on PATH.

    Raises:
        DependencyError: naming the first missing tool
    """
    for cmd in commands:
        if shutil.which(cmd) is None:
            logger.error("Required dependency not found: %s", cmd)
            raise DependencyError(f"Required dependency not found: {cmd}", module="utils")
