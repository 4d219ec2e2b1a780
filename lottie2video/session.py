"""Per-conversion session workspace.

A Session owns a private temporary directory for one conversion. The
directory is created on entry and removed on exit, whatever the outcome.
"""

import logging
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

@dataclass
class Session:
    """
    Attributes:
        working_root: Parent directory for all session workspaces
        formats: Requested output format identifiers
        width: Viewport width in CSS pixels
        height: Viewport height in CSS pixels
        session_id: Unique identifier, also used to name exported artifacts
    """
    working_root: Path
    formats: Tuple[str, ...]
    width: int
    height: int
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    _open: bool = field(default=False, init=False, repr=False)

    @property
    def workspace(self) -> Path:
        return self.working_root / self.session_id

    @property
    def is_open(self) -> bool:
        return self._open

    def segment_path(self, index: int) -> Path:
        return self.workspace / f"segment_{index:04d}.mp4"

    @property
    def master_path(self) -> Path:
        return self.workspace / "master.mp4"

    @property
    def concat_list_path(self) -> Path:
        return self.workspace / "concat.txt"

    def open(self) -> "Session":
        try:
            self.workspace.mkdir(parents=True, exist_ok=False)
        except FileExistsError as e:
            raise ConfigurationError(
                f"Session workspace already exists: {self.workspace}",
                module="session"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create session workspace {self.workspace}: {e}",
                module="session"
            ) from e
        self._open = True
        logger.debug("Created session workspace %s", self.workspace)
        return self

    def release(self) -> None:
        """Remove the workspace. Safe to call more than once."""
        if self.workspace.exists():
            try:
                shutil.rmtree(self.workspace)
                logger.debug("Removed session workspace %s", self.workspace)
            except OSError as e:
                logger.error("Failed to remove session workspace %s: %s", self.workspace, e)
        self._open = False

    def __enter__(self) -> "Session":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
