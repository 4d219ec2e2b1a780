"""Animation host interface and lifecycle.

An AnimationHost owns exactly one rendering context. The base class enforces
the lifecycle; concrete hosts implement the ``_initialize``, ``_load``,
``_query_metadata``, ``_seek_and_capture`` and ``_dispose`` hooks.

    UNINITIALIZED -> INITIALIZED -> LOADED -> CAPTURING -> LOADED ... -> DISPOSED
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ..document import AnimationDocument
from ..exceptions import CaptureError, InvalidStateError

logger = logging.getLogger(__name__)

class HostState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    LOADED = "loaded"
    CAPTURING = "capturing"
    DISPOSED = "disposed"

@dataclass(frozen=True)
class AnimationMetadata:
    """Playable properties reported by a loaded rendering context."""
    total_frames: int
    frame_rate: float
    natural_width: int
    natural_height: int

    @property
    def duration(self) -> float:
        return self.total_frames / self.frame_rate if self.frame_rate else 0.0

class AnimationHost(ABC):
    """Base class for a single isolated rendering context."""

    def __init__(self):
        self._state = HostState.UNINITIALIZED
        self._lock = threading.Lock()
        self._total_frames = None

    @property
    def state(self) -> HostState:
        return self._state

    def _require(self, *states: HostState) -> None:
        if self._state not in states:
            expected = ", ".join(s.value for s in states)
            raise InvalidStateError(
                f"Host is {self._state.value}, expected {expected}",
                module="render"
            )

    def initialize(self, width: int, height: int, scale_factor: float) -> None:
        """Allocate a rendering context sized to the viewport.

        Raises:
            HostInitError: If the context cannot be allocated
        """
        with self._lock:
            self._require(HostState.UNINITIALIZED)
            self._initialize(width, height, scale_factor)
            self._state = HostState.INITIALIZED

    def load(self, document: AnimationDocument) -> None:
        """Block until the document is parsed and renderable.

        Raises:
            LoadError: On malformed input or load timeout
        """
        with self._lock:
            self._require(HostState.INITIALIZED)
            self._load(document)
            self._state = HostState.LOADED

    def query_metadata(self) -> AnimationMetadata:
        with self._lock:
            self._require(HostState.LOADED)
            metadata = self._query_metadata()
            self._total_frames = metadata.total_frames
            return metadata

    def seek_and_capture(self, frame_index: int) -> bytes:
        """Render exactly ``frame_index`` and return it as a PNG snapshot.

        Raises:
            CaptureError: If the frame is out of range or the context stops responding
        """
        with self._lock:
            self._require(HostState.LOADED)
            if frame_index < 0 or (self._total_frames is not None and frame_index >= self._total_frames):
                raise CaptureError(
                    f"Frame {frame_index} is outside [0, {self._total_frames})",
                    module="render"
                )
            self._state = HostState.CAPTURING
            try:
                return self._seek_and_capture(frame_index)
            finally:
                if self._state is HostState.CAPTURING:
                    self._state = HostState.LOADED

    def dispose(self) -> None:
        """Release the rendering context. Idempotent."""
        with self._lock:
            if self._state is HostState.DISPOSED:
                return
            was = self._state
            self._state = HostState.DISPOSED
        if was is not HostState.UNINITIALIZED:
            try:
                self._dispose()
            except Exception as e:
                logger.warning("Error while disposing rendering context: %s", e)

    def __enter__(self) -> "AnimationHost":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    @abstractmethod
    def _initialize(self, width: int, height: int, scale_factor: float) -> None:
        pass

    @abstractmethod
    def _load(self, document: AnimationDocument) -> None:
        pass

    @abstractmethod
    def _query_metadata(self) -> AnimationMetadata:
        pass

    @abstractmethod
    def _seek_and_capture(self, frame_index: int) -> bytes:
        pass

    @abstractmethod
    def _dispose(self) -> None:
        pass

class RenderEngine(ABC):
    """A rendering engine able to host several independent contexts.

    Engines are bound to the thread that started them; each worker thread
    opens its own.
    """

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def new_host(self) -> AnimationHost:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self) -> "RenderEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
