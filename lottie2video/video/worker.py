"""Render worker: one rendering context feeding one segment encoder.

Responsibilities:
- Open a private rendering engine and host in the worker thread
- Capture every frame of the assigned range in ascending order
- Stream each frame straight into the segment encoder
- Stop at the next frame boundary when cancelled or out of time
- Release the host and kill the encoder on every failure path
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..config import PROGRESS_LOG_INTERVAL
from ..document import AnimationDocument
from ..exceptions import LoadError, WorkerCancelledError
from ..render.host import AnimationMetadata, RenderEngine
from ..utils import Deadline
from .encoder import EncoderFactory, SegmentEncoder
from .partition import FrameRange

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class SegmentReport:
    """Outcome of one successful worker run."""
    frame_range: FrameRange
    path: Path
    frames: int
    elapsed: float

    @property
    def index(self) -> int:
        return self.frame_range.index

class RenderWorker:
    """
    Drives one FrameRange to a finished segment.

    Attributes:
        frame_range: Frames this worker renders
        segment_path: Output segment file
        metadata: Metadata probed by the orchestrator; sets the encode frame rate
    """

    def __init__(
        self,
        frame_range: FrameRange,
        document: AnimationDocument,
        metadata: AnimationMetadata,
        segment_path: Path,
        viewport: tuple,
        scale_factor: float,
        engine_factory: Callable[[], RenderEngine],
        encoder_factory: Optional[EncoderFactory] = None,
        frame_counter: Optional[Callable[[Path], int]] = None,
        encode_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[Deadline] = None,
        progress_interval: int = PROGRESS_LOG_INTERVAL,
    ):
        self.frame_range = frame_range
        self.document = document
        self.metadata = metadata
        self.segment_path = segment_path
        self.viewport = viewport
        self.scale_factor = scale_factor
        self.engine_factory = engine_factory
        self.encoder_factory = encoder_factory
        self.frame_counter = frame_counter
        self.encode_timeout = encode_timeout
        self.cancel_event = cancel_event or threading.Event()
        self.deadline = deadline or Deadline()
        self.progress_interval = progress_interval

    @property
    def name(self) -> str:
        return f"Worker {self.frame_range.index}"

    def _check_stop(self) -> None:
        if self.cancel_event.is_set():
            raise WorkerCancelledError(f"{self.name} cancelled", module="worker")
        self.deadline.check(self.name)

    def run(self) -> SegmentReport:
        """
        Render and encode the assigned range.

        Returns:
            SegmentReport for the finished segment

        Raises:
            ConverterError: Any host, encoder, cancellation or timeout failure;
                the partial segment is removed first
        """
        start_time = time.monotonic()
        total = len(self.frame_range)
        logger.info("[%s] Processing frames %d to %d", self.name,
                    self.frame_range.start, self.frame_range.end - 1)
        self._check_stop()

        encoder = None
        with self.engine_factory() as engine, engine.new_host() as host:
            try:
                width, height = self.viewport
                host.initialize(width, height, self.scale_factor)
                host.load(self.document)
                loaded = host.query_metadata()
                if loaded.total_frames < self.frame_range.end:
                    raise LoadError(
                        f"{self.name} context reports {loaded.total_frames} frames, "
                        f"range ends at {self.frame_range.end}",
                        module="worker"
                    )

                encoder = SegmentEncoder(
                    self.metadata.frame_rate,
                    self.segment_path,
                    factory=self.encoder_factory,
                    frame_counter=self.frame_counter,
                )
                encoder.open()

                for done, frame_index in enumerate(self.frame_range):
                    self._check_stop()
                    encoder.write_frame(host.seek_and_capture(frame_index))
                    if done % self.progress_interval == 0:
                        logger.info("[%s] Progress: %d/%d frames", self.name, done, total)

                encoder.timeout = self.deadline.clamp(self.encode_timeout)
                frames = encoder.close()
            except BaseException as e:
                if encoder is not None:
                    encoder.abort()
                if isinstance(e, WorkerCancelledError):
                    logger.info("[%s] Stopped early", self.name)
                else:
                    logger.error("[%s] Failed: %s", self.name, e)
                raise

        elapsed = time.monotonic() - start_time
        logger.info("[%s] Segment finished: %s (%d frames, %.1fs)",
                    self.name, self.segment_path.name, frames, elapsed)
        return SegmentReport(self.frame_range, self.segment_path, frames, elapsed)
