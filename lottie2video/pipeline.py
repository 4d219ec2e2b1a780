"""High-level pipeline orchestration for Lottie conversion

Responsibilities:
  - Allocate the session workspace and the shared rendering context.
  - Probe the animation, partition its frames and dispatch render workers.
  - Merge the finished segments in index order and derive the loop formats.
  - Release contexts, processes and the workspace on every exit path.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from .config import LOG_DIR, ConversionConfig, normalize_formats
from .document import AnimationDocument
from .exceptions import EmptyAnimationError, TranscodeError
from .formatting import print_header, print_result_table, print_stage, print_warning
from .ffprobe import count_frames
from .render.host import AnimationMetadata, RenderEngine
from .scheduler import WorkerScheduler
from .session import Session
from .utils import Deadline, get_timestamp
from .video.concatenation import concatenate_segments
from .video.encoder import EncoderFactory, ffmpeg_encoder_factory
from .video.partition import partition_frames
from .video.transcode import FormatTranscoder
from .video.worker import RenderWorker

logger = logging.getLogger(__name__)

@dataclass
class ConversionResult:
    """
    Artifacts produced for one session.

    ``artifacts`` maps format identifier to the exported file; ``errors`` maps
    each format whose transcode failed to its TranscodeError. A requested
    format is always in exactly one of the two.
    """
    session_id: str
    artifacts: Dict[str, Path] = field(default_factory=dict)
    errors: Dict[str, TranscodeError] = field(default_factory=dict)
    metadata: Optional[AnimationMetadata] = None
    elapsed: float = 0.0

    def __getitem__(self, output_format: str) -> Path:
        return self.artifacts[output_format]

    def __contains__(self, output_format: str) -> bool:
        return output_format in self.artifacts

    @property
    def succeeded(self) -> bool:
        return bool(self.artifacts) and not self.errors

    def to_dict(self) -> dict:
        """Serialisable shape for a request-handling layer."""
        return {
            "success": not self.errors,
            "session": self.session_id,
            "downloads": {fmt: str(path) for fmt, path in self.artifacts.items()},
            "errors": {fmt: err.message for fmt, err in self.errors.items()},
        }

def _default_engine_factory(config: ConversionConfig) -> Callable[[], RenderEngine]:
    from .render.browser import PlaywrightEngine
    return partial(PlaywrightEngine.from_config, config)

def convert_animation(
    document: AnimationDocument,
    formats: Optional[Iterable[str]] = None,
    config: Optional[ConversionConfig] = None,
    engine_factory: Optional[Callable[[], RenderEngine]] = None,
    encoder_factory: Optional[EncoderFactory] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ConversionResult:
    """
    Convert one animation document into the requested formats.

    Args:
        document: Animation to render
        formats: Format identifiers; defaults to ``config.formats``
        config: Conversion settings
        engine_factory: Creates a rendering engine; called once for the shared
            probe context and once inside every worker thread
        encoder_factory: Creates the EncoderProcess for each segment
        cancel_event: Set by the caller to stop rendering early

    Returns:
        ConversionResult with every successfully produced format and the
        per-format transcode errors

    Raises:
        ConverterError: Any render, encode or merge failure aborts the session
    """
    start_time = time.monotonic()
    config = config or ConversionConfig.from_environment()
    config.validate()
    formats = normalize_formats(formats) if formats is not None else config.formats
    deadline = Deadline(config.timeouts.pipeline)
    cancel_event = cancel_event or threading.Event()
    engine_factory = engine_factory or _default_engine_factory(config)
    encoder_factory = encoder_factory or ffmpeg_encoder_factory(config.encode.video, config.ffmpeg_path)
    frame_counter = partial(count_frames, ffprobe=config.ffprobe_path) if config.verify_segments else None

    width, height = document.viewport(config.default_width, config.default_height)
    session = Session(config.working_root, formats, width, height)
    logger.info("Starting conversion for session %s (%dx%d, formats: %s)",
                session.session_id, width, height, ", ".join(formats))

    with session:
        with engine_factory() as engine, engine.new_host() as probe_host:
            probe_host.initialize(width, height, config.device_scale_factor)
            probe_host.load(document)
            metadata = probe_host.query_metadata()
            logger.info("Animation metadata: %d frames, %g fps", metadata.total_frames, metadata.frame_rate)
            declared = document.declared_frame_rate
            if declared is not None and abs(declared - metadata.frame_rate) > 1e-3:
                logger.warning("Document declares %g fps, renderer reports %g fps; using the renderer value",
                               declared, metadata.frame_rate)
            if document.declared_frame_count not in (None, metadata.total_frames):
                logger.debug("Document declares %d frames (op - ip), renderer reports %d",
                             document.declared_frame_count, metadata.total_frames)
            deadline.check("metadata probe")

            ranges = partition_frames(metadata.total_frames, config.concurrency)
            if not ranges:
                raise EmptyAnimationError(
                    f"Animation '{document.name}' has no playable frames",
                    module="pipeline"
                )

            workers = [
                RenderWorker(
                    frame_range,
                    document,
                    metadata,
                    session.segment_path(frame_range.index),
                    viewport=(width, height),
                    scale_factor=config.device_scale_factor,
                    engine_factory=engine_factory,
                    encoder_factory=encoder_factory,
                    frame_counter=frame_counter,
                    encode_timeout=config.timeouts.encode,
                    cancel_event=cancel_event,
                    deadline=deadline,
                )
                for frame_range in ranges
            ]
            pool_size = min(config.concurrency, len(ranges))
            logger.info("Splitting %d frames into %d ranges on %d workers",
                        metadata.total_frames, len(ranges), pool_size)
            WorkerScheduler(pool_size, cancel_event=cancel_event, deadline=deadline).run(workers)

            deadline.check("merge")
            master = concatenate_segments(
                [session.segment_path(frame_range.index) for frame_range in ranges],
                session.master_path,
                session.concat_list_path,
                expected_duration=metadata.duration if config.verify_segments else None,
                frame_rate=metadata.frame_rate,
                timeout=deadline.clamp(config.timeouts.merge),
                ffmpeg_path=config.ffmpeg_path,
                ffprobe_path=config.ffprobe_path,
            )

            transcoder = FormatTranscoder(
                master,
                config.output_dir,
                session.session_id,
                session.workspace,
                width,
                options=config.encode,
                timeout=config.timeouts.transcode,
                ffmpeg_path=config.ffmpeg_path,
                deadline=deadline,
            )
            artifacts, errors = transcoder.produce_all(formats)

            result = ConversionResult(
                session_id=session.session_id,
                artifacts=artifacts,
                errors=errors,
                metadata=metadata,
                elapsed=time.monotonic() - start_time,
            )

    logger.info("Session %s finished in %.1fs: %d produced, %d failed",
                result.session_id, result.elapsed, len(result.artifacts), len(result.errors))
    return result

def _setup_conversion_logging(input_file: Path) -> tuple:
    """Attach a per-conversion log file."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"{input_file.stem}_{get_timestamp()}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger("lottie2video").addHandler(file_handler)
    return file_handler, log_file

def process_file(input_file: Path, config: ConversionConfig) -> ConversionResult:
    """
    Convert a single Lottie JSON file and print a summary.

    Raises:
        ConverterError: If the document cannot be loaded or rendering fails
    """
    file_handler, log_file = _setup_conversion_logging(input_file)
    try:
        print_header("Starting Conversion")
        logger.info("Conversion log: %s", log_file.name)
        print_stage(f"Input:   {input_file.resolve()}")
        print_stage(f"Output:  {config.output_dir.resolve()}")
        print_stage(f"Formats: {', '.join(config.formats)}")

        document = AnimationDocument.from_file(input_file)
        result = convert_animation(document, config=config)

        print_header("Conversion Summary")
        print_result_table(result)
        if result.metadata is not None:
            print_stage(f"Frames: {result.metadata.total_frames} at {result.metadata.frame_rate:g} fps")
        print_stage(f"Conversion time: {result.elapsed:.1f}s")
        for fmt, error in result.errors.items():
            print_warning(f"{fmt} was not produced: {error.message}")
        return result
    finally:
        logging.getLogger("lottie2video").removeHandler(file_handler)
        file_handler.close()
