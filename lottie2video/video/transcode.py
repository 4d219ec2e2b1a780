"""Derive the requested artifacts from the merged master video.

Every format runs as its own job on a small thread pool. A failure is
recorded against its format and never stops the sibling formats.
"""

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from ..command_jobs import TranscodeJob
from ..config import (
    EncodeOptions, FFMPEG_PATH,
    FORMAT_VIDEO, FORMAT_PALETTE_LOOP, FORMAT_LOSSLESS_LOOP
)
from ..exceptions import ConverterError, TranscodeError
from ..utils import Deadline, format_size, get_file_size, is_nonempty_file
from .command_builders import build_gif_command, build_palette_command, build_webp_command

logger = logging.getLogger(__name__)

# Formats re-encoded from the master; mp4 is exported as a plain copy
DERIVED_FORMATS = (FORMAT_PALETTE_LOOP, FORMAT_LOSSLESS_LOOP)

class FormatTranscoder:
    """
    Produces ``<output_dir>/<basename>.<format>`` artifacts from one master video.

    Attributes:
        master: Merged master video
        workspace: Session directory for intermediate files (GIF palette)
        width: Output width for the palette loop
    """

    def __init__(self, master: Path, output_dir: Path, basename: str, workspace: Path,
                 width: int, options: Optional[EncodeOptions] = None,
                 timeout: Optional[float] = None, ffmpeg_path: str = FFMPEG_PATH,
                 deadline: Optional[Deadline] = None):
        self.master = master
        self.output_dir = output_dir
        self.basename = basename
        self.workspace = workspace
        self.width = width
        self.options = options or EncodeOptions()
        self.timeout = timeout
        self.ffmpeg_path = ffmpeg_path
        self.deadline = deadline or Deadline()
        self._producers = {
            FORMAT_VIDEO: self._produce_video,
            FORMAT_PALETTE_LOOP: self._produce_palette_loop,
            FORMAT_LOSSLESS_LOOP: self._produce_lossless_loop,
        }

    def output_path(self, output_format: str) -> Path:
        return self.output_dir / f"{self.basename}.{output_format}"

    def produce(self, output_format: str) -> Path:
        """
        Produce one artifact.

        Raises:
            TranscodeError: If the master is unusable or the transcode fails
        """
        producer = self._producers.get(output_format)
        if producer is None:
            raise TranscodeError(f"Unsupported format: {output_format}", output_format=output_format)
        if not self.master.is_file():
            raise TranscodeError(f"Master video is missing: {self.master}", output_format=output_format)
        derived = output_format in DERIVED_FORMATS
        if derived and not is_nonempty_file(self.master):
            raise TranscodeError(
                f"Master video is empty, cannot derive {output_format}: {self.master}",
                output_format=output_format
            )
        if self.deadline.expired():
            raise TranscodeError("Pipeline deadline passed before transcode", output_format=output_format)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output = self.output_path(output_format)
        try:
            producer(output)
            if derived and not is_nonempty_file(output):
                raise TranscodeError(f"{output_format} output is missing or empty", output_format=output_format)
        except TranscodeError:
            if output.exists():
                output.unlink()
            raise
        logger.info("Produced %s (%s)", output.name, format_size(get_file_size(output)))
        return output

    def produce_all(self, formats: Iterable[str]) -> Tuple[Dict[str, Path], Dict[str, TranscodeError]]:
        """
        Produce every requested format in parallel.

        Returns:
            (artifacts, errors) keyed by format identifier
        """
        formats = list(formats)
        artifacts, errors = {}, {}
        if not formats:
            return artifacts, errors
        with ThreadPoolExecutor(max_workers=len(formats), thread_name_prefix="transcode") as executor:
            futures = {fmt: executor.submit(self.produce, fmt) for fmt in formats}
            for fmt, future in futures.items():
                try:
                    artifacts[fmt] = future.result()
                except TranscodeError as e:
                    logger.error("Format %s failed: %s", fmt, e.message)
                    errors[fmt] = e
                except (ConverterError, OSError) as e:
                    logger.error("Format %s failed: %s", fmt, e)
                    errors[fmt] = TranscodeError(str(e), output_format=fmt)
        return artifacts, errors

    def _timeout(self) -> Optional[float]:
        return self.deadline.clamp(self.timeout)

    def _produce_video(self, output: Path) -> None:
        try:
            shutil.copyfile(self.master, output)
        except OSError as e:
            raise TranscodeError(f"Failed to export master video: {e}", output_format=FORMAT_VIDEO) from e

    def _produce_palette_loop(self, output: Path) -> None:
        options = self.options.palette_loop
        palette = self.workspace / "palette.png"
        try:
            TranscodeJob(
                build_palette_command(self.master, palette, self.width, options, self.ffmpeg_path),
                FORMAT_PALETTE_LOOP, timeout=self._timeout()
            ).execute()
            TranscodeJob(
                build_gif_command(self.master, palette, output, self.width, options, self.ffmpeg_path),
                FORMAT_PALETTE_LOOP, timeout=self._timeout()
            ).execute()
        finally:
            if palette.exists():
                palette.unlink()

    def _produce_lossless_loop(self, output: Path) -> None:
        TranscodeJob(
            build_webp_command(self.master, output, self.options.lossless_loop, self.ffmpeg_path),
            FORMAT_LOSSLESS_LOOP, timeout=self._timeout()
        ).execute()
