"""Segment encoding through an external encoder process

Responsibilities:
- Define the EncoderProcess capability the render workers write frames into
- Spawn ffmpeg (via ffmpeg-python) reading PNG frames from stdin
- Drain encoder diagnostics without letting the stderr pipe fill up
- Decide whether a finished segment is usable

Backpressure comes from the OS pipe: writing a frame to ffmpeg's stdin blocks
until the encoder has consumed enough of the previous data, so at most one
frame plus the pipe buffer is held in memory per worker.
"""

import collections
import logging
import subprocess
import threading
from abc import ABC, abstractmethod
from functools import partial
from pathlib import Path
from typing import Callable, Optional

import ffmpeg

from ..config import FFMPEG_PATH, VideoOptions
from ..exceptions import EncodeError, MetadataError
from ..utils import is_nonempty_file, kill_process_tree
from .command_builders import build_segment_stream

logger = logging.getLogger(__name__)

DIAGNOSTIC_LINES = 40

class EncoderProcess(ABC):
    """A running encoder that turns a stream of raster frames into one file."""

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def write(self, frame: bytes) -> None:
        """Write one frame, blocking while the encoder cannot accept more input."""

    @abstractmethod
    def finish(self, timeout: Optional[float] = None) -> None:
        """Close the input stream and wait for the encoder to exit successfully."""

    @abstractmethod
    def abort(self) -> None:
        """Stop the encoder immediately. Safe to call at any time."""

    @property
    def diagnostics(self) -> str:
        return ""

class FFmpegEncoderProcess(EncoderProcess):
    """ffmpeg reading ``image2pipe`` PNG frames from stdin."""

    def __init__(self, frame_rate: float, output_path: Path,
                 options: Optional[VideoOptions] = None, ffmpeg_path: str = FFMPEG_PATH):
        self.frame_rate = frame_rate
        self.output_path = Path(output_path)
        self.options = options or VideoOptions()
        self.ffmpeg_path = ffmpeg_path
        self._process = None
        self._stderr_lines = collections.deque(maxlen=DIAGNOSTIC_LINES)
        self._stderr_thread = None

    @property
    def diagnostics(self) -> str:
        return "\n".join(self._stderr_lines)

    def _stream_reader(self, stream) -> None:
        """Keep the last lines of ffmpeg's stderr."""
        try:
            for line in iter(stream.readline, b''):
                self._stderr_lines.append(line.decode(errors="replace").rstrip())
        except (OSError, ValueError) as e:
            self._stderr_lines.append(f"Error reading encoder output: {e}")
        finally:
            stream.close()

    def start(self) -> None:
        stream = build_segment_stream(self.frame_rate, self.output_path, self.options)
        logger.debug("Starting encoder: %s", " ".join(ffmpeg.compile(stream, cmd=self.ffmpeg_path)))
        try:
            self._process = ffmpeg.run_async(
                stream, cmd=self.ffmpeg_path, pipe_stdin=True, pipe_stderr=True
            )
        except OSError as e:
            raise EncodeError(f"Could not start {self.ffmpeg_path}: {e}", module="encoder") from e
        self._stderr_thread = threading.Thread(
            target=self._stream_reader,
            args=(self._process.stderr,),
            name=f"ffmpeg-stderr-{self.output_path.stem}",
            daemon=True,
        )
        self._stderr_thread.start()

    def _join_reader(self) -> None:
        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=5)

    def write(self, frame: bytes) -> None:
        try:
            self._process.stdin.write(frame)
        except (BrokenPipeError, ValueError, OSError) as e:
            # The encoder went away; collect its exit status for the report
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                kill_process_tree(self._process)
            self._join_reader()
            raise EncodeError(
                f"Encoder stopped accepting frames (exit code {self._process.returncode}): {e}",
                module="encoder",
                diagnostics=self.diagnostics
            ) from e

    def finish(self, timeout: Optional[float] = None) -> None:
        try:
            self._process.stdin.close()
        except (BrokenPipeError, OSError) as e:
            logger.debug("Encoder stdin already closed: %s", e)
        try:
            returncode = self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            kill_process_tree(self._process)
            self._join_reader()
            raise EncodeError(
                f"Encoder did not finish within {timeout:.1f}s",
                module="encoder",
                diagnostics=self.diagnostics
            ) from e
        self._join_reader()
        if returncode != 0:
            raise EncodeError(
                f"Encoder exited with code {returncode}",
                module="encoder",
                diagnostics=self.diagnostics
            )

    def abort(self) -> None:
        if self._process is None:
            return
        try:
            self._process.stdin.close()
        except (BrokenPipeError, OSError, ValueError):
            pass
        kill_process_tree(self._process)
        self._join_reader()

EncoderFactory = Callable[[float, Path], EncoderProcess]

def ffmpeg_encoder_factory(options: Optional[VideoOptions] = None,
                           ffmpeg_path: str = FFMPEG_PATH) -> EncoderFactory:
    """Return a factory producing FFmpegEncoderProcess instances with fixed options."""
    return partial(FFmpegEncoderProcess, options=options, ffmpeg_path=ffmpeg_path)

class SegmentEncoder:
    """
    Streams ordered frames into one segment file.

    A segment counts as produced only when the encoder exits successfully,
    at least one frame was written and the output file is non-empty. With a
    ``frame_counter`` the decoded frame count must also match what was written.
    """

    def __init__(self, frame_rate: float, output_path: Path,
                 factory: Optional[EncoderFactory] = None,
                 frame_counter: Optional[Callable[[Path], int]] = None,
                 timeout: Optional[float] = None):
        self.frame_rate = frame_rate
        self.output_path = Path(output_path)
        self.factory = factory or ffmpeg_encoder_factory()
        self.frame_counter = frame_counter
        self.timeout = timeout
        self.frames_written = 0
        self._process = None
        self._closed = False

    def open(self) -> None:
        self._process = self.factory(self.frame_rate, self.output_path)
        self._process.start()

    def write_frame(self, frame: bytes) -> None:
        if self._process is None or self._closed:
            raise EncodeError("Segment encoder is not open", module="encoder")
        self._process.write(frame)
        self.frames_written += 1

    def close(self) -> int:
        """
        Finish the segment.

        Returns:
            int: Number of frames in the segment

        Raises:
            EncodeError: If the segment is not usable
        """
        if self._process is None or self._closed:
            raise EncodeError("Segment encoder is not open", module="encoder")
        self._closed = True
        if self.frames_written == 0:
            self._process.abort()
            self._discard()
            raise EncodeError(
                f"No frames were written to {self.output_path.name}",
                module="encoder"
            )
        try:
            self._process.finish(self.timeout)
        except EncodeError:
            self._discard()
            raise
        if not is_nonempty_file(self.output_path):
            self._discard()
            raise EncodeError(
                f"Encoder produced no output at {self.output_path}",
                module="encoder",
                diagnostics=self._process.diagnostics
            )
        if self.frame_counter is not None:
            self._verify_frame_count()
        return self.frames_written

    def _verify_frame_count(self) -> None:
        try:
            encoded = self.frame_counter(self.output_path)
        except MetadataError as e:
            self._discard()
            raise EncodeError(f"Could not verify {self.output_path.name}: {e}", module="encoder") from e
        if encoded != self.frames_written:
            self._discard()
            raise EncodeError(
                f"{self.output_path.name} holds {encoded} frames, expected {self.frames_written}",
                module="encoder",
                diagnostics=self._process.diagnostics
            )

    def abort(self) -> None:
        """Kill the encoder and remove any partial output."""
        self._closed = True
        if self._process is not None:
            self._process.abort()
        self._discard()

    def _discard(self) -> None:
        try:
            self.output_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove partial segment %s: %s", self.output_path, e)
