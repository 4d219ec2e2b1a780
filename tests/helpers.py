"""In-process stand-ins for the browser engine and the ffmpeg encoder."""

import struct
import threading
import zlib
from pathlib import Path
from typing import List, Optional

from lottie2video.exceptions import CaptureError, EncodeError, HostInitError
from lottie2video.render.host import AnimationHost, AnimationMetadata, RenderEngine
from lottie2video.video.encoder import EncoderProcess

def frame_bytes(index: int) -> bytes:
    return b"frame%04d;" % index

def solid_png(width: int, height: int, rgb: tuple) -> bytes:
    """Encode a single-colour RGB PNG."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        body = kind + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    row = b"\x00" + bytes(rgb) * width
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header)
            + chunk(b"IDAT", zlib.compress(row * height)) + chunk(b"IEND", b""))

class FakeHost(AnimationHost):
    def __init__(self, total_frames=100, frame_rate=30.0, fail_on_frame=None,
                 fail_initialize=False, render=frame_bytes):
        super().__init__()
        self.total_frames = total_frames
        self.frame_rate = frame_rate
        self.fail_on_frame = fail_on_frame
        self.fail_initialize = fail_initialize
        self.render = render
        self.captured: List[int] = []
        self.disposed = False
        self.viewport = None

    def _initialize(self, width, height, scale_factor):
        if self.fail_initialize:
            raise HostInitError("no context available", module="fake")
        self.viewport = (width, height, scale_factor)

    def _load(self, document):
        self.document = document

    def _query_metadata(self):
        return AnimationMetadata(self.total_frames, self.frame_rate, 640, 360)

    def _seek_and_capture(self, frame_index):
        if frame_index == self.fail_on_frame:
            raise CaptureError(f"context stopped at frame {frame_index}", module="fake")
        self.captured.append(frame_index)
        return self.render(frame_index)

    def _dispose(self):
        self.disposed = True

class FakeEngine(RenderEngine):
    def __init__(self, **host_kwargs):
        self.host_kwargs = host_kwargs
        self.hosts: List[FakeHost] = []
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def new_host(self):
        host = FakeHost(**self.host_kwargs)
        self.hosts.append(host)
        return host

    def close(self):
        self.closed = True

class FakeEngineFactory:
    """Callable engine factory that remembers every engine it created."""
    def __init__(self, **host_kwargs):
        self.host_kwargs = host_kwargs
        self.engines: List[FakeEngine] = []
        self._lock = threading.Lock()

    def __call__(self):
        engine = FakeEngine(**self.host_kwargs)
        with self._lock:
            self.engines.append(engine)
        return engine

    @property
    def hosts(self) -> List[FakeHost]:
        return [host for engine in self.engines for host in engine.hosts]

class FakeEncoderProcess(EncoderProcess):
    """Writes the concatenated frame payloads to the output file on finish."""
    def __init__(self, frame_rate: float, output_path: Path, fail_on_finish: bool = False,
                 write_output: bool = True, fail_after: Optional[int] = None):
        self.frame_rate = frame_rate
        self.output_path = Path(output_path)
        self.fail_on_finish = fail_on_finish
        self.write_output = write_output
        self.fail_after = fail_after
        self.frames: List[bytes] = []
        self.started = False
        self.finished = False
        self.aborted = False
        self.finish_timeout = None

    @property
    def diagnostics(self) -> str:
        return "fake encoder diagnostics"

    def start(self):
        self.started = True

    def write(self, frame):
        if self.fail_after is not None and len(self.frames) >= self.fail_after:
            raise EncodeError("pipe closed", module="fake", diagnostics=self.diagnostics)
        self.frames.append(frame)

    def finish(self, timeout=None):
        self.finish_timeout = timeout
        if self.fail_on_finish:
            raise EncodeError("encoder exited with code 1", module="fake", diagnostics=self.diagnostics)
        if self.write_output:
            self.output_path.write_bytes(b"".join(self.frames))
        self.finished = True

    def abort(self):
        self.aborted = True

class RecordingEncoderFactory:
    def __init__(self, **process_kwargs):
        self.process_kwargs = process_kwargs
        self.processes: List[FakeEncoderProcess] = []
        self._lock = threading.Lock()

    def __call__(self, frame_rate, output_path):
        process = FakeEncoderProcess(frame_rate, output_path, **self.process_kwargs)
        with self._lock:
            self.processes.append(process)
        return process


class FakeConcatJob:
    """ConcatJob replacement that joins the listed segment files byte for byte."""
    def __init__(self, cmd, timeout=None):
        self.cmd = cmd

    def execute(self):
        concat_file = Path(self.cmd[self.cmd.index("-i") + 1])
        output = Path(self.cmd[-1])
        data = b""
        for line in concat_file.read_text().splitlines():
            data += Path(line[len("file '"):-1]).read_bytes()
        output.write_bytes(data)
