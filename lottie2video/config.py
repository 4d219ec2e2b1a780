"""Configuration settings for the lottie2video rendering pipeline

This module centralizes all configuration settings including:
- Working directory, export and log locations
- Viewport defaults and render concurrency
- Encoder parameters for the master video and the loop formats
- Per-stage timeouts

It provides both user-configurable settings via environment variables
and the structured settings objects consumed by the pipeline.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import ConfigurationError

# Working root directory in /tmp; each session gets its own subdirectory
WORKING_ROOT = Path(os.environ.get("LOTTIE2VIDEO_WORKDIR", "/tmp/lottie2video"))

# Finished artifacts are copied here, outside the session workspace
EXPORT_DIR = Path(os.environ.get("LOTTIE2VIDEO_EXPORT_DIR", str(Path.cwd() / "exports")))

# LOG_DIR: user definable with default of "$HOME/lottie2video_logs"
LOG_DIR = Path(os.environ.get("LOTTIE2VIDEO_LOG_DIR", str(Path.home() / "lottie2video_logs")))

# Logging configuration
LOG_LEVEL = os.environ.get("LOTTIE2VIDEO_LOG_LEVEL", "INFO")

# Render settings
CONCURRENCY = int(os.environ.get("LOTTIE2VIDEO_CONCURRENCY", "4"))
DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080
DEVICE_SCALE_FACTOR = 1.5
BACKGROUND = "white"  # Frames are flattened against this colour
LOTTIE_SCRIPT_URL = os.environ.get(
    "LOTTIE2VIDEO_LOTTIE_SCRIPT_URL",
    "https://cdnjs.cloudflare.com/ajax/libs/bodymovin/5.12.2/lottie.min.js",
)
PROGRESS_LOG_INTERVAL = 50  # frames

# Scheduling
TASK_STAGGER_DELAY = 0.2  # Delay between worker submissions in seconds
MEMORY_PAUSE_PERCENT = 90  # Hold back new workers above this memory usage

# External tools
FFMPEG_PATH = os.environ.get("LOTTIE2VIDEO_FFMPEG", "ffmpeg")
FFPROBE_PATH = os.environ.get("LOTTIE2VIDEO_FFPROBE", "ffprobe")

# Output format identifiers
FORMAT_VIDEO = "mp4"
FORMAT_PALETTE_LOOP = "gif"
FORMAT_LOSSLESS_LOOP = "webp"
SUPPORTED_FORMATS = (FORMAT_VIDEO, FORMAT_PALETTE_LOOP, FORMAT_LOSSLESS_LOOP)
FORMAT_ALIASES = {
    "video": FORMAT_VIDEO,
    "palette_loop": FORMAT_PALETTE_LOOP,
    "paletteloop": FORMAT_PALETTE_LOOP,
    "lossless_loop": FORMAT_LOSSLESS_LOOP,
    "losslessloop": FORMAT_LOSSLESS_LOOP,
}


def normalize_formats(formats) -> Tuple[str, ...]:
    """Map requested format names onto canonical identifiers, keeping request order."""
    if isinstance(formats, str):
        formats = formats.split(",")
    result = []
    for name in formats:
        key = name.strip().lower()
        if not key:
            continue
        key = FORMAT_ALIASES.get(key, key)
        if key not in SUPPORTED_FORMATS:
            raise ConfigurationError(
                f"Unsupported output format '{name}' (expected one of {', '.join(SUPPORTED_FORMATS)})",
                module="config"
            )
        if key not in result:
            result.append(key)
    if not result:
        raise ConfigurationError("No output formats selected", module="config")
    return tuple(result)


@dataclass
class VideoOptions:
    """Encoder options for the per-worker segments and the master video.

    Attributes:
        codec: ffmpeg video encoder
        pix_fmt: Output pixel format
        preset: x264 preset
        crf: Constant Rate Factor value for quality control
    """
    codec: str = "libx264"
    pix_fmt: str = "yuv420p"
    preset: str = "ultrafast"
    crf: int = 18


@dataclass
class PaletteLoopOptions:
    """Options for the palette-optimized GIF loop."""
    fps: float = 15
    scale_flags: str = "lanczos"
    max_colors: int = 256
    dither: str = "sierra2_4a"
    loop: int = 0


@dataclass
class LosslessLoopOptions:
    """Options for the lossless WebP loop. ``fps=None`` keeps the full frame rate."""
    fps: Optional[float] = None
    compression_level: int = 4
    preset: str = "default"
    loop: int = 0


@dataclass
class EncodeOptions:
    video: VideoOptions = field(default_factory=VideoOptions)
    palette_loop: PaletteLoopOptions = field(default_factory=PaletteLoopOptions)
    lossless_loop: LosslessLoopOptions = field(default_factory=LosslessLoopOptions)


@dataclass
class StageTimeouts:
    """Timeouts in seconds. ``pipeline=None`` disables the overall ceiling."""
    browser_launch: float = 60.0
    load: float = 30.0
    capture: float = 15.0
    encode: float = 120.0
    merge: float = 300.0
    transcode: float = 600.0
    pipeline: Optional[float] = None


@dataclass
class ConversionConfig:
    """Main configuration for one conversion run."""
    concurrency: int = CONCURRENCY
    default_width: int = DEFAULT_WIDTH
    default_height: int = DEFAULT_HEIGHT
    device_scale_factor: float = DEVICE_SCALE_FACTOR
    formats: Tuple[str, ...] = (FORMAT_VIDEO,)
    encode: EncodeOptions = field(default_factory=EncodeOptions)
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)
    working_root: Path = WORKING_ROOT
    output_dir: Path = EXPORT_DIR
    ffmpeg_path: str = FFMPEG_PATH
    ffprobe_path: str = FFPROBE_PATH
    lottie_script_url: str = LOTTIE_SCRIPT_URL
    background: str = BACKGROUND
    verify_segments: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.working_root, str):
            self.working_root = Path(self.working_root)
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)
        self.formats = normalize_formats(self.formats)

    @classmethod
    def from_environment(cls, **overrides) -> "ConversionConfig":
        """Create settings from environment-derived defaults and explicit overrides."""
        config = cls(**overrides)
        config.validate()
        return config

    def validate(self) -> None:
        """Validate all configuration settings."""
        if self.concurrency < 1:
            raise ConfigurationError("Concurrency must be at least 1", module="config")
        if self.default_width <= 0 or self.default_height <= 0:
            raise ConfigurationError("Default viewport dimensions must be positive", module="config")
        if self.device_scale_factor <= 0:
            raise ConfigurationError("Device scale factor must be positive", module="config")
        if not 0 <= self.encode.video.crf <= 51:
            raise ConfigurationError("CRF must be between 0 and 51", module="config")
        if self.encode.palette_loop.fps <= 0:
            raise ConfigurationError("GIF frame rate must be positive", module="config")
        if self.encode.lossless_loop.fps is not None and self.encode.lossless_loop.fps <= 0:
            raise ConfigurationError("WebP frame rate must be positive", module="config")
        for name in ("browser_launch", "load", "capture", "encode", "merge", "transcode", "pipeline"):
            value = getattr(self.timeouts, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"Timeout '{name}' must be positive", module="config")
