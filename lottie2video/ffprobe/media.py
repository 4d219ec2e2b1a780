"""High-level media property extraction

Responsibilities:
- Read the merged master duration for validation
- Handle duration calculations with fallbacks
- Count decoded frames of an encoded segment
"""

import logging
from pathlib import Path

from ..config import FFPROBE_PATH
from .exec import get_media_property, MetadataError

logger = logging.getLogger(__name__)

def get_duration(path: Path, ffprobe: str = FFPROBE_PATH) -> float:
    """Get video duration, falling back to the container duration"""
    try:
        duration = get_media_property(path, "video", "duration", ffprobe=ffprobe)
        if duration > 0:
            return duration
        raise MetadataError("Invalid duration value", "duration")
    except MetadataError:
        format_duration = get_media_property(path, "format", "duration", ffprobe=ffprobe)
        if format_duration > 0:
            return format_duration
        raise MetadataError(f"No positive duration found for {path.name}", "duration")

def count_frames(path: Path, ffprobe: str = FFPROBE_PATH) -> int:
    """Decode the first video stream and return the number of frames read."""
    return get_media_property(
        path, "video", "nb_read_frames",
        extra_args=("-count_frames",),
        ffprobe=ffprobe
    )
