"""FFProbe utilities for media file analysis

This package provides utilities for:
- Executing ffprobe property queries
- Reading the duration and decoded frame count the pipeline validates against
"""

from .exec import MetadataError, get_media_property
from .media import get_duration, count_frames

__all__ = [
    'MetadataError',
    'get_media_property',
    'get_duration',
    'count_frames',
]
