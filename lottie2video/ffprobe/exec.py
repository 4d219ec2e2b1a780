"""Low-level ffprobe command execution utilities

Responsibilities:
- Execute ffprobe commands with a bounded timeout
- Fetch single stream/format properties with type conversion
- Translate command failures into MetadataError
"""

import logging
import subprocess
from pathlib import Path
from typing import Union

from ..config import FFPROBE_PATH
from ..exceptions import MetadataError

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60.0

_FLOAT_PROPERTIES = ("duration", "start_time")
_INT_PROPERTIES = ("width", "height", "nb_frames", "nb_read_frames")


def get_media_property(
    path: Path,
    stream_type: str,
    property_name: str,
    stream_index: int = 0,
    extra_args: tuple = (),
    ffprobe: str = FFPROBE_PATH
) -> Union[float, int, str]:
    """
    Get a single media property with type conversion.

    Args:
        path: Path to media file
        stream_type: Type of stream ("video" or "format")
        property_name: Name of the property to fetch
        stream_index: Stream index (default 0)
        extra_args: Additional ffprobe flags such as ``-count_frames``
        ffprobe: ffprobe executable

    Returns:
        Property value with appropriate type casting

    Raises:
        MetadataError: If property cannot be retrieved or parsed
    """
    if stream_type == "format":
        args = (
            "-show_entries", f"format={property_name}",
            "-of", "default=noprint_wrappers=1:nokey=1"
        )
    else:
        type_prefix = stream_type[0]  # v for video
        args = (
            "-select_streams", f"{type_prefix}:{stream_index}",
            "-show_entries", f"stream={property_name}",
            "-of", "default=noprint_wrappers=1:nokey=1"
        )

    cmd = [ffprobe, "-v", "error"] + list(extra_args) + list(args) + [str(path)]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True,
                                timeout=PROBE_TIMEOUT)
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        raise MetadataError(f"Could not get {property_name}: {str(e)}", property_name) from e

    value = result.stdout.strip()
    if not value or value.lower() in ["n/a", "nan"]:
        raise MetadataError(f"No valid value found for {property_name}", property_name)

    try:
        if property_name in _FLOAT_PROPERTIES:
            return float(value)
        elif property_name in _INT_PROPERTIES:
            return int(value)
        return value
    except ValueError as e:
        raise MetadataError(f"Could not convert {value} to required type", property_name) from e
