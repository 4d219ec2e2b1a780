"""Handles concatenation of encoded segments into the master video."""

import logging
from pathlib import Path
from typing import List, Optional

from ..command_jobs import ConcatJob
from ..config import FFMPEG_PATH, FFPROBE_PATH
from ..exceptions import MergeError, MetadataError, SegmentMissingError
from ..ffprobe import get_duration
from ..utils import is_nonempty_file
from .command_builders import build_concat_command

logger = logging.getLogger(__name__)

# Extra slack on top of one frame for container timestamp rounding
DURATION_SLACK = 0.05

def _concat_line(segment: Path) -> str:
    escaped = str(segment.absolute()).replace("\\", "/").replace("'", "'\\''")
    return f"file '{escaped}'"

def write_concat_list(segments: List[Path], concat_file: Path) -> None:
    """Write an ffmpeg concat demuxer list in the given order"""
    with open(concat_file, "w") as f:
        for segment in segments:
            f.write(_concat_line(segment) + "\n")

def concatenate_segments(
    segments: List[Path],
    output_file: Path,
    concat_file: Path,
    expected_duration: Optional[float] = None,
    frame_rate: Optional[float] = None,
    timeout: Optional[float] = None,
    ffmpeg_path: str = FFMPEG_PATH,
    ffprobe_path: str = FFPROBE_PATH
) -> Path:
    """
    Concatenate encoded segments into one master video without re-encoding.

    Args:
        segments: Segment paths ordered by worker index
        output_file: Master video path
        concat_file: Where to write the concat list
        expected_duration: When given with frame_rate, the merged duration
            must match it within one frame
        timeout: Seconds before the merge process is killed

    Raises:
        SegmentMissingError: If any segment is absent or empty
        MergeError: If the merge process fails or its output is unusable
    """
    if not segments:
        raise SegmentMissingError("No segments to merge", module="concatenation")
    for index, segment in enumerate(segments):
        if not segment.exists():
            raise SegmentMissingError(f"Segment {index} is missing: {segment}", module="concatenation")
        if not is_nonempty_file(segment):
            raise SegmentMissingError(f"Segment {index} is empty: {segment}", module="concatenation")

    logger.info("Merging %d segments into %s", len(segments), output_file.name)
    try:
        write_concat_list(segments, concat_file)
        cmd = build_concat_command(concat_file, output_file, ffmpeg_path)
        ConcatJob(cmd, timeout=timeout).execute()

        if not is_nonempty_file(output_file):
            raise MergeError("Merged output is missing or empty", module="concatenation")

        if expected_duration is not None and frame_rate:
            _validate_duration(output_file, expected_duration, frame_rate, ffprobe_path)
    finally:
        if concat_file.exists():
            concat_file.unlink()

    logger.info("Successfully merged segments into %s", output_file.name)
    return output_file

def _validate_duration(output_file: Path, expected: float, frame_rate: float, ffprobe_path: str) -> None:
    try:
        actual = get_duration(output_file, ffprobe=ffprobe_path)
    except MetadataError as e:
        raise MergeError(f"Failed to read merged duration: {e}", module="concatenation") from e
    tolerance = 1.0 / frame_rate + DURATION_SLACK
    if abs(actual - expected) > tolerance:
        raise MergeError(
            f"Duration mismatch in merged output: {actual:.3f}s vs {expected:.3f}s "
            f"(tolerance: {tolerance:.3f}s)",
            module="concatenation"
        )
    logger.info("Merged duration: %.3fs (expected %.3fs)", actual, expected)
