"""Split a frame count into contiguous per-worker ranges."""

import math
from dataclasses import dataclass
from typing import Iterator, List

@dataclass(frozen=True)
class FrameRange:
    """Half-open interval [start, end) rendered by worker ``index``."""
    index: int
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"

def partition_frames(total_frames: int, worker_count: int) -> List[FrameRange]:
    """
    Split ``[0, total_frames)`` into at most ``worker_count`` contiguous ranges.

    Chunks are ``ceil(total_frames / worker_count)`` long; the last one may be
    shorter and no empty range is produced, so fewer ranges than workers are
    returned for short animations.

    Raises:
        ValueError: If total_frames is negative or worker_count is below 1
    """
    if total_frames < 0:
        raise ValueError(f"total_frames must be >= 0, got {total_frames}")
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if total_frames == 0:
        return []

    chunk_size = math.ceil(total_frames / worker_count)
    ranges = []
    for index in range(worker_count):
        start = index * chunk_size
        if start >= total_frames:
            break
        ranges.append(FrameRange(index, start, min(start + chunk_size, total_frames)))
    return ranges
