"""Helper functions for building ffmpeg commands"""

import logging
from pathlib import Path
from typing import List, Optional

import ffmpeg

from ..config import (
    FFMPEG_PATH, VideoOptions, PaletteLoopOptions, LosslessLoopOptions
)

log = logging.getLogger(__name__)

# libx264 with yuv420p needs even dimensions; a 1.5x device scale can produce odd ones
EVEN_DIMENSIONS_FILTER = "pad=ceil(iw/2)*2:ceil(ih/2)*2"

def build_segment_stream(frame_rate: float, output_file: Path, options: VideoOptions):
    """Build the ffmpeg-python stream that encodes piped PNG frames into one segment"""
    return (
        ffmpeg
        .input("pipe:", format="image2pipe", framerate=frame_rate, vcodec="png")
        .output(
            str(output_file),
            vcodec=options.codec,
            pix_fmt=options.pix_fmt,
            preset=options.preset,
            crf=options.crf,
            r=frame_rate,
            vf=EVEN_DIMENSIONS_FILTER,
            an=None,
        )
        .global_args("-hide_banner", "-loglevel", "error")
        .overwrite_output()
    )

def build_concat_command(
    concat_file: Path,
    output_file: Path,
    ffmpeg_path: str = FFMPEG_PATH
) -> List[str]:
    """Build ffmpeg command for concatenating segments without re-encoding"""
    return [
        ffmpeg_path, "-hide_banner", "-loglevel", "error",
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_file),
        "-c", "copy",
        "-movflags", "+faststart",
        "-y", str(output_file)
    ]

def _gif_filters(width: int, options: PaletteLoopOptions) -> str:
    return f"fps={options.fps:g},scale={width}:-1:flags={options.scale_flags}"

def build_palette_command(
    master_file: Path,
    palette_file: Path,
    width: int,
    options: PaletteLoopOptions,
    ffmpeg_path: str = FFMPEG_PATH
) -> List[str]:
    """Build the first GIF pass: generate an optimised palette from the master video"""
    return [
        ffmpeg_path, "-hide_banner", "-loglevel", "error",
        "-i", str(master_file),
        "-vf", f"{_gif_filters(width, options)},palettegen=max_colors={options.max_colors}",
        "-y", str(palette_file)
    ]

def build_gif_command(
    master_file: Path,
    palette_file: Path,
    output_file: Path,
    width: int,
    options: PaletteLoopOptions,
    ffmpeg_path: str = FFMPEG_PATH
) -> List[str]:
    """Build the second GIF pass: map the master video onto the generated palette"""
    return [
        ffmpeg_path, "-hide_banner", "-loglevel", "error",
        "-i", str(master_file),
        "-i", str(palette_file),
        "-lavfi", f"{_gif_filters(width, options)}[x];[x][1:v]paletteuse=dither={options.dither}",
        "-loop", str(options.loop),
        "-y", str(output_file)
    ]

def build_webp_command(
    master_file: Path,
    output_file: Path,
    options: LosslessLoopOptions,
    ffmpeg_path: str = FFMPEG_PATH
) -> List[str]:
    """Build ffmpeg command for the lossless animated WebP loop"""
    cmd = [
        ffmpeg_path, "-hide_banner", "-loglevel", "error",
        "-i", str(master_file),
        "-vcodec", "libwebp",
    ]
    if options.fps is not None:
        cmd.extend(["-filter:v", f"fps=fps={options.fps:g}"])
    cmd.extend([
        "-lossless", "1",
        "-compression_level", str(options.compression_level),
        "-preset", options.preset,
        "-loop", str(options.loop),
        "-an",
        "-vsync", "0",
        "-y", str(output_file)
    ])
    return cmd
