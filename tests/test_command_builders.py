"""Tests for ffmpeg command builders"""
import unittest
from pathlib import Path

import ffmpeg

from lottie2video.config import LosslessLoopOptions, PaletteLoopOptions, VideoOptions
from lottie2video.video.command_builders import (
    EVEN_DIMENSIONS_FILTER,
    build_concat_command,
    build_gif_command,
    build_palette_command,
    build_segment_stream,
    build_webp_command,
)

class TestCommandBuilders(unittest.TestCase):
    def test_segment_stream_reads_png_pipe(self):
        stream = build_segment_stream(30.0, Path("/tmp/segment_0000.mp4"), VideoOptions())
        cmd = ffmpeg.compile(stream, cmd="ffmpeg")
        self.assertEqual(cmd[cmd.index("-f") + 1], "image2pipe")
        self.assertIn("pipe:", cmd)
        self.assertEqual(cmd[cmd.index("-framerate") + 1], "30.0")
        self.assertEqual(cmd[cmd.index("-vcodec", cmd.index("pipe:")) + 1], "libx264")
        self.assertEqual(cmd[cmd.index("-pix_fmt") + 1], "yuv420p")
        self.assertEqual(cmd[cmd.index("-vf") + 1], EVEN_DIMENSIONS_FILTER)
        self.assertIn("-y", cmd)

    def test_concat_copies_streams(self):
        cmd = build_concat_command(Path("/w/concat.txt"), Path("/w/master.mp4"), "ffmpeg")
        self.assertEqual(cmd[0], "ffmpeg")
        self.assertEqual(cmd[cmd.index("-f") + 1], "concat")
        self.assertEqual(cmd[cmd.index("-c") + 1], "copy")
        self.assertEqual(cmd[-1], "/w/master.mp4")

    def test_palette_pass(self):
        cmd = build_palette_command(Path("m.mp4"), Path("p.png"), 640, PaletteLoopOptions())
        vf = cmd[cmd.index("-vf") + 1]
        self.assertIn("fps=15", vf)
        self.assertIn("scale=640:-1:flags=lanczos", vf)
        self.assertIn("palettegen", vf)
        self.assertEqual(cmd[-1], "p.png")

    def test_gif_pass_uses_palette_and_loops(self):
        cmd = build_gif_command(Path("m.mp4"), Path("p.png"), Path("out.gif"), 640, PaletteLoopOptions())
        self.assertEqual(cmd.count("-i"), 2)
        self.assertIn("paletteuse", cmd[cmd.index("-lavfi") + 1])
        self.assertEqual(cmd[cmd.index("-loop") + 1], "0")
        self.assertEqual(cmd[-1], "out.gif")

    def test_webp_keeps_full_frame_rate_by_default(self):
        cmd = build_webp_command(Path("m.mp4"), Path("out.webp"), LosslessLoopOptions())
        self.assertNotIn("-filter:v", cmd)
        self.assertEqual(cmd[cmd.index("-vcodec") + 1], "libwebp")
        self.assertEqual(cmd[cmd.index("-lossless") + 1], "1")
        self.assertEqual(cmd[cmd.index("-loop") + 1], "0")
        self.assertIn("-an", cmd)
        self.assertEqual(cmd[cmd.index("-vsync") + 1], "0")

    def test_webp_with_reduced_frame_rate(self):
        cmd = build_webp_command(Path("m.mp4"), Path("out.webp"), LosslessLoopOptions(fps=20))
        self.assertEqual(cmd[cmd.index("-filter:v") + 1], "fps=fps=20")

if __name__ == "__main__":
    unittest.main()
