import subprocess
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from lottie2video.exceptions import MetadataError
from lottie2video.ffprobe import count_frames, get_duration, get_media_property

def _completed(stdout):
    return MagicMock(stdout=stdout)

class TestFFProbeMedia(unittest.TestCase):
    @patch("lottie2video.ffprobe.exec.subprocess.run")
    def test_get_media_property_casts(self, mock_run):
        mock_run.return_value = _completed("3.333333\n")
        self.assertAlmostEqual(get_media_property(Path("a.mp4"), "video", "duration"), 3.333333)
        mock_run.return_value = _completed("640\n")
        self.assertEqual(get_media_property(Path("a.mp4"), "video", "width"), 640)

    @patch("lottie2video.ffprobe.exec.subprocess.run")
    def test_get_media_property_na(self, mock_run):
        mock_run.return_value = _completed("N/A\n")
        with self.assertRaises(MetadataError):
            get_media_property(Path("a.mp4"), "video", "duration")

    @patch("lottie2video.ffprobe.exec.subprocess.run")
    def test_get_media_property_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["ffprobe"])
        with self.assertRaises(MetadataError):
            get_media_property(Path("a.mp4"), "format", "duration")

    @patch("lottie2video.ffprobe.media.get_media_property")
    def test_get_duration_falls_back_to_format(self, mock_prop):
        mock_prop.side_effect = [MetadataError("missing", "duration"), 4.0]
        self.assertEqual(get_duration(Path("a.mp4")), 4.0)
        self.assertEqual(mock_prop.call_args.args[1], "format")

    @patch("lottie2video.ffprobe.exec.subprocess.run")
    def test_count_frames_decodes_stream(self, mock_run):
        mock_run.return_value = _completed("25\n")
        self.assertEqual(count_frames(Path("seg.mp4"), ffprobe="ffprobe"), 25)
        cmd = mock_run.call_args.args[0]
        self.assertIn("-count_frames", cmd)
        self.assertIn("stream=nb_read_frames", cmd)

if __name__ == "__main__":
    unittest.main()
