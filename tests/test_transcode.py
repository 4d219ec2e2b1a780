"""Tests for deriving output formats from the master video"""
from pathlib import Path
from unittest.mock import patch

import pytest

from lottie2video.exceptions import TranscodeError
from lottie2video.utils import Deadline
from lottie2video.video.transcode import FormatTranscoder

@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "session"
    path.mkdir()
    return path

def make_transcoder(tmp_path, workspace, master_bytes=b"master-video", **kwargs):
    master = workspace / "master.mp4"
    master.write_bytes(master_bytes)
    return FormatTranscoder(master, tmp_path / "exports", "abc123", workspace, 640, **kwargs)

def _write_last_arg(cmd, output_format, timeout=None):
    class Job:
        def execute(self):
            Path(cmd[-1]).write_bytes(b"encoded")
    return Job()

def test_mp4_is_a_copy_of_the_master(tmp_path, workspace):
    transcoder = make_transcoder(tmp_path, workspace)
    output = transcoder.produce("mp4")
    assert output == tmp_path / "exports" / "abc123.mp4"
    assert output.read_bytes() == b"master-video"

@patch("lottie2video.video.transcode.TranscodeJob", side_effect=_write_last_arg)
def test_gif_runs_palette_then_paletteuse(mock_job, tmp_path, workspace):
    transcoder = make_transcoder(tmp_path, workspace)
    output = transcoder.produce("gif")
    assert output.name == "abc123.gif"
    first, second = [c.args[0] for c in mock_job.call_args_list]
    assert any("palettegen" in arg for arg in first)
    assert any("paletteuse" in arg for arg in second)
    assert not (workspace / "palette.png").exists()

@patch("lottie2video.video.transcode.TranscodeJob", side_effect=_write_last_arg)
def test_webp_is_lossless(mock_job, tmp_path, workspace):
    output = make_transcoder(tmp_path, workspace).produce("webp")
    cmd = mock_job.call_args.args[0]
    assert output.suffix == ".webp"
    assert cmd[cmd.index("-lossless") + 1] == "1"
    assert "-an" in cmd

def test_zero_size_master_fails_palette_loop_only(tmp_path, workspace):
    transcoder = make_transcoder(tmp_path, workspace, master_bytes=b"")
    artifacts, errors = transcoder.produce_all(["mp4", "gif"])
    assert set(artifacts) == {"mp4"}
    assert set(errors) == {"gif"}
    assert errors["gif"].output_format == "gif"
    assert not (tmp_path / "exports" / "abc123.gif").exists()

def test_missing_master_fails_every_format(tmp_path, workspace):
    transcoder = make_transcoder(tmp_path, workspace)
    transcoder.master.unlink()
    artifacts, errors = transcoder.produce_all(["mp4", "webp"])
    assert artifacts == {}
    assert set(errors) == {"mp4", "webp"}

@patch("lottie2video.video.transcode.TranscodeJob")
def test_failed_format_does_not_block_siblings(mock_job, tmp_path, workspace):
    mock_job.return_value.execute.side_effect = TranscodeError("gif transcode failed", output_format="gif")
    artifacts, errors = make_transcoder(tmp_path, workspace).produce_all(["mp4", "gif"])
    assert set(artifacts) == {"mp4"}
    assert artifacts["mp4"].read_bytes() == b"master-video"
    assert set(errors) == {"gif"}
    assert not (tmp_path / "exports" / "abc123.gif").exists()

@patch("lottie2video.video.transcode.TranscodeJob")
def test_empty_output_is_an_error(mock_job, tmp_path, workspace):
    with pytest.raises(TranscodeError):
        make_transcoder(tmp_path, workspace).produce("webp")

def test_unsupported_format(tmp_path, workspace):
    with pytest.raises(TranscodeError):
        make_transcoder(tmp_path, workspace).produce("avi")

def test_expired_deadline(tmp_path, workspace):
    transcoder = make_transcoder(tmp_path, workspace, deadline=Deadline(0))
    with pytest.raises(TranscodeError):
        transcoder.produce("mp4")
