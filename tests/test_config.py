"""Unit tests for lottie2video configuration."""
from pathlib import Path

import pytest

from lottie2video.config import (
    ConversionConfig, EncodeOptions, StageTimeouts, VideoOptions, normalize_formats
)
from lottie2video.exceptions import ConfigurationError

def test_defaults():
    config = ConversionConfig()
    assert config.concurrency >= 1
    assert config.formats == ("mp4",)
    assert config.device_scale_factor == 1.5
    assert config.encode.video.codec == "libx264"
    assert config.encode.palette_loop.fps == 15
    assert config.encode.lossless_loop.fps is None
    config.validate()

@pytest.mark.parametrize("requested, expected", [
    ("mp4", ("mp4",)),
    ("gif,webp", ("gif", "webp")),
    (["video", "paletteLoop", "losslessLoop"], ("mp4", "gif", "webp")),
    (["palette_loop", "lossless_loop"], ("gif", "webp")),
    (["MP4", "mp4", " gif "], ("mp4", "gif")),
])
def test_normalize_formats(requested, expected):
    assert normalize_formats(requested) == expected

def test_normalize_rejects_unknown_format():
    with pytest.raises(ConfigurationError, match="avi"):
        normalize_formats(["mp4", "avi"])

def test_normalize_rejects_empty_request():
    with pytest.raises(ConfigurationError):
        normalize_formats([])
    with pytest.raises(ConfigurationError):
        normalize_formats(" , ")

def test_paths_are_converted(tmp_path):
    config = ConversionConfig(working_root=str(tmp_path / "w"), output_dir=str(tmp_path / "o"))
    assert isinstance(config.working_root, Path)
    assert isinstance(config.output_dir, Path)

def test_from_environment_overrides():
    config = ConversionConfig.from_environment(concurrency=2, formats="gif")
    assert config.concurrency == 2
    assert config.formats == ("gif",)

@pytest.mark.parametrize("overrides", [
    {"concurrency": 0},
    {"default_width": 0},
    {"device_scale_factor": -1},
    {"encode": EncodeOptions(video=VideoOptions(crf=60))},
    {"timeouts": StageTimeouts(capture=0)},
    {"timeouts": StageTimeouts(pipeline=-5)},
])
def test_invalid_settings(overrides):
    with pytest.raises(ConfigurationError):
        ConversionConfig.from_environment(**overrides)
