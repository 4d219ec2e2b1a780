"""Shared fixtures for the lottie2video test suite."""
from pathlib import Path
from unittest.mock import patch

import pytest

from lottie2video.config import ConversionConfig
from lottie2video.document import AnimationDocument

@pytest.fixture
def document() -> AnimationDocument:
    return AnimationDocument.from_dict(
        {"v": "5.7.4", "fr": 30, "ip": 0, "op": 100, "w": 640, "h": 360, "layers": []},
        name="bounce"
    )

@pytest.fixture
def config(tmp_path: Path) -> ConversionConfig:
    return ConversionConfig(
        concurrency=4,
        working_root=tmp_path / "work",
        output_dir=tmp_path / "exports",
        verify_segments=False,
    )

@pytest.fixture(autouse=True)
def fast_scheduler():
    """Skip the stagger delay and the memory gate."""
    with patch("lottie2video.scheduler.TASK_STAGGER_DELAY", 0), \
         patch("lottie2video.scheduler.WorkerScheduler.memory_available", return_value=True):
        yield
