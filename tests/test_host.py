"""Tests for the AnimationHost lifecycle"""
import unittest

from lottie2video.exceptions import CaptureError, HostInitError, InvalidStateError
from lottie2video.render.host import HostState

from tests.helpers import FakeHost, frame_bytes

class TestAnimationHost(unittest.TestCase):
    def setUp(self):
        self.host = FakeHost(total_frames=10)

    def _loaded(self):
        self.host.initialize(640, 360, 1.5)
        self.host.load(object())
        return self.host.query_metadata()

    def test_lifecycle(self):
        self.assertEqual(self.host.state, HostState.UNINITIALIZED)
        metadata = self._loaded()
        self.assertEqual(metadata.total_frames, 10)
        self.assertEqual(self.host.viewport, (640, 360, 1.5))
        self.assertEqual(self.host.seek_and_capture(3), frame_bytes(3))
        self.assertEqual(self.host.state, HostState.LOADED)
        self.host.dispose()
        self.assertEqual(self.host.state, HostState.DISPOSED)
        self.assertTrue(self.host.disposed)

    def test_capture_before_load_is_rejected(self):
        self.host.initialize(640, 360, 1.0)
        with self.assertRaises(InvalidStateError):
            self.host.seek_and_capture(0)

    def test_load_before_initialize_is_rejected(self):
        with self.assertRaises(InvalidStateError):
            self.host.load(object())

    def test_initialize_twice_is_rejected(self):
        self.host.initialize(640, 360, 1.0)
        with self.assertRaises(InvalidStateError):
            self.host.initialize(640, 360, 1.0)

    def test_capture_after_dispose_is_rejected(self):
        self._loaded()
        self.host.dispose()
        with self.assertRaises(InvalidStateError):
            self.host.seek_and_capture(0)

    def test_capture_out_of_range(self):
        self._loaded()
        with self.assertRaises(CaptureError):
            self.host.seek_and_capture(10)
        with self.assertRaises(CaptureError):
            self.host.seek_and_capture(-1)

    def test_capture_failure_leaves_host_loaded(self):
        self.host.fail_on_frame = 4
        self._loaded()
        with self.assertRaises(CaptureError):
            self.host.seek_and_capture(4)
        self.assertEqual(self.host.state, HostState.LOADED)

    def test_dispose_is_idempotent(self):
        self._loaded()
        self.host.dispose()
        self.host.disposed = False
        self.host.dispose()
        self.assertFalse(self.host.disposed)

    def test_dispose_uninitialized_host_skips_release(self):
        self.host.dispose()
        self.assertFalse(self.host.disposed)
        self.assertEqual(self.host.state, HostState.DISPOSED)

    def test_failed_initialize_stays_uninitialized(self):
        host = FakeHost(fail_initialize=True)
        with self.assertRaises(HostInitError):
            host.initialize(640, 360, 1.0)
        self.assertEqual(host.state, HostState.UNINITIALIZED)

    def test_context_manager_disposes(self):
        with FakeHost() as host:
            host.initialize(10, 10, 1.0)
        self.assertTrue(host.disposed)

if __name__ == "__main__":
    unittest.main()
