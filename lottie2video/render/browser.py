"""Headless Chromium rendering via Playwright and lottie-web.

Each PlaywrightAnimationHost owns one browser context with a single page
that runs lottie-web's SVG renderer. Frame synchronisation is explicit: the
page acknowledges a seek only after two animation frames have been painted,
and the host waits for that acknowledgement before taking a screenshot.
"""

import logging
import math
from pathlib import Path
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ..config import BACKGROUND, DEFAULT_HEIGHT, DEFAULT_WIDTH, LOTTIE_SCRIPT_URL, StageTimeouts
from ..document import AnimationDocument
from ..exceptions import CaptureError, HostInitError, LoadError
from .host import AnimationHost, AnimationMetadata, RenderEngine

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <style>
    body, html {{
      margin: 0;
      padding: 0;
      width: 100%;
      height: 100%;
      overflow: hidden;
      background-color: {background};
    }}
    #lottie {{
      width: 100%;
      height: 100%;
      display: flex;
      align-items: center;
      justify-content: center;
    }}
  </style>
</head>
<body>
  <div id="lottie"></div>
</body>
</html>
"""

BOOTSTRAP_SCRIPT = """
window.__lottieState = 'idle';
window.__lottieError = null;
window.__seekAck = null;

window.loadLottie = (data) => {
  window.__lottieState = 'loading';
  try {
    const anim = lottie.loadAnimation({
      container: document.getElementById('lottie'),
      renderer: 'svg',
      loop: false,
      autoplay: false,
      animationData: data
    });
    window.animation = anim;
    anim.addEventListener('DOMLoaded', () => { window.__lottieState = 'ready'; });
    anim.addEventListener('data_failed', () => {
      window.__lottieState = 'failed';
      window.__lottieError = 'animation data failed to load';
    });
    if (anim.isLoaded) {
      window.__lottieState = 'ready';
    }
  } catch (e) {
    window.__lottieState = 'failed';
    window.__lottieError = String(e);
  }
};

window.seekFrame = (frame) => {
  window.__seekAck = null;
  window.animation.goToAndStop(frame, true);
  requestAnimationFrame(() => requestAnimationFrame(() => { window.__seekAck = frame; }));
};
"""

METADATA_SCRIPT = """() => ({
  totalFrames: window.animation.totalFrames,
  frameRate: window.animation.frameRate,
  width: window.animation.animationData.w,
  height: window.animation.animationData.h
})"""

def _ms(seconds: float) -> float:
    return seconds * 1000.0

def _positive_or(value, default: int) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return int(value)
    return int(default)

class PlaywrightAnimationHost(AnimationHost):
    """AnimationHost backed by one Playwright browser context."""

    def __init__(self, browser, timeouts: StageTimeouts, lottie_script_url: str = LOTTIE_SCRIPT_URL,
                 background: str = BACKGROUND, default_width: int = DEFAULT_WIDTH, default_height: int = DEFAULT_HEIGHT):
        super().__init__()
        self.browser = browser
        self.timeouts = timeouts
        self.lottie_script_url = lottie_script_url
        self.background = background
        self.default_width = default_width
        self.default_height = default_height
        self._context = None
        self._page = None

    def _initialize(self, width: int, height: int, scale_factor: float) -> None:
        try:
            self._context = self.browser.new_context(
                viewport={"width": width, "height": height},
                device_scale_factor=scale_factor,
            )
            page = self._context.new_page()
            page.set_default_timeout(_ms(self.timeouts.load))
            page.on("console", lambda msg: logger.debug("[browser] %s", msg.text))
            page.on("pageerror", lambda err: logger.warning("[browser] page error: %s", err))
            page.set_content(PAGE_TEMPLATE.format(background=self.background))
            if Path(self.lottie_script_url).is_file():
                page.add_script_tag(path=self.lottie_script_url)
            else:
                page.add_script_tag(url=self.lottie_script_url)
            page.add_script_tag(content=BOOTSTRAP_SCRIPT)
            self._page = page
        except PlaywrightError as e:
            self._dispose()
            raise HostInitError(f"Failed to allocate rendering context: {e}", module="render") from e

    def _load(self, document: AnimationDocument) -> None:
        try:
            self._page.evaluate("data => window.loadLottie(data)", document.data)
            self._page.wait_for_function(
                "() => window.__lottieState === 'ready' || window.__lottieState === 'failed'",
                timeout=_ms(self.timeouts.load),
            )
            state, error = self._page.evaluate("() => [window.__lottieState, window.__lottieError]")
        except PlaywrightTimeoutError as e:
            raise LoadError(
                f"Animation was not renderable within {self.timeouts.load:.0f}s",
                module="render"
            ) from e
        except PlaywrightError as e:
            raise LoadError(f"Failed to load animation: {e}", module="render") from e
        if state != "ready":
            raise LoadError(f"Failed to load animation: {error}", module="render")
        logger.debug("Animation '%s' loaded", document.name)

    def _query_metadata(self) -> AnimationMetadata:
        try:
            raw = self._page.evaluate(METADATA_SCRIPT)
        except PlaywrightError as e:
            raise LoadError(f"Failed to read animation metadata: {e}", module="render") from e
        total = raw.get("totalFrames") or 0
        frame_rate = raw.get("frameRate") or 0
        if not isinstance(total, (int, float)) or not math.isfinite(total) or total < 0:
            total = 0
        if not isinstance(frame_rate, (int, float)) or frame_rate <= 0:
            raise LoadError(f"Animation has no usable frame rate: {frame_rate!r}", module="render")
        return AnimationMetadata(
            total_frames=int(math.floor(total + 1e-6)),
            frame_rate=float(frame_rate),
            natural_width=_positive_or(raw.get("width"), self.default_width),
            natural_height=_positive_or(raw.get("height"), self.default_height),
        )

    def _seek_and_capture(self, frame_index: int) -> bytes:
        timeout = _ms(self.timeouts.capture)
        try:
            self._page.evaluate("frame => window.seekFrame(frame)", frame_index)
            self._page.wait_for_function("f => window.__seekAck === f", arg=frame_index, timeout=timeout)
            return self._page.screenshot(type="png", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise CaptureError(
                f"Rendering context did not settle on frame {frame_index} within {self.timeouts.capture:.0f}s",
                module="render"
            ) from e
        except PlaywrightError as e:
            raise CaptureError(f"Failed to capture frame {frame_index}: {e}", module="render") from e

    def _dispose(self) -> None:
        if self._context is not None:
            try:
                self._context.close()
            finally:
                self._context = None
                self._page = None

class PlaywrightEngine(RenderEngine):
    """One Playwright driver plus one headless Chromium, bound to the calling thread."""

    def __init__(self, timeouts: Optional[StageTimeouts] = None, lottie_script_url: str = LOTTIE_SCRIPT_URL,
                 background: str = BACKGROUND, default_width: int = DEFAULT_WIDTH, default_height: int = DEFAULT_HEIGHT,
                 headless: bool = True):
        self.timeouts = timeouts or StageTimeouts()
        self.lottie_script_url = lottie_script_url
        self.background = background
        self.default_width = default_width
        self.default_height = default_height
        self.headless = headless
        self._playwright = None
        self._browser = None

    @classmethod
    def from_config(cls, config) -> "PlaywrightEngine":
        return cls(
            timeouts=config.timeouts,
            lottie_script_url=config.lottie_script_url,
            background=config.background,
            default_width=config.default_width,
            default_height=config.default_height,
        )

    def start(self) -> None:
        logger.debug("Launching headless Chromium")
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=CHROMIUM_ARGS,
                timeout=_ms(self.timeouts.browser_launch),
            )
        except PlaywrightError as e:
            self.close()
            raise HostInitError(f"Failed to launch Chromium: {e}", module="render") from e

    def new_host(self) -> PlaywrightAnimationHost:
        if self._browser is None:
            raise HostInitError("Rendering engine is not started", module="render")
        return PlaywrightAnimationHost(
            self._browser,
            self.timeouts,
            lottie_script_url=self.lottie_script_url,
            background=self.background,
            default_width=self.default_width,
            default_height=self.default_height,
        )

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError as e:
                logger.warning("Error closing Chromium: %s", e)
            self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                logger.warning("Error stopping Playwright: %s", e)
            self._playwright = None
