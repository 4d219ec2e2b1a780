"""
lottie2video - A parallel Lottie to video rendering pipeline

This package provides a complete render-to-video pipeline that:
- Loads Lottie animations into isolated headless browser contexts
- Captures exact frames and streams them into ffmpeg under backpressure
- Renders contiguous frame ranges in parallel worker contexts
- Merges the encoded segments in strict index order without re-encoding
- Derives looping GIF and WebP artifacts from the merged video
- Releases browsers, encoder processes and temp workspaces on every exit path
"""

__version__ = "0.1.0"
