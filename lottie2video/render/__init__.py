"""Rendering contexts that turn an animation document into raster frames"""

from .host import AnimationHost, AnimationMetadata, HostState, RenderEngine

__all__ = [
    'AnimationHost',
    'AnimationMetadata',
    'HostState',
    'RenderEngine',
]
