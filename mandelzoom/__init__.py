"""Public API for grayscale Mandelbrot rendering and click-to-zoom."""

from .renderer import (
    HORIZON,
    LIMIT,
    Complex,
    PixelBufferError,
    PixelFormat,
    escape_time,
    intensity,
    pixel_grid,
    pixel_to_point,
    render,
    render_image,
    byte_view,
    resolve_pixel_format,
)
from .viewport import DEFAULT_BOUNDS, Viewport, ViewportController, recenter
from .parsing import parse_complex, parse_pair

__all__ = [
    "Complex",
    "DEFAULT_BOUNDS",
    "HORIZON",
    "LIMIT",
    "PixelBufferError",
    "PixelFormat",
    "Viewport",
    "ViewportController",
    "byte_view",
    "escape_time",
    "intensity",
    "parse_complex",
    "parse_pair",
    "pixel_grid",
    "pixel_to_point",
    "recenter",
    "render",
    "render_image",
    "resolve_pixel_format",
]
