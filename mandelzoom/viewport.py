"""Viewport state and the click-to-zoom transform."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from .renderer import Complex, PixelFormat, ProgressCallback, render

DEFAULT_BOUNDS = (1000, 1000)


@dataclass(frozen=True)
class Viewport:
    """Rectangle of the complex plane given by its upper-left and lower-right corners.

    Callers keep ``upper_left.real < lower_right.real`` and
    ``upper_left.imag > lower_right.imag``; degenerate rectangles are allowed.
    """

    upper_left: Complex
    lower_right: Complex

    @classmethod
    def default(cls) -> "Viewport":
        return cls(complex(-0.75, 0.75), complex(0.0, 0.0))

    @property
    def width(self) -> float:
        return self.lower_right.real - self.upper_left.real

    @property
    def height(self) -> float:
        return self.upper_left.imag - self.lower_right.imag

    @property
    def center(self) -> Complex:
        return _scale(self.upper_left + self.lower_right, 2.0)


def _scale(z: Complex, divisor: float) -> Complex:
    return complex(z.real / divisor, z.imag / divisor)


def recenter(click: tuple[float, float], bounds: tuple[int, int], viewport: Viewport) -> Viewport:
    """Move the viewport onto a clicked pixel and shrink it.

    A click on the center keeps the center and scales both sides by 7/8.

    The rectangle is first translated so its center lands on the clicked point,
    then each corner moves an eighth of the center-to-corner distance inwards.
    """

    px = click[0] / bounds[0]
    py = click[1] / bounds[1]
    ul = viewport.upper_left
    lr = viewport.lower_right

    center = _scale(ul + lr, 2.0)
    target = complex(
        (1.0 - px) * ul.real + px * lr.real,
        (1.0 - py) * ul.imag + py * lr.imag,
    )

    shift = target - center
    ul = ul + shift
    lr = lr + shift

    padding = _scale(center - ul, 8.0)
    return Viewport(ul + padding, lr - padding)


class ViewportController:
    """Owner of the one viewport shared by the render path and click handling."""

    def __init__(self, bounds: tuple[int, int] = DEFAULT_BOUNDS, viewport: Optional[Viewport] = None) -> None:
        self.bounds = (int(bounds[0]), int(bounds[1]))
        self._viewport = viewport if viewport is not None else Viewport.default()
        self._lock = threading.Lock()

    def snapshot(self) -> Viewport:
        with self._lock:
            return self._viewport

    def recenter(self, click: tuple[float, float]) -> Viewport:
        with self._lock:
            self._viewport = recenter(click, self.bounds, self._viewport)
            return self._viewport

    def render(
        self,
        buffer,
        *,
        pixel_format: Optional[PixelFormat] = None,
        workers: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Viewport:
        """Render the current viewport into ``buffer`` and return the viewport drawn."""

        viewport = self.snapshot()
        render(
            buffer,
            self.bounds,
            viewport.upper_left,
            viewport.lower_right,
            pixel_format=pixel_format,
            workers=workers,
            progress=progress,
        )
        return viewport
