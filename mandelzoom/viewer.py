"""Interactive click-to-zoom window built on matplotlib."""

from __future__ import annotations

from typing import Callable, Optional

import matplotlib.pyplot as plt
import numpy as np

from .renderer import render_image
from .viewport import Viewport, ViewportController

LEFT_BUTTON = 1


class MandelbrotViewer:
    """Show the controller's viewport and zoom in on every left click."""

    def __init__(
        self,
        controller: ViewportController,
        *,
        workers: Optional[int] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.controller = controller
        self.workers = workers
        self._log = log or (lambda message: None)

        width, height = controller.bounds
        dpi = 100
        self.figure, self.axes = plt.subplots(figsize=(width / dpi, height / dpi), dpi=dpi)
        self.figure.subplots_adjust(left=0, right=1, bottom=0, top=1)
        self.axes.set_axis_off()
        self.image = self.axes.imshow(
            self._render(controller.snapshot()),
            cmap="gray",
            vmin=0,
            vmax=255,
            interpolation="nearest",
        )
        self._set_title(controller.snapshot())
        self._connection = self.figure.canvas.mpl_connect("button_press_event", self.on_click)

    def _render(self, viewport: Viewport) -> np.ndarray:
        return render_image(self.controller.bounds, viewport.upper_left, viewport.lower_right, workers=self.workers)

    def _set_title(self, viewport: Viewport) -> None:
        if self.figure.canvas.manager is not None:
            self.figure.canvas.manager.set_window_title(
                f"Mandelbrot {viewport.upper_left:.6g} .. {viewport.lower_right:.6g}"
            )

    def on_click(self, event) -> None:
        if event.inaxes is not self.axes or event.button != LEFT_BUTTON:
            return
        if event.xdata is None or event.ydata is None:
            return

        # imshow puts pixel centers on integers; shift to the pixel's top-left edge
        click = (event.xdata + 0.5, event.ydata + 0.5)
        viewport = self.controller.recenter(click)
        self._log(f"click at {click[0]:.1f},{click[1]:.1f} -> {viewport.upper_left} .. {viewport.lower_right}")

        self.image.set_data(self._render(viewport))
        self._set_title(viewport)
        self.figure.canvas.draw_idle()

    def show(self) -> None:
        plt.show()

    def close(self) -> None:
        self.figure.canvas.mpl_disconnect(self._connection)
        plt.close(self.figure)
