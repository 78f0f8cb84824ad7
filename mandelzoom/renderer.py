"""Escape-time rendering of grayscale Mandelbrot frames."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Callable, Optional

import numpy as np
import tensorflow as tf

Complex = complex

LIMIT = 255
HORIZON = 4

ProgressCallback = Callable[[int, int], None]


class PixelBufferError(ValueError):
    """Raised when a pixel buffer does not match the grid it is rendered for."""


class PixelFormat(Enum):
    """Layout of a pixel buffer: one gray byte or three replicated bytes per pixel."""

    GRAY = 1
    RGB = 3

    @property
    def channels(self) -> int:
        return self.value


def pixel_to_point(bounds: tuple[int, int], pixel: tuple[int, int], upper_left: Complex, lower_right: Complex) -> Complex:
    """Map a pixel ``(column, row)`` onto the complex plane.

    Row 0 is the top edge of the viewport (largest imaginary part), column 0 the
    left edge. Pixels outside the grid extrapolate linearly.
    """

    width = lower_right.real - upper_left.real
    height = upper_left.imag - lower_right.imag
    return complex(
        upper_left.real + (pixel[0] / bounds[0]) * width,
        upper_left.imag - (pixel[1] / bounds[1]) * height,
    )


def pixel_grid(
    bounds: tuple[int, int],
    upper_left: Complex,
    lower_right: Complex,
    row_start: int = 0,
    row_stop: Optional[int] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Return real and imaginary parts for every pixel in rows ``[row_start, row_stop)``.

    Uses the same operation order as :func:`pixel_to_point`, so each entry is
    bit-identical to the scalar mapping of that pixel.
    """

    x_res, y_res = bounds
    if row_stop is None:
        row_stop = y_res

    width = np.float64(lower_right.real - upper_left.real)
    height = np.float64(upper_left.imag - lower_right.imag)
    cols = np.arange(x_res, dtype=np.float64)
    rows = np.arange(row_start, row_stop, dtype=np.float64)

    re = np.float64(upper_left.real) + (cols / np.float64(x_res)) * width
    im = np.float64(upper_left.imag) - (rows / np.float64(y_res)) * height
    re_grid, im_grid = np.meshgrid(re, im)
    return re_grid, im_grid


def escape_time(c: Complex) -> Optional[int]:
    """Count iterations of ``z = z*z + c`` until ``|z|^2`` exceeds the horizon.

    Returns ``None`` when the orbit stays bounded for ``LIMIT`` iterations.
    """

    cr = c.real
    ci = c.imag
    zr = 0.0
    zi = 0.0
    for i in range(LIMIT):
        if zr * zr + zi * zi > HORIZON:
            return i
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
    return None


def intensity(count: Optional[int]) -> int:
    """Gray level for an escape count: fast escapes are bright, the set is black."""

    if count is None:
        return 0
    return 255 - count


_VECTOR = tf.TensorSpec(shape=[None], dtype=tf.float64)


@tf.function(input_signature=[_VECTOR, _VECTOR])
def _escape_run(cr: tf.Tensor, ci: tf.Tensor) -> tf.Tensor:
    """Vectorised :func:`escape_time`; lanes that never escape report ``LIMIT``."""

    limit = tf.constant(LIMIT, dtype=tf.int32)
    horizon = tf.constant(HORIZON, dtype=tf.float64)
    two = tf.constant(2.0, dtype=tf.float64)

    i = tf.constant(0, dtype=tf.int32)
    zr = tf.zeros_like(cr)
    zi = tf.zeros_like(ci)
    counts = tf.fill(tf.shape(cr), limit)
    active = tf.ones_like(cr, dtype=tf.bool)

    def cond(i, zr, zi, counts, active):
        return tf.logical_and(tf.less(i, limit), tf.reduce_any(active))

    def body(i, zr, zi, counts, active):
        escaped = tf.logical_and(active, zr * zr + zi * zi > horizon)
        counts = tf.where(escaped, i, counts)
        active = tf.logical_and(active, tf.logical_not(escaped))
        zr_next = zr * zr - zi * zi + cr
        zi_next = two * zr * zi + ci
        zr = tf.where(active, zr_next, zr)
        zi = tf.where(active, zi_next, zi)
        return i + 1, zr, zi, counts, active

    _, _, _, counts, _ = tf.while_loop(cond, body, (i, zr, zi, counts, active))
    return counts


def _render_band(bounds: tuple[int, int], upper_left: Complex, lower_right: Complex, row_start: int, row_stop: int) -> np.ndarray:
    re, im = pixel_grid(bounds, upper_left, lower_right, row_start, row_stop)
    with tf.device("/CPU:0"):
        counts = _escape_run(
            tf.convert_to_tensor(re.ravel(), dtype=tf.float64),
            tf.convert_to_tensor(im.ravel(), dtype=tf.float64),
        ).numpy()
    band = np.where(counts < LIMIT, 255 - counts, 0).astype(np.uint8)
    return band.reshape(row_stop - row_start, bounds[0])


def _row_bands(rows: int, workers: int) -> list[tuple[int, int]]:
    band_rows = max(1, -(-rows // (workers * 4)))
    return [(start, min(start + band_rows, rows)) for start in range(0, rows, band_rows)]


def byte_view(buffer) -> memoryview:
    """Return a memoryview of ``buffer``, which must be contiguous single bytes."""

    view = memoryview(buffer)
    if view.itemsize != 1:
        raise PixelBufferError(f"pixel buffer items must be single bytes, got {view.itemsize}-byte items")
    if not view.c_contiguous:
        raise PixelBufferError("pixel buffer must be C-contiguous")
    return view


def _check_bounds(bounds: tuple[int, int]) -> tuple[int, int]:
    x_res, y_res = int(bounds[0]), int(bounds[1])
    if x_res <= 0 or y_res <= 0:
        raise ValueError(f"grid bounds must be positive, got {x_res}x{y_res}")
    return x_res, y_res


def resolve_pixel_format(length: int, bounds: tuple[int, int], pixel_format: Optional[PixelFormat] = None) -> PixelFormat:
    """Validate a buffer length against ``bounds`` and return its pixel format.

    Without an explicit ``pixel_format`` the layout is inferred from the length.
    """

    area = bounds[0] * bounds[1]
    if pixel_format is not None:
        if length != area * pixel_format.channels:
            raise PixelBufferError(
                f"pixel buffer holds {length} bytes, expected {area * pixel_format.channels} "
                f"for a {bounds[0]}x{bounds[1]} {pixel_format.name} image"
            )
        return pixel_format
    for candidate in PixelFormat:
        if length == area * candidate.channels:
            return candidate
    raise PixelBufferError(
        f"pixel buffer holds {length} bytes, expected {area} or {area * 3} for a {bounds[0]}x{bounds[1]} image"
    )


def _fill(
    bounds: tuple[int, int],
    upper_left: Complex,
    lower_right: Complex,
    workers: int,
    progress: Optional[ProgressCallback],
) -> np.ndarray:
    x_res, y_res = bounds
    intensities = np.empty((y_res, x_res), dtype=np.uint8)
    bands = _row_bands(y_res, workers)
    done = 0

    if workers == 1:
        for start, stop in bands:
            intensities[start:stop] = _render_band(bounds, upper_left, lower_right, start, stop)
            done += stop - start
            if progress is not None:
                progress(done, y_res)
        return intensities

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            pool.submit(_render_band, bounds, upper_left, lower_right, start, stop): (start, stop)
            for start, stop in bands
        }
        for future in as_completed(futures):
            start, stop = futures[future]
            intensities[start:stop] = future.result()
            done += stop - start
            if progress is not None:
                progress(done, y_res)
    return intensities


def render(
    buffer,
    bounds: tuple[int, int],
    upper_left: Complex,
    lower_right: Complex,
    *,
    pixel_format: Optional[PixelFormat] = None,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> PixelFormat:
    """Fill ``buffer`` with the grayscale escape-time image of a viewport.

    ``buffer`` is any writable object exposing the buffer protocol, laid out row
    major. A length that matches neither ``W*H`` nor ``3*W*H`` (or the explicit
    ``pixel_format``) raises :class:`PixelBufferError` before anything is
    computed. Rows are spread over ``workers`` threads; the buffer is written
    only once every row is done, and the result does not depend on the number
    of workers.
    """

    bounds = _check_bounds(bounds)
    view = byte_view(buffer)
    fmt = resolve_pixel_format(view.nbytes, bounds, pixel_format)
    if view.readonly:
        raise PixelBufferError("pixel buffer is read-only")
    pixels = np.frombuffer(view, dtype=np.uint8)

    if workers is None:
        workers = os.cpu_count() or 1
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    intensities = _fill(bounds, complex(upper_left), complex(lower_right), workers, progress)
    pixels.reshape(bounds[1], bounds[0], fmt.channels)[...] = intensities[..., np.newaxis]
    return fmt


def render_image(
    bounds: tuple[int, int],
    upper_left: Complex,
    lower_right: Complex,
    *,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> np.ndarray:
    """Render a fresh ``(height, width)`` uint8 array."""

    bounds = _check_bounds(bounds)
    image = np.zeros((bounds[1], bounds[0]), dtype=np.uint8)
    render(image, bounds, upper_left, lower_right, pixel_format=PixelFormat.GRAY, workers=workers, progress=progress)
    return image
