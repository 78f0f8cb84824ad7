"""Image-file output for rendered frames."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import imageio
import numpy as np
import PIL.Image

from .renderer import PixelFormat, byte_view, resolve_pixel_format


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def to_gray_image(pixels, bounds: tuple[int, int]) -> PIL.Image.Image:
    """Wrap a one-byte-per-pixel buffer as an 8-bit grayscale Pillow image."""

    view = byte_view(pixels)
    resolve_pixel_format(view.nbytes, bounds, PixelFormat.GRAY)
    data = np.frombuffer(view, dtype=np.uint8)
    return PIL.Image.fromarray(data.reshape(bounds[1], bounds[0]))


def write_image(path: Path | str, pixels, bounds: tuple[int, int]) -> Path:
    """Encode ``pixels`` as a single-channel grayscale image at ``path``.

    The file format follows the suffix, PNG when there is none.
    """

    output_path = Path(path)
    image_format = output_path.suffix.lstrip(".") or "png"
    if not output_path.suffix:
        output_path = output_path.with_suffix(".png")
    image = to_gray_image(pixels, bounds)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))
    return output_path


def write_zoom_gif(path: Path | str, frames: Iterable[np.ndarray], duration: float = 0.5) -> Path:
    """Write a looping GIF with one grayscale frame per zoom step."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    writer = imageio.get_writer(str(output_path), mode='I', duration=duration, loop=0)
    try:
        for frame in frames:
            writer.append_data(np.asarray(frame, dtype=np.uint8))
    finally:
        writer.close()
    return output_path
