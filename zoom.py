import os
import sys
import warnings
from argparse import ArgumentParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

from mandelzoom import (
    DEFAULT_BOUNDS,
    Viewport,
    ViewportController,
    parse_complex,
    parse_pair,
    render_image,
)
from mandelzoom.output import write_image, write_zoom_gif
from mandelzoom.viewer import MandelbrotViewer

MODES = ("image", "gif", "window")
DEFAULT_OUTPUTS = {"image": "mandel.png", "gif": "zoom.gif"}


@dataclass(frozen=True)
class ZoomConfig:
    bounds: tuple[int, int]
    viewport: Viewport
    clicks: tuple[tuple[float, float], ...]
    mode: str
    output: Optional[Path]
    frame_duration: float
    workers: Optional[int]


PAIR_FLAGS = ("--upper-left", "--lower-right", "--click")


def join_pair_values(argv):
    """Glue pair flags to their value so argparse accepts values such as ``-2,1.5``."""

    joined = []
    args = iter(argv)
    for arg in args:
        if arg in PAIR_FLAGS:
            value = next(args, None)
            joined.append(arg if value is None else f"{arg}={value}")
        else:
            joined.append(arg)
    return joined


def parse_args(parser, argv=None):
    return parser.parse_args(join_pair_values(sys.argv[1:] if argv is None else argv))


def build_parser():
    parser = ArgumentParser(description="Render the Mandelbrot set in grayscale and zoom in by clicking.")

    parser.add_argument('--size', type=str, dest='size', metavar='WxH',
                        default='{0}x{1}'.format(*DEFAULT_BOUNDS),
                        help='pixel dimensions of the image, e.g. 1000x750')

    parser.add_argument('--upper-left', type=str, dest='upper_left', metavar='RE,IM',
                        default='-0.75,0.75',
                        help='upper-left corner of the viewport in the complex plane')

    parser.add_argument('--lower-right', type=str, dest='lower_right', metavar='RE,IM',
                        default='0,0',
                        help='lower-right corner of the viewport in the complex plane')

    parser.add_argument('--click', type=str, dest='clicks', action='append', metavar='X,Y', default=[],
                        help='pixel to zoom in on before rendering. May be repeated; clicks are applied in order.')

    parser.add_argument('--mode', type=str, dest='mode', choices=MODES, default='image',
                        help='"image" writes the final frame, "gif" writes one frame per click, '
                             '"window" opens an interactive viewer.')

    parser.add_argument('--output', dest='output', type=str,
                        help='destination file for image or gif modes (default: mandel.png / zoom.gif)')

    parser.add_argument('--frame-duration', type=float, dest='frame_duration', metavar='SECONDS', default=0.5,
                        help='display time of each gif frame')

    parser.add_argument('--workers', type=int, dest='workers', metavar='N',
                        help='number of render threads (default: one per CPU)')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics and render progress.')

    return parser


def _parse_size(text, parser):
    size = parse_pair(text, 'x', int)
    if size is None:
        parser.error(f"--size must look like WIDTHxHEIGHT, got '{text}'.")
    if size[0] <= 0 or size[1] <= 0:
        parser.error(f"--size dimensions must be positive, got '{text}'.")
    return size


def _parse_corner(text, flag, parser):
    point = parse_complex(text)
    if point is None:
        parser.error(f"{flag} must look like RE,IM, got '{text}'.")
    return point


def resolve_config(opt, parser: ArgumentParser) -> ZoomConfig:
    bounds = _parse_size(opt.size, parser)
    upper_left = _parse_corner(opt.upper_left, '--upper-left', parser)
    lower_right = _parse_corner(opt.lower_right, '--lower-right', parser)
    if not (upper_left.real < lower_right.real and upper_left.imag > lower_right.imag):
        parser.error("--upper-left must lie above and to the left of --lower-right.")

    clicks = []
    for text in opt.clicks:
        click = parse_pair(text, ',')
        if click is None:
            parser.error(f"--click must look like X,Y, got '{text}'.")
        clicks.append(click)

    if opt.workers is not None and opt.workers < 1:
        parser.error("--workers must be at least 1.")
    if opt.frame_duration <= 0:
        parser.error("--frame-duration must be positive.")

    output = None
    if opt.mode == 'window':
        if opt.output:
            parser.error("--output is only valid with the image or gif modes.")
    else:
        output = Path(opt.output or DEFAULT_OUTPUTS[opt.mode]).expanduser()
        if opt.mode == 'gif':
            if output.suffix and output.suffix.lower() != '.gif':
                parser.error("GIF outputs must end with .gif.")
            output = output.with_suffix('.gif')
        output = output.resolve()

    return ZoomConfig(
        bounds=bounds,
        viewport=Viewport(upper_left, lower_right),
        clicks=tuple(clicks),
        mode=opt.mode,
        output=output,
        frame_duration=opt.frame_duration,
        workers=opt.workers,
    )


def _report_progress(done, total):
    log("rows {0} out of {1}".format(done, total), end='\r' if done < total else '\n')


def _render(controller, workers):
    viewport = controller.snapshot()
    log("rendering {0} .. {1}".format(viewport.upper_left, viewport.lower_right))
    return render_image(
        controller.bounds,
        viewport.upper_left,
        viewport.lower_right,
        workers=workers,
        progress=_report_progress,
    )


def main(argv=None):
    parser = build_parser()
    opt = parse_args(parser, argv)
    config = resolve_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)

    controller = ViewportController(config.bounds, config.viewport)

    if config.mode == 'gif':
        frames = [_render(controller, config.workers)]
        for i, click in enumerate(config.clicks):
            print("frame {0} out of {1}".format(i + 1, len(config.clicks)), end='\r')
            controller.recenter(click)
            frames.append(_render(controller, config.workers))
        write_zoom_gif(config.output, frames, duration=config.frame_duration)
        print("wrote {0} frames to {1}".format(len(frames), config.output))
        return

    for click in config.clicks:
        viewport = controller.recenter(click)
        log("click at {0},{1} -> {2} .. {3}".format(click[0], click[1], viewport.upper_left, viewport.lower_right))

    if config.mode == 'window':
        viewer = MandelbrotViewer(controller, workers=config.workers, log=log)
        viewer.show()
        return

    pixels = _render(controller, config.workers)
    write_image(config.output, pixels, config.bounds)
    print("wrote {0}".format(config.output))


if __name__ == '__main__':
    main()
