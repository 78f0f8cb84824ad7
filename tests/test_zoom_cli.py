import numpy as np
import PIL.Image
import pytest

import zoom
from mandelzoom.renderer import render_image
from mandelzoom.viewport import Viewport, recenter


def _config(args):
    parser = zoom.build_parser()
    return zoom.resolve_config(zoom.parse_args(parser, args), parser)


def test_defaults():
    config = _config([])
    assert config.bounds == (1000, 1000)
    assert config.viewport == Viewport.default()
    assert config.clicks == ()
    assert config.mode == "image"
    assert config.output.name == "mandel.png"
    assert config.workers is None


def test_parses_geometry_and_clicks():
    config = _config([
        "--size", "64x48",
        "--upper-left", "-2,1.5",
        "--lower-right", "1,-1.5",
        "--click", "32,24",
        "--click", "0.5,10",
        "--workers", "3",
    ])
    assert config.bounds == (64, 48)
    assert config.viewport == Viewport(complex(-2.0, 1.5), complex(1.0, -1.5))
    assert config.clicks == ((32.0, 24.0), (0.5, 10.0))
    assert config.workers == 3


def test_gif_output_gets_gif_suffix(tmp_path):
    config = _config(["--mode", "gif", "--output", str(tmp_path / "movie")])
    assert config.output == (tmp_path / "movie.gif").resolve()


@pytest.mark.parametrize(
    "args",
    [
        ["--size", "64x"],
        ["--size", "64,48"],
        ["--size", "0x48"],
        ["--upper-left", "-2"],
        ["--lower-right", "1,-1.5xy"],
        ["--upper-left", "1,1", "--lower-right", "-1,-1"],
        ["--click", "10"],
        ["--workers", "0"],
        ["--frame-duration", "0"],
        ["--mode", "window", "--output", "out.png"],
        ["--mode", "gif", "--output", "out.png"],
    ],
)
def test_rejects_bad_arguments(args):
    with pytest.raises(SystemExit):
        _config(args)


def test_main_writes_image_after_clicks(tmp_path):
    output = tmp_path / "out.png"
    zoom.main(["--size", "16x12", "--click", "8,6", "--workers", "2", "--output", str(output)])

    viewport = recenter((8.0, 6.0), (16, 12), Viewport.default())
    expected = render_image((16, 12), viewport.upper_left, viewport.lower_right, workers=1)
    with PIL.Image.open(output) as image:
        assert image.mode == "L"
        assert image.size == (16, 12)
        np.testing.assert_array_equal(np.asarray(image), expected)


def test_main_writes_gif(tmp_path):
    output = tmp_path / "zoom.gif"
    zoom.main(["--mode", "gif", "--size", "16x12", "--click", "8,6", "--click", "2,2", "--output", str(output)])

    with PIL.Image.open(output) as image:
        assert image.format == "GIF"
        assert image.size == (16, 12)


def test_pair_flags_take_negative_values():
    assert zoom.join_pair_values(["--upper-left", "-2,1", "--size", "8x8", "--click", "-3,4"]) == [
        "--upper-left=-2,1",
        "--size",
        "8x8",
        "--click=-3,4",
    ]
    config = _config(["--upper-left=-1,1", "--lower-right", "1,-1", "--click", "-4,2"])
    assert config.viewport == Viewport(complex(-1.0, 1.0), complex(1.0, -1.0))
    assert config.clicks == ((-4.0, 2.0),)


def test_main_renders_viewport_with_negative_corner(tmp_path):
    output = tmp_path / "square.png"
    zoom.main(["--size", "8x8", "--upper-left", "-1,1", "--lower-right", "1,-1", "--output", str(output)])

    expected = render_image((8, 8), complex(-1.0, 1.0), complex(1.0, -1.0), workers=1)
    with PIL.Image.open(output) as image:
        np.testing.assert_array_equal(np.asarray(image), expected)
