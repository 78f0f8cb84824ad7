import threading

import pytest

from mandelzoom.renderer import render_image
from mandelzoom.viewport import Viewport, ViewportController, recenter

BOUNDS = (1000, 1000)
SQUARE = Viewport(complex(-1.0, 1.0), complex(1.0, -1.0))


def test_default_viewport():
    viewport = Viewport.default()
    assert viewport.upper_left == complex(-0.75, 0.75)
    assert viewport.lower_right == 0j
    assert viewport.width == 0.75
    assert viewport.height == 0.75
    assert viewport.center == complex(-0.375, 0.375)


def test_center_click_keeps_center_and_shrinks():
    """Each corner moves an eighth of its distance to the center."""
    zoomed = recenter((500, 500), BOUNDS, SQUARE)
    assert zoomed == Viewport(complex(-0.875, 0.875), complex(0.875, -0.875))
    assert zoomed.center == SQUARE.center
    assert zoomed.width == 0.875 * SQUARE.width
    assert zoomed.height == 0.875 * SQUARE.height


def test_off_center_click_moves_center_to_clicked_point():
    zoomed = recenter((750, 250), BOUNDS, SQUARE)
    assert zoomed == Viewport(complex(-0.4375, 1.3125), complex(1.4375, -0.3125))
    assert zoomed.center == complex(0.5, 0.5)


def test_corner_click_on_default_view():
    zoomed = recenter((0, 1000), BOUNDS, Viewport.default())
    assert zoomed == Viewport(complex(-1.03125, 0.375), complex(-0.46875, -0.375))
    assert zoomed.center == complex(-0.75, 0.0)
    assert zoomed.width == 0.75 * 0.75


def test_unclamped_click_outside_grid():
    zoomed = recenter((1500, 500), BOUNDS, SQUARE)
    assert zoomed == Viewport(complex(0.875, 0.875), complex(3.125, -0.875))
    assert zoomed.center == complex(2.0, 0.0)


def test_repeated_center_clicks_shrink_geometrically():
    viewport = SQUARE
    for step in range(1, 30):
        viewport = recenter((500, 500), BOUNDS, viewport)
        assert viewport.center == SQUARE.center
        assert viewport.width == pytest.approx(2.0 * 0.875 ** step)


def test_repeated_clicks_shrink_monotonically():
    viewport = Viewport.default()
    for _ in range(40):
        zoomed = recenter((300, 700), BOUNDS, viewport)
        assert zoomed.width == pytest.approx(0.825 * viewport.width)
        assert zoomed.height == pytest.approx(0.925 * viewport.height)
        assert 0 < zoomed.width < viewport.width
        assert 0 < zoomed.height < viewport.height
        viewport = zoomed


def test_controller_recenter_updates_snapshot():
    controller = ViewportController(BOUNDS)
    before = controller.snapshot()
    assert before == Viewport.default()
    after = controller.recenter((500, 500))
    assert controller.snapshot() == after
    assert after == recenter((500, 500), BOUNDS, before)


def test_controller_render_uses_snapshot():
    controller = ViewportController((12, 8), Viewport(complex(-2.0, 1.0), complex(1.0, -1.0)))
    pixels = bytearray(12 * 8 * 3)
    drawn = controller.render(pixels, workers=2)
    assert drawn == controller.snapshot()
    gray = render_image((12, 8), drawn.upper_left, drawn.lower_right, workers=1)
    assert bytes(pixels[::3]) == gray.tobytes()


def test_controller_serializes_concurrent_access():
    controller = ViewportController(BOUNDS)
    clicks_per_thread = 50
    threads = 4

    expected = [controller.snapshot()]
    for _ in range(clicks_per_thread * threads):
        expected.append(recenter((123, 456), BOUNDS, expected[-1]))
    allowed = set(expected)

    seen = []
    stop = threading.Event()

    def click():
        for _ in range(clicks_per_thread):
            controller.recenter((123, 456))

    def watch():
        while not stop.is_set():
            seen.append(controller.snapshot())

    watcher = threading.Thread(target=watch)
    watcher.start()
    clickers = [threading.Thread(target=click) for _ in range(threads)]
    for thread in clickers:
        thread.start()
    for thread in clickers:
        thread.join()
    stop.set()
    watcher.join()

    assert controller.snapshot() == expected[-1]
    assert all(viewport in allowed for viewport in seen)
