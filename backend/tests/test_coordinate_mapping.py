import pytest

from pdf_tutor.annotations.geometry import (
    UNDERLINE_THICKNESS,
    PixelRect,
    clip_to_page,
    to_pixel_rect,
    underline_rect,
)
from pdf_tutor.annotations.models import Coordinates


def test_percentages_map_to_pixels():
    rect = to_pixel_rect(Coordinates(x=25, y=40, width=15, height=10), 800, 1000)
    assert rect == PixelRect(left=200, top=400, width=120, height=100)


def test_fractional_result_without_rounding():
    rect = to_pixel_rect(Coordinates(x=33.3, y=10, width=10, height=10), 612, 792)
    assert rect.left == pytest.approx(203.796)
    assert rect.height == pytest.approx(79.2)


def test_rounding_to_whole_pixels():
    rect = to_pixel_rect(Coordinates(x=33.3, y=10, width=10, height=10), 612, 792, round_to_pixel=True)
    assert rect == PixelRect(left=204, top=79, width=61, height=79)


def test_underline_sits_on_bottom_edge():
    rect = PixelRect(left=160, top=500, width=480, height=30)
    bar = underline_rect(rect)
    assert bar == PixelRect(left=160, top=500 + 30 - UNDERLINE_THICKNESS, width=480, height=UNDERLINE_THICKNESS)


def test_out_of_page_coordinates_are_mapped_as_given():
    rect = to_pixel_rect(Coordinates(x=110, y=-10, width=50, height=5), 800, 1000)
    assert rect.left == 880
    assert rect.top == -100


@pytest.mark.parametrize(
    "coords, expected",
    [
        (Coordinates(x=25, y=40, width=15, height=10), (25, 40, 15, 10)),
        (Coordinates(x=-10, y=95, width=30, height=10), (0, 95, 20, 5)),
        (Coordinates(x=1e308, y=1e308, width=1e308, height=1e308), (100, 100, 0, 0)),
        (Coordinates(x=50, y=50, width=-20, height=5), (50, 50, 0, 5)),
    ],
)
def test_clip_to_page(coords, expected):
    clipped = clip_to_page(coords)
    assert (clipped.x, clipped.y, clipped.width, clipped.height) == expected
