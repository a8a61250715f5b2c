"""Percentage coordinates to pixel rectangles."""

from __future__ import annotations

from typing import NamedTuple

from pdf_tutor.annotations.models import Coordinates

UNDERLINE_THICKNESS = 3.0


class PixelRect(NamedTuple):
    left: float
    top: float
    width: float
    height: float

    def rounded(self) -> "PixelRect":
        return PixelRect(*(float(round(value)) for value in self))


def to_pixel_rect(
    coordinates: Coordinates,
    page_width_px: float,
    page_height_px: float,
    round_to_pixel: bool = False,
) -> PixelRect:
    rect = PixelRect(
        left=coordinates.x * page_width_px / 100,
        top=coordinates.y * page_height_px / 100,
        width=coordinates.width * page_width_px / 100,
        height=coordinates.height * page_height_px / 100,
    )
    return rect.rounded() if round_to_pixel else rect


def underline_rect(rect: PixelRect, thickness: float = UNDERLINE_THICKNESS) -> PixelRect:
    """A thin bar along the bottom edge of ``rect``."""
    return PixelRect(
        left=rect.left,
        top=rect.top + rect.height - thickness,
        width=rect.width,
        height=thickness,
    )


def _clip(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def clip_to_page(coordinates: Coordinates) -> Coordinates:
    """The part of a percentage box that lies on the page, never wider than the page.

    Sums of finite values can overflow to +-inf but never to nan, so clipping the
    edges keeps the result finite.
    """
    left = _clip(coordinates.x)
    top = _clip(coordinates.y)
    right = _clip(coordinates.x + coordinates.width)
    bottom = _clip(coordinates.y + coordinates.height)
    return Coordinates(x=left, y=top, width=max(right - left, 0.0), height=max(bottom - top, 0.0))
