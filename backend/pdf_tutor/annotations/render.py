"""
Overlay composition for the page currently on screen.

Shapes are plain draw instructions for the client's overlay layer; only the
annotations of the displayed page are emitted. Annotations of other pages stay
in the store untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Literal, Optional

from pydantic import BaseModel

from pdf_tutor.annotations.geometry import clip_to_page, to_pixel_rect, underline_rect
from pdf_tutor.annotations.models import Annotation, AnnotationType

if TYPE_CHECKING:
    from pdf_tutor.annotations.session import TutorSession

CIRCLE_STROKE_WIDTH = 3.0


class OverlayShape(BaseModel):
    annotation_id: str
    type: str
    kind: Literal["fill", "outline", "bar"]
    left: float
    top: float
    width: float
    height: float
    color: str
    opacity: float
    border_radius: str = "0"
    stroke_width: Optional[float] = None
    title: Optional[str] = None
    animation: str = "pulse"


def render_annotation(
    annotation: Annotation,
    page_width: float,
    page_height: float,
    round_to_pixel: bool = False,
) -> OverlayShape:
    rect = to_pixel_rect(
        clip_to_page(annotation.coordinates), page_width, page_height, round_to_pixel=round_to_pixel
    )
    common = dict(annotation_id=annotation.id, type=annotation.type, color=annotation.color, title=annotation.text)

    if annotation.type == AnnotationType.HIGHLIGHT:
        return OverlayShape(kind="fill", opacity=0.4, border_radius="2px", **rect._asdict(), **common)

    if annotation.type == AnnotationType.CIRCLE:
        return OverlayShape(
            kind="outline",
            opacity=0.8,
            border_radius="50%",
            stroke_width=CIRCLE_STROKE_WIDTH,
            **rect._asdict(),
            **common,
        )

    bar = underline_rect(rect)
    return OverlayShape(kind="bar", opacity=0.8, **bar._asdict(), **common)


def render_page_overlay(
    annotations: Iterable[Annotation],
    page_number: int,
    page_width: float,
    page_height: float,
    round_to_pixel: bool = False,
) -> List[OverlayShape]:
    return [
        render_annotation(annotation, page_width, page_height, round_to_pixel=round_to_pixel)
        for annotation in annotations
        if annotation.page_number == page_number
    ]


class PageOverlay:
    """Overlay for a session's current page, recomputed when the page or the store changes."""

    def __init__(self, session: "TutorSession", page_width: float, page_height: float):
        self.session = session
        self.page_width = page_width
        self.page_height = page_height
        self._shapes: Optional[List[OverlayShape]] = None
        self._unsubscribers = [
            session.store.subscribe(lambda _store: self.invalidate()),
            session.on_page_change(lambda _page: self.invalidate()),
        ]

    def invalidate(self) -> None:
        self._shapes = None

    def resize(self, page_width: float, page_height: float) -> None:
        if (page_width, page_height) != (self.page_width, self.page_height):
            self.page_width = page_width
            self.page_height = page_height
            self.invalidate()

    @property
    def shapes(self) -> List[OverlayShape]:
        if self._shapes is None:
            page = self.session.current_page
            self._shapes = render_page_overlay(
                self.session.store.list_for_page(page), page, self.page_width, self.page_height
            )
        return self._shapes

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
