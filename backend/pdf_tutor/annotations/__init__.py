from .models import (
    ANNOTATION_COLORS,
    Annotation,
    AnnotationType,
    Coordinates,
    is_valid_coordinates,
    normalize_annotations,
)
from .actions import (
    ActionError,
    ActionRejected,
    AnnotateOutcome,
    InvalidCoordinates,
    InvalidPageNumber,
    MissingPageNumber,
    NavigateOutcome,
    UnsupportedAction,
    decode_action,
    parse_action,
)
from .store import AnnotationStore
from .geometry import PixelRect, to_pixel_rect, underline_rect
from .render import OverlayShape, PageOverlay, render_page_overlay
from .session import SessionRegistry, TutorSession

__all__ = [
    "ANNOTATION_COLORS",
    "Annotation",
    "AnnotationType",
    "Coordinates",
    "is_valid_coordinates",
    "normalize_annotations",
    "ActionError",
    "ActionRejected",
    "AnnotateOutcome",
    "InvalidCoordinates",
    "InvalidPageNumber",
    "MissingPageNumber",
    "NavigateOutcome",
    "UnsupportedAction",
    "decode_action",
    "parse_action",
    "AnnotationStore",
    "PixelRect",
    "to_pixel_rect",
    "underline_rect",
    "OverlayShape",
    "PageOverlay",
    "render_page_overlay",
    "SessionRegistry",
    "TutorSession",
]
