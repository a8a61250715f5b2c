"""
Decoding of tutor actions.

An action arrives as an untrusted mapping, usually produced by the language
model under a requested schema:

    {"action": "highlight" | "circle" | "underline" | "navigate",
     "pageNumber": 3, "coordinates": {"x": .., "y": .., "width": .., "height": ..},
     "text": "caption"}

``parse_action`` turns it into a typed outcome or raises one of the
``ActionError`` subclasses. ``decode_action`` wraps it for callers that must
never fail: the rejection is returned as a value instead.
"""

from __future__ import annotations

import logging
import numbers
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pdf_tutor.annotations.models import (
    Annotation,
    AnnotationType,
    Coordinates,
    color_for,
    is_valid_coordinates,
    new_annotation_id,
)

logger = logging.getLogger(__name__)

NAVIGATE = "navigate"
ACTION_KINDS = (NAVIGATE,) + tuple(t.value for t in AnnotationType)

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class ActionError(ValueError):
    code = "invalid_action"


class MissingPageNumber(ActionError):
    code = "missing_page_number"


class InvalidPageNumber(ActionError):
    code = "invalid_page_number"


class InvalidCoordinates(ActionError):
    code = "invalid_coordinates"


class UnsupportedAction(ActionError):
    code = "unsupported_action"


@dataclass(frozen=True)
class NavigateOutcome:
    page_number: int

    @property
    def annotation(self) -> None:
        return None


@dataclass(frozen=True)
class AnnotateOutcome:
    annotation: Annotation

    @property
    def page_number(self) -> None:
        # Annotating never moves the viewer
        return None


@dataclass(frozen=True)
class ActionRejected:
    code: str
    message: str
    action: Optional[str] = None


ParsedAction = Union[NavigateOutcome, AnnotateOutcome]
ActionOutcome = Union[NavigateOutcome, AnnotateOutcome, ActionRejected]


def _as_page_number(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    page = int(value)
    return page if page >= 1 else None


def parse_action(
    payload: Any,
    current_page: int,
    id_factory: Callable[[], str] = new_annotation_id,
) -> ParsedAction:
    """Validate an action payload against the page the user is viewing."""
    if not isinstance(payload, Mapping):
        raise UnsupportedAction("Action payload must be an object")

    kind = payload.get("action")
    if kind not in ACTION_KINDS:
        raise UnsupportedAction(f"Unknown action: {kind!r}")

    raw_page = payload.get("pageNumber")

    if kind == NAVIGATE:
        page = _as_page_number(raw_page)
        if page is None:
            raise MissingPageNumber("navigate requires a positive integer pageNumber")
        return NavigateOutcome(page_number=page)

    coordinates = payload.get("coordinates")
    if not is_valid_coordinates(coordinates):
        raise InvalidCoordinates(f"{kind} requires numeric x, y, width and height")

    if raw_page is None:
        page = current_page
    else:
        page = _as_page_number(raw_page)
        if page is None:
            raise InvalidPageNumber(f"pageNumber must be a positive integer, got {raw_page!r}")

    annotation_type = AnnotationType(kind)
    color = payload.get("color")
    if not (isinstance(color, str) and _HEX_COLOR.match(color)):
        color = color_for(annotation_type)

    text = payload.get("text")
    if not isinstance(text, str) or not text:
        text = None

    if isinstance(coordinates, Mapping):
        coords = Coordinates(**{name: coordinates[name] for name in ("x", "y", "width", "height")})
    else:
        coords = Coordinates(
            x=coordinates.x, y=coordinates.y, width=coordinates.width, height=coordinates.height
        )

    return AnnotateOutcome(
        annotation=Annotation(
            id=id_factory(),
            type=annotation_type,
            page_number=page,
            coordinates=coords,
            text=text,
            color=color,
        )
    )


def decode_action(
    payload: Any,
    current_page: int,
    id_factory: Callable[[], str] = new_annotation_id,
) -> ActionOutcome:
    """Like ``parse_action`` but reports a bad action as an ``ActionRejected`` value."""
    try:
        return parse_action(payload, current_page, id_factory=id_factory)
    except ActionError as exc:
        kind = payload.get("action") if isinstance(payload, Mapping) else None
        logger.warning("Dropping %s action: %s", kind or "unknown", exc)
        return ActionRejected(code=exc.code, message=str(exc), action=kind if isinstance(kind, str) else None)
