"""
Annotation vocabulary shared by the action decoder, the store and the overlay renderer.

Coordinates are percentages (0-100) of the page width/height and are only
converted to pixels at render time.
"""

from __future__ import annotations

import enum
import math
import numbers
import uuid
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

COORDINATE_FIELDS = ("x", "y", "width", "height")


class AnnotationType(str, enum.Enum):
    HIGHLIGHT = "highlight"
    CIRCLE = "circle"
    UNDERLINE = "underline"


ANNOTATION_COLORS = {
    AnnotationType.HIGHLIGHT: "#fef08a",
    AnnotationType.CIRCLE: "#ef4444",
    AnnotationType.UNDERLINE: "#3b82f6",
}


def color_for(annotation_type: AnnotationType) -> str:
    return ANNOTATION_COLORS[AnnotationType(annotation_type)]


def new_annotation_id() -> str:
    return str(uuid.uuid4())


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class Annotation(BaseModel):
    """A page-scoped marker. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=True)

    id: str = Field(default_factory=new_annotation_id)
    type: AnnotationType
    page_number: int = Field(..., ge=1, alias="pageNumber")
    coordinates: Coordinates
    text: Optional[str] = None
    color: str = Field(..., pattern="^#[0-9A-Fa-f]{6}$")

    def to_payload(self) -> dict:
        """Wire shape with camelCase keys, as stored on chat messages."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def is_valid_coordinates(coordinates: Any) -> bool:
    """True iff x, y, width and height are all present and finite numbers."""
    if coordinates is None:
        return False
    for name in COORDINATE_FIELDS:
        if isinstance(coordinates, Mapping):
            value = coordinates.get(name)
        else:
            value = getattr(coordinates, name, None)
        if not _is_finite_number(value):
            return False
    return True


def normalize_annotations(raw: Any) -> list[dict]:
    """Stored message annotations as a list, whatever shape history left them in."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [dict(raw)]
    if isinstance(raw, (list, tuple)):
        return [dict(item) for item in raw if isinstance(item, Mapping)]
    return []
