"""Tests for the annotation vocabulary: coordinate validation, colors, history normalisation."""

import math

import pytest
from pydantic import ValidationError

from pdf_tutor.annotations.models import (
    ANNOTATION_COLORS,
    Annotation,
    AnnotationType,
    Coordinates,
    color_for,
    is_valid_coordinates,
    normalize_annotations,
)


class TestIsValidCoordinates:
    def test_complete_mapping_is_valid(self):
        assert is_valid_coordinates({"x": 25, "y": 40, "width": 15, "height": 10})

    def test_zero_values_are_valid(self):
        assert is_valid_coordinates({"x": 0, "y": 0, "width": 0, "height": 0})

    def test_model_instance_is_valid(self):
        assert is_valid_coordinates(Coordinates(x=1.5, y=2, width=3, height=4))

    @pytest.mark.parametrize("missing", ["x", "y", "width", "height"])
    def test_missing_field_is_invalid(self, missing):
        coords = {"x": 25, "y": 40, "width": 15, "height": 10}
        del coords[missing]
        assert not is_valid_coordinates(coords)

    @pytest.mark.parametrize("bad", [None, "25", math.nan, math.inf, True, [1], 10**400, -(10**400)])
    def test_non_numeric_value_is_invalid(self, bad):
        assert not is_valid_coordinates({"x": bad, "y": 40, "width": 15, "height": 10})

    def test_none_is_invalid(self):
        assert not is_valid_coordinates(None)

    def test_out_of_range_percentages_are_still_valid(self):
        assert is_valid_coordinates({"x": -10, "y": 140, "width": 300, "height": 5})


def test_color_mapping_by_type():
    assert color_for(AnnotationType.HIGHLIGHT) == "#fef08a"
    assert color_for(AnnotationType.CIRCLE) == "#ef4444"
    assert color_for("underline") == "#3b82f6"
    assert set(ANNOTATION_COLORS) == set(AnnotationType)


def _annotation(**overrides):
    fields = dict(
        type=AnnotationType.CIRCLE,
        page_number=2,
        coordinates=Coordinates(x=25, y=40, width=15, height=10),
        color="#ef4444",
    )
    fields.update(overrides)
    return Annotation(**fields)


def test_annotation_is_immutable():
    annotation = _annotation()
    with pytest.raises(ValidationError):
        annotation.page_number = 3


def test_annotation_ids_are_unique():
    assert _annotation().id != _annotation().id


def test_annotation_rejects_non_positive_page():
    with pytest.raises(ValidationError):
        _annotation(page_number=0)


def test_payload_uses_camel_case_keys():
    payload = _annotation(text="Key figure").to_payload()
    assert payload["type"] == "circle"
    assert payload["pageNumber"] == 2
    assert payload["coordinates"] == {"x": 25.0, "y": 40.0, "width": 15.0, "height": 10.0}
    assert payload["text"] == "Key figure"
    assert payload["color"] == "#ef4444"
    assert "page_number" not in payload


def test_payload_round_trips_through_alias():
    payload = _annotation().to_payload()
    assert Annotation.model_validate(payload) == _annotation(id=payload["id"])


class TestNormalizeAnnotations:
    def test_none_becomes_empty_list(self):
        assert normalize_annotations(None) == []

    def test_single_object_becomes_one_element_list(self):
        single = {"id": "a1", "type": "highlight"}
        assert normalize_annotations(single) == [single]

    def test_list_is_kept(self):
        items = [{"id": "a1"}, {"id": "a2"}]
        assert normalize_annotations(items) == items

    def test_non_mapping_items_are_dropped(self):
        assert normalize_annotations([{"id": "a1"}, "junk", 3]) == [{"id": "a1"}]
