"""
Kind registry: required context, scope tuples, fetch keys, Generator context.
"""

import pytest

from population.errors import MissingContextError
from population.kinds import (
    KINDS,
    build_context,
    build_fetch_key,
    extract_scope,
    get_kind,
    reference_id,
)


class TestExtractScope:
    def test_boards_require_state(self):
        with pytest.raises(MissingContextError) as exc:
            extract_scope(get_kind("boards"), {"state_name": "West Bengal"})
        assert exc.value.missing == ["state_id"]
        assert exc.value.payload() == {"error": "Missing required contextual info"}

    def test_blank_string_counts_as_missing(self):
        with pytest.raises(MissingContextError):
            extract_scope(get_kind("chapters"), {"subject_id": 4, "subject_name": "   "})

    def test_scope_keeps_explicit_nulls(self):
        scope = extract_scope(
            get_kind("subjects"),
            {"context_name": "WBBSE Class 10", "board_id": 1, "class_id": 2},
        )
        assert scope["board_id"] == 1
        assert scope["class_id"] == 2
        assert scope["stream_id"] is None
        assert len(scope) == 8

    def test_subjects_need_an_anchor_id(self):
        with pytest.raises(MissingContextError):
            extract_scope(get_kind("subjects"), {"context_name": "Physics", "class_id": 2})

    def test_classes_have_global_scope(self):
        assert extract_scope(get_kind("classes"), {"board_id": 3, "board_name": "WBBSE"}) == {}


class TestFetchKey:
    def test_same_scope_any_order_same_key(self):
        spec = get_kind("subjects")
        a = build_fetch_key(spec, {"board_id": 1, "class_id": 2, "stream_id": None})
        b = build_fetch_key(spec, {"stream_id": None, "class_id": 2, "board_id": 1})
        assert a == b

    def test_null_and_value_differ(self):
        spec = get_kind("subjects")
        assert build_fetch_key(spec, {"board_id": 1, "class_id": 2}) != build_fetch_key(
            spec, {"board_id": 1, "class_id": 2, "stream_id": 7}
        )

    def test_kinds_never_collide(self):
        keys = {build_fetch_key(spec, {"state_id": 1, "board_id": 1, "subject_id": 1}) for spec in KINDS.values()}
        assert len(keys) == len(KINDS)

    def test_string_fields_normalized(self):
        spec = get_kind("streams")
        a = build_fetch_key(spec, {"board_name": " WBCHSE ", "class_name": "Class  11"})
        b = build_fetch_key(spec, {"class_name": "class 11", "board_name": "wbchse"})
        assert a == b

    def test_key_ignores_display_names(self):
        spec = get_kind("chapters")
        assert build_fetch_key(spec, {"subject_id": 9, "subject_name": "Physics"}) == build_fetch_key(
            spec, {"subject_id": 9, "subject_name": "PHYSICS (Theory)"}
        )


class TestContext:
    def test_template_filled(self):
        context = build_context(get_kind("boards"), {"state_id": 1, "state_name": "Kerala"})
        assert context.startswith("State of Kerala, India.")

    def test_optional_field_left_blank(self):
        context = build_context(get_kind("semesters"), {"university_id": 1, "university_name": "Calcutta"})
        assert 'Degree: ""' in context

    def test_context_is_bounded(self):
        context = build_context(get_kind("subjects"), {"context_name": "x" * 5000}, max_chars=300)
        assert len(context) == 300


class TestReferenceId:
    def test_first_scope_id(self):
        assert reference_id(get_kind("chapters"), {"subject_id": 12}) == 12

    def test_link_field_for_classes(self):
        assert reference_id(get_kind("classes"), {"board_id": 5, "board_name": "x"}) == 5

    def test_none_for_streams(self):
        assert reference_id(get_kind("streams"), {"board_name": "x", "class_name": "y"}) is None
