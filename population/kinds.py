"""
Step 2 — Kind Registry

One KindSpec per /api/ai-fetch/<kind> endpoint: which request fields are
required, which become the row's scope tuple, how the fetch-guard key is
built, what the Generator is asked, and how candidates are filtered.
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from database import models
from population import normalizer
from population.errors import MissingContextError

GENERATOR_MAX_CONTEXT_CHARS = int(os.getenv("GENERATOR_MAX_CONTEXT_CHARS", "1000"))


@dataclass(frozen=True)
class KindSpec:
    kind: str
    label: str
    model: type
    scope_fields: Tuple[str, ...]
    required: Tuple[str, ...]
    max_length: int
    context_template: str
    blocked_terms: Tuple[str, ...] = ()
    key_fields: Tuple[str, ...] = ()
    any_of: Tuple[str, ...] = ()
    # classes: the row is global, this request field names the board to link
    link_field: Optional[str] = None
    candidate_filter: Optional[Callable[[str, dict], bool]] = None
    check_placeholder_pattern: bool = True

    @property
    def table(self) -> str:
        return self.model.__tablename__

    @property
    def fetch_key_fields(self) -> Tuple[str, ...]:
        return self.key_fields or self.scope_fields


def _class_filter(name: str, payload: dict) -> bool:
    return normalizer.class_fits_board(name, payload.get("board_name"))


KINDS: Dict[str, KindSpec] = {
    spec.kind: spec
    for spec in (
        KindSpec(
            kind="boards",
            label="School Education Boards",
            model=models.Board,
            scope_fields=("state_id",),
            required=("state_id", "state_name"),
            max_length=200,
            blocked_terms=normalizer.NON_SCHOOL_BOARD_TERMS,
            context_template=(
                "State of {state_name}, India. List ONLY boards that govern school education "
                "(Class 1 to Class 12), such as state secondary boards, CBSE, ICSE/CISCE, NIOS. "
                "DO NOT include university boards, entrance exam boards (JEE/NEET), councils of "
                "higher education, technical boards, or any board not related to school-level education."
            ),
        ),
        KindSpec(
            kind="universities",
            label="Universities",
            model=models.University,
            scope_fields=("state_id",),
            required=("state_id", "state_name"),
            max_length=200,
            blocked_terms=normalizer.UNIVERSITY_ERROR_TERMS,
            context_template="State of {state_name}, India. Strictly provide original names only.",
        ),
        KindSpec(
            kind="papers",
            label="Papers/Stages",
            model=models.PaperStage,
            scope_fields=("category_id",),
            required=("category_id", "category_name"),
            max_length=200,
            context_template="Exam Category: {category_name}. Strictly original paper or stage names.",
        ),
        KindSpec(
            kind="classes",
            label="Classes",
            model=models.ClassLevel,
            scope_fields=(),
            key_fields=("board_id",),
            link_field="board_id",
            required=("board_id", "board_name"),
            max_length=50,
            candidate_filter=_class_filter,
            check_placeholder_pattern=False,
            context_template=(
                'Board: "{board_name}" (India). List the school classes this board conducts '
                'examinations or curriculum for, named like "Class 9", "Class 10".'
            ),
        ),
        KindSpec(
            kind="streams",
            label="Streams",
            model=models.Stream,
            scope_fields=(),
            key_fields=("board_name", "class_name"),
            required=("board_name", "class_name"),
            max_length=100,
            context_template=(
                'Board: "{board_name}", {class_name} (India). List ONLY the academic streams / '
                "branches offered at this class level by this board. Typical values: Science, "
                "Commerce, Arts / Humanities, Vocational. Return only what this board actually offers."
            ),
        ),
        KindSpec(
            kind="semesters",
            label="Terms",
            model=models.Semester,
            scope_fields=("university_id",),
            required=("university_id", "university_name"),
            max_length=100,
            context_template=(
                'University: "{university_name}", Degree: "{degree_type_name}" (India). List the '
                'academic terms used (e.g. "Semester 1", "Semester 2", or "1st Year", "2nd Year"). '
                "Return only the names of the terms."
            ),
        ),
        KindSpec(
            kind="subjects",
            label="Subjects",
            model=models.Subject,
            scope_fields=(
                "category_id", "board_id", "university_id", "class_id",
                "stream_id", "semester_id", "degree_type_id", "paper_stage_id",
            ),
            required=("context_name",),
            any_of=("category_id", "board_id", "university_id", "paper_stage_id"),
            max_length=200,
            context_template="Context: {context_name}. Strictly original syllabus subject names only. No placeholders.",
        ),
        KindSpec(
            kind="chapters",
            label="Chapters",
            model=models.Chapter,
            scope_fields=("subject_id",),
            required=("subject_id", "subject_name"),
            max_length=500,
            context_template="Subject: {subject_name}. Strictly original syllabus chapter names only.",
        ),
    )
}


def get_kind(kind: str) -> KindSpec:
    return KINDS[kind]


# ─── Request helpers ───────────────────────────────────────────────────────────

def _is_missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(spec: KindSpec, payload: dict) -> List[str]:
    missing = [f for f in spec.required if _is_missing(payload.get(f))]
    if spec.any_of and all(_is_missing(payload.get(f)) for f in spec.any_of):
        missing.append(" | ".join(spec.any_of))
    return missing


def extract_scope(spec: KindSpec, payload: dict) -> Dict[str, Optional[int]]:
    """Validate the request and return the row's scope tuple (None = NULL)."""
    missing = missing_fields(spec, payload)
    if missing:
        raise MissingContextError(spec.kind, missing)
    return {field: payload.get(field) for field in spec.scope_fields}


def _key_value(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return " ".join(value.split()).lower()
    return str(value)


def build_fetch_key(spec: KindSpec, payload: dict) -> str:
    """
    'subjects:board_id=3|category_id=null|class_id=5|...'

    Field order does not matter; every key field is always present so two
    scopes differing only in a NULL never collide.
    """
    parts = sorted(f"{field}={_key_value(payload.get(field))}" for field in spec.fetch_key_fields)
    return f"{spec.kind}:" + "|".join(parts)


def build_context(spec: KindSpec, payload: dict, max_chars: int = GENERATOR_MAX_CONTEXT_CHARS) -> str:
    values = {k: ("" if v is None else " ".join(str(v).split())) for k, v in payload.items()}
    context = spec.context_template.format_map(_Blank(values))
    return context[:max_chars]


def reference_id(spec: KindSpec, payload: dict) -> Optional[int]:
    """Primary scope id recorded on the fetch log."""
    for field in spec.scope_fields + ((spec.link_field,) if spec.link_field else ()):
        value = payload.get(field)
        if isinstance(value, int):
            return value
    return None


class _Blank(dict):
    def __missing__(self, key):
        return ""
