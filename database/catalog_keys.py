"""
Scope tuples for every catalog table.

A row's identity is (scope columns, LOWER(TRIM(name))) where a NULL scope
column only ever equals another NULL. This module is the single place that
definition lives: population/matcher.py builds its ORM lookup from it and
database/schema_repair.py builds its dedup SQL and unique indexes from it.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# COALESCE filler for NULL keys inside unique indexes. Serial ids start at 1.
NULL_KEY_SENTINEL = -1


@dataclass(frozen=True)
class UniqueScope:
    table: str
    columns: Tuple[str, ...] = ()
    name_column: Optional[str] = "name"
    # (child_table, fk_column) pairs pointing at this table's id
    referenced_by: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def index_name(self) -> str:
        return f"uq_{self.table}_scope"

    def match_sql(self, left: str, right: str) -> str:
        """NULL-safe equality between two aliases of this table."""
        clauses = [
            f"({left}.{col} = {right}.{col} OR ({left}.{col} IS NULL AND {right}.{col} IS NULL))"
            for col in self.columns
        ]
        if self.name_column:
            clauses.append(
                f"LOWER(TRIM({left}.{self.name_column})) = LOWER(TRIM({right}.{self.name_column}))"
            )
        return " AND ".join(clauses)

    def index_expressions(self) -> List[str]:
        exprs = [f"COALESCE({col}, {NULL_KEY_SENTINEL})" for col in self.columns]
        if self.name_column:
            exprs.append(f"LOWER(TRIM({self.name_column}))")
        return exprs

    def create_index_sql(self) -> str:
        return (
            f"CREATE UNIQUE INDEX {self.index_name} "
            f"ON {self.table} ({', '.join(self.index_expressions())})"
        )


SUBJECT_SCOPE_COLUMNS = (
    "category_id",
    "board_id",
    "university_id",
    "class_id",
    "stream_id",
    "semester_id",
    "degree_type_id",
    "paper_stage_id",
)

# Parents before children: repairing a parent re-points its children,
# which are then deduplicated in turn.
CATALOG_KEYS: List[UniqueScope] = [
    UniqueScope("states", referenced_by=(("boards", "state_id"), ("universities", "state_id"))),
    UniqueScope("categories", referenced_by=(("papers_stages", "category_id"), ("subjects", "category_id"))),
    UniqueScope("boards", ("state_id",), referenced_by=(("subjects", "board_id"), ("board_classes", "board_id"))),
    UniqueScope("universities", ("state_id",), referenced_by=(("semesters", "university_id"), ("subjects", "university_id"))),
    UniqueScope("papers_stages", ("category_id",), referenced_by=(("subjects", "paper_stage_id"),)),
    UniqueScope("classes", referenced_by=(("subjects", "class_id"), ("board_classes", "class_id"))),
    UniqueScope("streams", referenced_by=(("subjects", "stream_id"),)),
    UniqueScope("degree_types", referenced_by=(("subjects", "degree_type_id"),)),
    UniqueScope("semesters", ("university_id",), referenced_by=(("subjects", "semester_id"),)),
    UniqueScope("subjects", SUBJECT_SCOPE_COLUMNS, referenced_by=(("chapters", "subject_id"),)),
    UniqueScope("chapters", ("subject_id",)),
    UniqueScope("board_classes", ("board_id", "class_id"), name_column=None),
]

CATALOG_KEYS_BY_TABLE = {scope.table: scope for scope in CATALOG_KEYS}


def scope_for(table: str) -> UniqueScope:
    return CATALOG_KEYS_BY_TABLE[table]
