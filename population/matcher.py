"""
Step 6 — Matcher

NULL-aware lookup of an existing catalog row by scope tuple + name.

`column = NULL` is never true in SQL, so a naive filter silently misses
rows whose scope column is NULL and the caller inserts a duplicate. Absent
values are matched with IS NULL instead, and a present value never matches
a NULL column. Mirrors the unique indexes from database/catalog_keys.py.
"""

from typing import Dict, Optional

from sqlalchemy import and_, func, literal, true
from sqlalchemy.orm import Session

from database.models import BoardClass


def scope_predicate(model, scope: Dict[str, Optional[int]]):
    """col IS NULL for absent values, col = value otherwise."""
    clauses = []
    for column_name, value in scope.items():
        column = getattr(model, column_name)
        clauses.append(column.is_(None) if value is None else column == value)
    return and_(*clauses) if clauses else true()


def name_predicate(model, name: str):
    # both sides folded by the database, same expression as the unique index
    return func.lower(func.trim(model.name)) == func.lower(func.trim(literal(name)))


def find_existing(db: Session, model, scope: Dict[str, Optional[int]], name: str):
    """Lowest-id row with this scope tuple and (case-insensitive) name, or None."""
    return (
        db.query(model)
        .filter(scope_predicate(model, scope), name_predicate(model, name))
        .order_by(model.id)
        .first()
    )


def find_board_class(db: Session, board_id: int, class_id: int):
    return (
        db.query(BoardClass)
        .filter(scope_predicate(BoardClass, {"board_id": board_id, "class_id": class_id}))
        .order_by(BoardClass.id)
        .first()
    )
