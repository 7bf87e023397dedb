"""
Step 7 — Upsert

Find-existing-or-insert-new for one candidate:
  - existing row (NULL-aware match) → set active, return it unchanged
  - no row → insert with the scope tuple, active and approved

Each candidate commits on its own. A failure drops that candidate only; the
batch carries on. An IntegrityError means another process inserted the same
scope tuple between our lookup and insert: the unique index rejected ours,
so the lookup is re-run once and the winner's row is returned.

Classes are global: a class candidate under a board is upserted by name,
then linked through board_classes as a second, independent upsert.
"""

import logging
from typing import Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database.models import BoardClass
from population.kinds import KindSpec
from population.matcher import find_board_class, find_existing

log = logging.getLogger("population.upsert")


def _activate(db: Session, row):
    if not row.is_active:
        row.is_active = True
        db.commit()
    return row


def _find_or_insert(db: Session, lookup: Callable, build: Callable, label: str):
    try:
        row = lookup()
        if row is not None:
            return _activate(db, row)
        row = build()
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except IntegrityError as e:
        db.rollback()
        log.info(f"[UPSERT] conflict on {label}, re-reading: {e.orig}")
        try:
            row = lookup()
            if row is not None:
                return _activate(db, row)
        except SQLAlchemyError as retry_error:
            db.rollback()
            log.warning(f"[UPSERT] re-read failed for {label}: {retry_error}")
        log.warning(f"[UPSERT] skipped {label}")
        return None
    except SQLAlchemyError as e:
        db.rollback()
        log.warning(f"[UPSERT] skipped {label}: {e}")
        return None


def upsert_row(db: Session, model, scope: Dict[str, Optional[int]], name: str):
    """Reactivate-or-insert a catalog row. None when it could not be persisted."""
    def build():
        values = dict(scope, name=name, is_active=True)
        if hasattr(model, "is_approved"):
            values["is_approved"] = True
        return model(**values)

    return _find_or_insert(
        db,
        lambda: find_existing(db, model, scope, name),
        build,
        f"{model.__tablename__} '{name}' {scope}",
    )


def link_board_class(db: Session, board_id: int, class_id: int) -> Optional[BoardClass]:
    return _find_or_insert(
        db,
        lambda: find_board_class(db, board_id, class_id),
        lambda: BoardClass(board_id=board_id, class_id=class_id, is_active=True),
        f"board_classes ({board_id}, {class_id})",
    )


def apply_candidate(
    db: Session,
    spec: KindSpec,
    scope: Dict[str, Optional[int]],
    name: str,
    payload: Optional[dict] = None,
) -> Optional[dict]:
    """Returns {"id", "name"} of the resulting row, or None if it was dropped."""
    row = upsert_row(db, spec.model, scope, name)
    if row is None:
        return None

    if spec.link_field:
        owner_id = (payload or {}).get(spec.link_field)
        if link_board_class(db, owner_id, row.id) is None:
            return None

    return {"id": row.id, "name": row.name}
