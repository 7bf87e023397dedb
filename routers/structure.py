"""
Structure API endpoints
Read-only view of the top of the catalog
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import schemas
from database.database import get_db
from database.models import Category

router = APIRouter(prefix="/api/structure", tags=["structure"])

DEFAULT_CATEGORIES = ["School", "University", "UPSC", "CTET", "SSC", "Banking", "Railway", "State Govt", "Others"]


@router.get("/categories", response_model=List[schemas.CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    """
    All active categories in menu order
    """
    return (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.id)
        .all()
    )


def seed_categories(db: Session) -> int:
    """Insert any missing default category. Returns how many were added."""
    existing = {name.strip().lower() for (name,) in db.query(Category.name).all()}
    added = 0
    for order, name in enumerate(DEFAULT_CATEGORIES):
        if name.lower() in existing:
            continue
        db.add(Category(name=name, sort_order=order, is_active=True))
        added += 1
    if added:
        db.commit()
    return added
