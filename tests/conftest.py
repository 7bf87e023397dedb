import os
import sys

# In-memory SQLite for the module-level engine; must be set before any
# `database` import.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("FETCH_GUARD_BACKEND", "memory")

# Add project root so tests can import the app packages directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
# Add tests/ so tests can import shared stubs
sys.path.insert(0, os.path.dirname(__file__))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.database import Base
from database import models
from database.schema_repair import repair_catalog_constraints


@pytest.fixture
def engine():
    """Fresh in-memory catalog with tables but no unique indexes yet."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def repaired_engine(engine):
    repair_catalog_constraints(engine)
    return engine


@pytest.fixture
def db(repaired_engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=repaired_engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """A small seeded hierarchy; returns the ids tests need."""
    state = models.State(name="West Bengal")
    category = models.Category(name="School", sort_order=0, is_active=True)
    db.add_all([state, category])
    db.commit()

    board = models.Board(name="WBBSE", state_id=state.id, is_active=True, is_approved=True)
    class_10 = models.ClassLevel(name="Class 10", is_active=True, is_approved=True)
    science = models.Stream(name="Science", is_active=True, is_approved=True)
    db.add_all([board, class_10, science])
    db.commit()

    subject = models.Subject(
        name="Physics",
        category_id=category.id,
        board_id=board.id,
        class_id=class_10.id,
        is_active=True,
        is_approved=True,
    )
    db.add(subject)
    db.commit()

    return {
        "state_id": state.id,
        "category_id": category.id,
        "board_id": board.id,
        "class_id": class_10.id,
        "stream_id": science.id,
        "subject_id": subject.id,
    }
