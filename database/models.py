"""
SQLAlchemy models for the catalog store
Category → Board / University / PaperStage → Class / Semester / Stream → Subject → Chapter

Uniqueness is NOT declared here. Every catalog table is keyed by a
NULL-aware scope tuple (see database/catalog_keys.py) and the matching
expression indexes are installed by database/schema_repair.py at startup.

Rows created by administrators default to inactive and unapproved.
The population path writes is_active / is_approved explicitly.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database.database import Base


# ==========================================
# TOP LEVEL: STATES, CATEGORIES
# ==========================================

class State(Base):
    """Indian state (e.g. 'West Bengal'). Boards and universities hang off it."""
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)

    boards = relationship("Board", back_populates="state")
    universities = relationship("University", back_populates="state")

    def __repr__(self):
        return f"<State(id={self.id}, name='{self.name}')>"


class Category(Base):
    """
    Top-level domain: School, University, or a competitive-exam family
    (UPSC, SSC, Banking, ...). sort_order drives menu ordering.
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    papers_stages = relationship("PaperStage", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}', sort_order={self.sort_order})>"


# ==========================================
# SCOPED UNDER STATE / CATEGORY
# ==========================================

class Board(Base):
    """School education board (CBSE, ICSE, a state secondary board, ...)."""
    __tablename__ = "boards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    state = relationship("State", back_populates="boards")
    board_classes = relationship("BoardClass", back_populates="board")

    def __repr__(self):
        return f"<Board(id={self.id}, name='{self.name}', state_id={self.state_id})>"


class University(Base):
    __tablename__ = "universities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    state = relationship("State", back_populates="universities")
    semesters = relationship("Semester", back_populates="university")

    def __repr__(self):
        return f"<University(id={self.id}, name='{self.name}', state_id={self.state_id})>"


class PaperStage(Base):
    """Paper or stage of a competitive exam (e.g. 'Prelims', 'Tier 1')."""
    __tablename__ = "papers_stages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    category = relationship("Category", back_populates="papers_stages")

    def __repr__(self):
        return f"<PaperStage(id={self.id}, name='{self.name}', category_id={self.category_id})>"


# ==========================================
# SECONDARY CLASSIFIERS
# ==========================================

class ClassLevel(Base):
    """School class ('Class 10'). Global: boards link to it through board_classes."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    board_classes = relationship("BoardClass", back_populates="class_level")

    def __repr__(self):
        return f"<ClassLevel(id={self.id}, name='{self.name}')>"


class Stream(Base):
    """Academic stream (Science, Commerce, Arts). Global."""
    __tablename__ = "streams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Stream(id={self.id}, name='{self.name}')>"


class DegreeType(Base):
    __tablename__ = "degree_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<DegreeType(id={self.id}, name='{self.name}')>"


class Semester(Base):
    """Academic term of a university ('Semester 1', '2nd Year')."""
    __tablename__ = "semesters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    university_id = Column(Integer, ForeignKey("universities.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    university = relationship("University", back_populates="semesters")

    def __repr__(self):
        return f"<Semester(id={self.id}, name='{self.name}', university_id={self.university_id})>"


class BoardClass(Base):
    """
    Board ↔ Class association with its own active flag.
    Independent of Subject rows: a board can offer a class before any
    subject exists under it.
    """
    __tablename__ = "board_classes"

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False)

    board = relationship("Board", back_populates="board_classes")
    class_level = relationship("ClassLevel", back_populates="board_classes")

    def __repr__(self):
        return f"<BoardClass(board_id={self.board_id}, class_id={self.class_id}, is_active={self.is_active})>"


# ==========================================
# SUBJECT → CHAPTER
# ==========================================

class Subject(Base):
    """
    Central entity. Identity is the name conditioned on WHICH optional keys
    are populated: 'Physics' with stream_id NULL and 'Physics' with
    stream_id 7 under the same board/class are different subjects.
    """
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=True, index=True)
    university_id = Column(Integer, ForeignKey("universities.id"), nullable=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=True, index=True)
    stream_id = Column(Integer, ForeignKey("streams.id"), nullable=True, index=True)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=True, index=True)
    degree_type_id = Column(Integer, ForeignKey("degree_types.id"), nullable=True, index=True)
    paper_stage_id = Column(Integer, ForeignKey("papers_stages.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    chapters = relationship("Chapter", back_populates="subject")

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}', board_id={self.board_id}, class_id={self.class_id})>"


class Chapter(Base):
    __tablename__ = "chapters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(500), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    subject = relationship("Subject", back_populates="chapters")

    def __repr__(self):
        return f"<Chapter(id={self.id}, name='{self.name}', subject_id={self.subject_id})>"


# ==========================================
# GENERATOR PROVIDERS + FETCH LOGS
# ==========================================

class AIProvider(Base):
    """
    OpenAI-compatible endpoint used by the population Generator.
    The first active row with an api_key wins over environment settings.
    """
    __tablename__ = "ai_providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    base_url = Column(Text, nullable=True)
    api_key = Column(Text, nullable=True)
    model_name = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<AIProvider(id={self.id}, name='{self.name}', model='{self.model_name}')>"


class AIFetchLog(Base):
    """One row per population run (success or failure)."""
    __tablename__ = "ai_fetch_logs"

    id = Column(Integer, primary_key=True, index=True)
    fetch_type = Column(String(100), nullable=False, index=True)
    reference_id = Column(Integer, nullable=True)
    item_count = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="success", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<AIFetchLog(fetch_type='{self.fetch_type}', reference_id={self.reference_id}, status='{self.status}')>"
