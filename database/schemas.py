"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime


# ==========================================
# POPULATION REQUEST
# ==========================================

class PopulateRequest(BaseModel):
    """
    Body shared by every /api/ai-fetch/<kind> endpoint.

    All fields are optional at the schema level: which ones are required
    depends on the kind, and a missing one must answer 400 rather than the
    framework's 422 (see population/kinds.py).
    """
    model_config = ConfigDict(extra="ignore")

    state_id: Optional[int] = Field(None, gt=0)
    state_name: Optional[str] = None
    category_id: Optional[int] = Field(None, gt=0)
    category_name: Optional[str] = None
    board_id: Optional[int] = Field(None, gt=0)
    board_name: Optional[str] = None
    university_id: Optional[int] = Field(None, gt=0)
    university_name: Optional[str] = None
    class_id: Optional[int] = Field(None, gt=0)
    class_name: Optional[str] = None
    stream_id: Optional[int] = Field(None, gt=0)
    stream_name: Optional[str] = None
    semester_id: Optional[int] = Field(None, gt=0)
    degree_type_id: Optional[int] = Field(None, gt=0)
    degree_type_name: Optional[str] = None
    paper_stage_id: Optional[int] = Field(None, gt=0)
    subject_id: Optional[int] = Field(None, gt=0)
    subject_name: Optional[str] = None
    context_name: Optional[str] = Field(None, description="Free-text context for subject population")


# ==========================================
# POPULATION RESPONSE
# ==========================================

class PopulatedItem(BaseModel):
    """A reactivated-or-inserted catalog row"""
    id: int
    name: str


class PopulateResponse(BaseModel):
    success: bool = True
    count: int
    data: List[PopulatedItem] = []


# ==========================================
# PROVIDERS / FETCH LOGS / CATEGORIES
# ==========================================

class ProviderResponse(BaseModel):
    """Generator provider without its secret"""
    id: int
    name: str
    model_name: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class ProviderDiagnostic(BaseModel):
    """Whether a provider is usable, without exposing its key"""
    name: str
    model_name: Optional[str] = None
    is_active: bool
    has_key: bool

    model_config = ConfigDict(protected_namespaces=())


class DiagnosticResponse(BaseModel):
    providers: List[ProviderDiagnostic] = []
    env_generator_key_set: bool
    env_openai_key_set: bool


class FetchLogResponse(BaseModel):
    id: int
    fetch_type: str
    reference_id: Optional[int] = None
    item_count: int
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    sort_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
