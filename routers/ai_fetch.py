"""
AI Fetch Router — /api/ai-fetch

Populates the catalog from the Generator, one scope at a time.
Endpoints:
  GET  /api/ai-fetch/              — service banner
  GET  /api/ai-fetch/providers     — active Generator providers
  GET  /api/ai-fetch/diag          — provider keys present / env keys set
  GET  /api/ai-fetch/logs          — last 50 population runs
  POST /api/ai-fetch/boards        — boards of a state
  POST /api/ai-fetch/universities  — universities of a state
  POST /api/ai-fetch/papers        — papers / stages of an exam category
  POST /api/ai-fetch/classes       — classes offered by a board
  POST /api/ai-fetch/streams       — streams for a board + class
  POST /api/ai-fetch/semesters     — terms of a university
  POST /api/ai-fetch/subjects      — subjects of a scope tuple
  POST /api/ai-fetch/chapters      — chapters of a subject

Every POST answers 200 {success, count, data}, 400 on missing context,
429 when rate limited or the scope is already being fetched, 500 when the
Generator or the store fails (see population/errors.py).
"""

import logging
import os
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import schemas
from database.database import get_db
from database.models import AIFetchLog, AIProvider
from population.errors import RateLimitedError
from population.generator import StructureGenerator, get_generator
from population.rate_limiter import client_id_from_headers, get_rate_limiter
from population.service import populate

router = APIRouter(prefix="/api/ai-fetch", tags=["ai-fetch"])

log = logging.getLogger("routers.ai_fetch")


def get_population_generator(db: Session = Depends(get_db)) -> StructureGenerator:
    return get_generator(db)


async def _run_population(
    kind: str,
    body: schemas.PopulateRequest,
    request: Request,
    db: Session,
    generator,
) -> schemas.PopulateResponse:
    client_id = client_id_from_headers(
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
    )
    if not get_rate_limiter().allow(client_id):
        log.warning(f"[RATE] {client_id} rejected on {kind}")
        raise RateLimitedError(client_id)

    items = await populate(kind, body.model_dump(), db, generator)
    return schemas.PopulateResponse(count=len(items), data=items)


# ─── Status ────────────────────────────────────────────────────────────────────

@router.get("/")
def service_status():
    return {"message": "AI Fetch service is running"}


@router.get("/providers", response_model=List[schemas.ProviderResponse])
def list_providers(db: Session = Depends(get_db)):
    """Active Generator providers. API keys are never returned."""
    return db.query(AIProvider).filter(AIProvider.is_active.is_(True)).order_by(AIProvider.id).all()


@router.get("/diag", response_model=schemas.DiagnosticResponse)
def provider_diagnostic(db: Session = Depends(get_db)):
    """Which providers could serve the Generator, and whether env keys are set."""
    rows = db.query(AIProvider).order_by(AIProvider.id).all()
    return schemas.DiagnosticResponse(
        providers=[
            schemas.ProviderDiagnostic(
                name=row.name,
                model_name=row.model_name,
                is_active=row.is_active,
                has_key=bool(row.api_key),
            )
            for row in rows
        ],
        env_generator_key_set=bool(os.getenv("GENERATOR_API_KEY")),
        env_openai_key_set=bool(os.getenv("OPENAI_API_KEY")),
    )


@router.get("/logs", response_model=List[schemas.FetchLogResponse])
def list_fetch_logs(db: Session = Depends(get_db)):
    return db.query(AIFetchLog).order_by(AIFetchLog.created_at.desc(), AIFetchLog.id.desc()).limit(50).all()


# ─── Population ────────────────────────────────────────────────────────────────

@router.post("/boards", response_model=schemas.PopulateResponse)
async def populate_boards(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    """School boards of a state. Requires state_id + state_name."""
    return await _run_population("boards", body, request, db, generator)


@router.post("/universities", response_model=schemas.PopulateResponse)
async def populate_universities(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    return await _run_population("universities", body, request, db, generator)


@router.post("/papers", response_model=schemas.PopulateResponse)
async def populate_papers(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    return await _run_population("papers", body, request, db, generator)


@router.post("/classes", response_model=schemas.PopulateResponse)
async def populate_classes(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    """
    Classes are global rows; each one is also linked to the board through
    board_classes. Requires board_id + board_name.
    """
    return await _run_population("classes", body, request, db, generator)


@router.post("/streams", response_model=schemas.PopulateResponse)
async def populate_streams(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    return await _run_population("streams", body, request, db, generator)


@router.post("/semesters", response_model=schemas.PopulateResponse)
async def populate_semesters(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    return await _run_population("semesters", body, request, db, generator)


@router.post("/subjects", response_model=schemas.PopulateResponse)
async def populate_subjects(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    """
    Subjects of a scope tuple (category, board, university, class, stream,
    semester, degree type, paper stage). Omitted keys are stored as NULL and
    are part of the subject's identity.
    """
    return await _run_population("subjects", body, request, db, generator)


@router.post("/chapters", response_model=schemas.PopulateResponse)
async def populate_chapters(
    body: schemas.PopulateRequest,
    request: Request,
    db: Session = Depends(get_db),
    generator=Depends(get_population_generator),
):
    return await _run_population("chapters", body, request, db, generator)
