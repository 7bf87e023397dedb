"""
Catalog Population API — Main Application
FastAPI application for the educational catalog.
Populates the category → board/university/exam-stage → class/semester/stream
→ subject → chapter hierarchy from the Generator without duplicating rows.
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from database.database import engine, Base, SessionLocal
from database.schema_repair import repair_catalog_constraints
from population.errors import PopulationError
from routers import ai_fetch, structure

# Use Python's standard logger so output appears in the uvicorn console
logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(message)s")
log = logging.getLogger("catalog_api")


def _seed_defaults():
    """Create the default categories if they don't exist."""
    db = SessionLocal()
    try:
        added = structure.seed_categories(db)
        if added:
            log.info(f"✓ {added} default categories seeded")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables + repair uniqueness + seed defaults, before serving."""
    Base.metadata.create_all(bind=engine)
    repair_catalog_constraints(engine)
    _seed_defaults()
    yield


app = FastAPI(
    title="Catalog Population API",
    description="Hierarchical education catalog populated on demand by an LLM Generator",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PopulationError)
async def population_error_handler(request: Request, exc: PopulationError):
    if exc.status_code >= 500:
        log.error(f"[ERROR] {request.method} {request.url.path}: {exc} ({exc.__cause__!r})")
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(ai_fetch.router)            # /api/ai-fetch/*
app.include_router(structure.router)           # /api/structure/*


@app.get("/")
def root():
    return {
        "name": "Catalog Population API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "ai_fetch": "/api/ai-fetch",
            "categories": "/api/structure/categories",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "catalog-population-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
