"""
Population orchestration.

populate(kind, payload, db, generator):
    validate scope → fetch guard → Generator → normalize/filter each
    candidate → NULL-aware upsert → fetch log → [{"id", "name"}, ...]

Store work runs in a worker thread (asyncio.to_thread) so the sync
SQLAlchemy session never blocks the event loop; the session is only ever
used by one thread at a time.

Rate limiting happens at the HTTP layer (routers/ai_fetch.py) because it
keys on the client, not the scope.
"""

import asyncio
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.models import AIFetchLog
from population.errors import PopulationFailedError
from population.fetch_guard import FetchGuard, get_fetch_guard
from population.generator import GENERATOR_MAX_ITEMS
from population.kinds import (
    KindSpec,
    build_context,
    build_fetch_key,
    extract_scope,
    get_kind,
    reference_id,
)
from population.normalizer import normalize_name, rejection_reason
from population.upsert import apply_candidate

log = logging.getLogger("population.service")


def filter_candidate(spec: KindSpec, candidate, payload: dict) -> Optional[str]:
    """Normalized name, or None when the candidate is dropped."""
    raw = candidate.get("name") if isinstance(candidate, dict) else None
    name = normalize_name(raw, spec.max_length)
    reason = rejection_reason(name, spec.blocked_terms, spec.check_placeholder_pattern)
    if reason is None and spec.candidate_filter and not spec.candidate_filter(name, payload):
        reason = "outside class band"
    if reason:
        log.info(f"[FILTER] {spec.kind}: skipped '{name}' ({reason})")
        return None
    return name


def merge_candidates(
    db: Session,
    spec: KindSpec,
    scope: dict,
    candidates: List[dict],
    payload: dict,
) -> List[dict]:
    """
    Apply every surviving candidate, in order. A row that fails to persist is
    dropped and the loop continues; if every attempted row failed the store
    is considered unusable and PopulationFailedError is raised.
    """
    results = []
    seen_ids = set()
    attempted = failed = 0

    for candidate in candidates:
        name = filter_candidate(spec, candidate, payload)
        if name is None:
            continue
        attempted += 1
        item = apply_candidate(db, spec, scope, name, payload)
        if item is None:
            failed += 1
            continue
        if item["id"] in seen_ids:
            continue
        seen_ids.add(item["id"])
        results.append(item)

    if attempted and failed == attempted:
        raise PopulationFailedError(spec.kind)
    if failed:
        log.warning(f"[POPULATE] {spec.kind}: {failed}/{attempted} candidates failed to persist")
    return results


def record_fetch_log(db: Session, spec: KindSpec, payload: dict, item_count: int, status: str) -> None:
    try:
        db.add(AIFetchLog(
            fetch_type=spec.kind,
            reference_id=reference_id(spec, payload),
            item_count=item_count,
            status=status,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.warning(f"[POPULATE] could not write fetch log for {spec.kind}: {e}")


async def populate(
    kind: str,
    payload: dict,
    db: Session,
    generator,
    guard: Optional[FetchGuard] = None,
    limit: int = GENERATOR_MAX_ITEMS,
) -> List[dict]:
    spec = get_kind(kind)
    scope = extract_scope(spec, payload)
    key = build_fetch_key(spec, payload)
    guard = guard or get_fetch_guard()

    with guard.hold(key):
        context = build_context(spec, payload)
        log.info(f"[POPULATE] {key}: asking Generator for {spec.label}")

        try:
            candidates = await generator.generate(spec.label, context, limit)
        except Exception as e:
            log.error(f"[POPULATE] {key}: Generator failed: {e}")
            await asyncio.to_thread(record_fetch_log, db, spec, payload, 0, "failed")
            raise PopulationFailedError(spec.kind, e) from e

        try:
            results = await asyncio.to_thread(
                merge_candidates, db, spec, scope, candidates[:limit], payload
            )
        except PopulationFailedError:
            log.error(f"[POPULATE] {key}: no candidate could be persisted")
            await asyncio.to_thread(record_fetch_log, db, spec, payload, 0, "failed")
            raise

        await asyncio.to_thread(record_fetch_log, db, spec, payload, len(results), "success")
        log.info(f"[POPULATE] {key}: {len(candidates)} candidates → {len(results)} rows")

    return results
