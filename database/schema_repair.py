"""
Schema repair: deduplicate catalog tables and (re)install their unique indexes.

Runs at application startup, before any population request is served, and
can be run by hand:

Usage:
    python -m database.schema_repair

For every scope tuple in database/catalog_keys.py, in order:
  0. re-point child foreign keys from duplicate rows to the surviving row
  1. delete duplicates under the NULL-safe key, keeping the lowest id
  2. CREATE UNIQUE INDEX uq_<table>_scope (tolerated if it already exists)

Each table is repaired in its own transaction. A failure is logged and the
next table is still repaired. Running this any number of times converges to
the same state.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from database.catalog_keys import CATALOG_KEYS, UniqueScope

log = logging.getLogger("database.schema_repair")


@dataclass
class TableRepairResult:
    table: str
    repointed: int = 0
    deleted: int = 0
    index_created: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ─── SQL builders ──────────────────────────────────────────────────────────────

def _duplicate_ids_sql(scope: UniqueScope) -> str:
    # every row that has an equal-keyed row with a lower id
    return (
        f"SELECT d.id FROM {scope.table} d "
        f"JOIN {scope.table} k ON {scope.match_sql('d', 'k')} AND d.id > k.id"
    )


def _repoint_sql(scope: UniqueScope, child: str, fk: str) -> str:
    return (
        f"UPDATE {child} SET {fk} = ("
        f"SELECT MIN(k.id) FROM {scope.table} k "
        f"JOIN {scope.table} d ON {scope.match_sql('k', 'd')} "
        f"WHERE d.id = {child}.{fk}"
        f") WHERE {fk} IN ({_duplicate_ids_sql(scope)})"
    )


def _delete_sql(scope: UniqueScope) -> str:
    return f"DELETE FROM {scope.table} WHERE id IN ({_duplicate_ids_sql(scope)})"


def _rowcount(result) -> int:
    return max(result.rowcount or 0, 0)


# ─── Repair steps ──────────────────────────────────────────────────────────────

def repair_table(engine: Engine, scope: UniqueScope) -> TableRepairResult:
    result = TableRepairResult(table=scope.table)

    try:
        with engine.begin() as conn:
            for child, fk in scope.referenced_by:
                result.repointed += _rowcount(conn.execute(text(_repoint_sql(scope, child, fk))))
            result.deleted = _rowcount(conn.execute(text(_delete_sql(scope))))
    except SQLAlchemyError as e:
        result.error = f"dedup failed: {e}"
        log.error(f"[REPAIR] {scope.table}: {result.error}")
        return result

    if result.deleted:
        log.warning(
            f"[REPAIR] {scope.table}: removed {result.deleted} duplicate rows "
            f"(re-pointed {result.repointed} references)"
        )

    # Separate transaction: on Postgres a failed DDL statement poisons the
    # transaction it runs in.
    try:
        with engine.begin() as conn:
            conn.execute(text(scope.create_index_sql()))
        result.index_created = True
        log.info(f"[REPAIR] {scope.table}: ✓ {scope.index_name} created")
    except SQLAlchemyError as e:
        if "already exists" in str(e).lower():
            log.info(f"[REPAIR] {scope.table}: · {scope.index_name} already exists")
        else:
            result.error = f"index failed: {e}"
            log.error(f"[REPAIR] {scope.table}: {result.error}")

    return result


def repair_catalog_constraints(
    engine: Engine,
    scopes: Optional[Iterable[UniqueScope]] = None,
) -> List[TableRepairResult]:
    """Repair every table independently. Never raises for a single table."""
    results = []
    for scope in (scopes if scopes is not None else CATALOG_KEYS):
        try:
            results.append(repair_table(engine, scope))
        except Exception as e:
            log.error(f"[REPAIR] {scope.table}: unexpected failure: {e}")
            results.append(TableRepairResult(table=scope.table, error=str(e)))

    failed = [r.table for r in results if not r.ok]
    deleted = sum(r.deleted for r in results)
    log.info(f"[REPAIR] done: {len(results)} tables, {deleted} duplicates removed, {len(failed)} failed")
    if failed:
        log.warning(f"[REPAIR] tables with errors: {', '.join(failed)}")
    return results


if __name__ == "__main__":
    from dotenv import load_dotenv
    load_dotenv()

    from database.database import engine, Base
    import database.models  # noqa: F401  (register tables)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(message)s")
    Base.metadata.create_all(bind=engine)
    for r in repair_catalog_constraints(engine):
        status = "ok" if r.ok else r.error
        print(f"  {r.table:<15} deleted={r.deleted:<4} repointed={r.repointed:<4} index_created={r.index_created}  {status}")
