"""
Catalog Population Engine
population/

Steps for one populate request:
1. Rate Limiter    — per-client fixed window (rate_limiter.py)
2. Kind Registry   — required context, scope tuple, fetch key (kinds.py)
3. Fetch Guard     — one in-flight population per scope (fetch_guard.py)
4. Generator       — LLM lists candidate names (generator.py)
5. Normalizer      — trim, truncate, per-kind filters (normalizer.py)
6. Matcher         — NULL-aware scope lookup (matcher.py)
7. Upsert          — reactivate or insert, board↔class link (upsert.py)
8. Fetch Log       — audit row per run (service.py)
"""
