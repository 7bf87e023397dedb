"""
Step 4 — Generator

LLM client that lists candidate catalog names for a kind + free-text context.
Any OpenAI-compatible chat-completions endpoint works (OpenAI, Gemini's
OpenAI-compatible API, ...).

Provider resolution: the first active ai_providers row with an api_key,
else GENERATOR_API_KEY / OPENAI_API_KEY, GENERATOR_BASE_URL, GENERATOR_MODEL
from the environment.

The output is NOT trusted: this module only guarantees a list of
{"name": str, ...} dicts of bounded length. Cleaning and filtering happen in
population/normalizer.py.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional

import json_repair
from openai import AsyncOpenAI, OpenAIError
from sqlalchemy.orm import Session

from database.models import AIProvider
from population.errors import GeneratorError

log = logging.getLogger("population.generator")

# ── Model config ───────────────────────────────────────────────────────────────
GENERATOR_MODEL = os.getenv("GENERATOR_MODEL", "gpt-4o-mini")
GENERATOR_BASE_URL = os.getenv("GENERATOR_BASE_URL") or None
GENERATOR_MAX_ITEMS = int(os.getenv("GENERATOR_MAX_ITEMS", "50"))


# ==========================================
# PROMPT
# ==========================================

GENERATION_PROMPT_TEMPLATE = """
You are helping build a catalog of the Indian education system.

TASK:
List {kind} for the context below.

CONTEXT:
\"\"\"
{context}
\"\"\"

RULES:
- Use official, original names only. Do NOT invent entries.
- Do NOT return placeholders such as "Subject 1" or "Board A".
- Return at most {limit} items, no duplicates.
- Return JSON ONLY. No explanations.

OUTPUT FORMAT (STRICT JSON):

{{
  "items": [
    {{"name": "<name>"}}
  ]
}}
"""


# ==========================================
# PROVIDER
# ==========================================

@dataclass
class ProviderConfig:
    name: str
    api_key: Optional[str]
    base_url: Optional[str]
    model: str


def resolve_provider(db: Session) -> ProviderConfig:
    row = (
        db.query(AIProvider)
        .filter(
            AIProvider.is_active.is_(True),
            AIProvider.api_key.isnot(None),
            AIProvider.api_key != "",
        )
        .order_by(AIProvider.id)
        .first()
    )
    if row is not None:
        return ProviderConfig(
            name=row.name,
            api_key=row.api_key,
            base_url=row.base_url or None,
            model=row.model_name or GENERATOR_MODEL,
        )
    return ProviderConfig(
        name="environment",
        api_key=os.getenv("GENERATOR_API_KEY") or os.getenv("OPENAI_API_KEY"),
        base_url=GENERATOR_BASE_URL,
        model=GENERATOR_MODEL,
    )


# ==========================================
# JSON EXTRACTION
# ==========================================

def extract_json_from_response(response: str) -> Any:
    text = (response or "").strip()

    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise GeneratorError("Generator did not return JSON.")
    start_idx = min(starts)
    closing = "}" if text[start_idx] == "{" else "]"
    end_idx = text.rfind(closing) + 1
    if end_idx <= start_idx:
        raise GeneratorError("Generator returned truncated JSON.")

    raw = text[start_idx:end_idx]
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning(f"[GENERATOR] invalid JSON, attempting repair: {e}")

    repaired = json_repair.loads(raw)
    if not isinstance(repaired, (dict, list)):
        raise GeneratorError("Failed to parse Generator JSON.")
    return repaired


def parse_candidates(content: str, limit: int) -> List[dict]:
    """{"items": [...]} or a bare list; items are {"name": ...} dicts or strings."""
    data = extract_json_from_response(content)

    if isinstance(data, dict):
        items = data.get("items")
        if items is None:
            items = next((v for v in data.values() if isinstance(v, list)), None)
    else:
        items = data

    if not isinstance(items, list):
        raise GeneratorError("Generator JSON has no item list.")

    candidates = []
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("name"), str):
            candidates.append(dict(item))
        elif isinstance(item, str):
            candidates.append({"name": item})
        if len(candidates) >= limit:
            break
    return candidates


# ==========================================
# CLIENT
# ==========================================

class StructureGenerator:
    def __init__(self, provider: ProviderConfig, client: Optional[AsyncOpenAI] = None):
        self.provider = provider
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.provider.api_key:
                raise GeneratorError(
                    "No Generator API key. Add an active ai_providers row or set GENERATOR_API_KEY."
                )
            self._client = AsyncOpenAI(api_key=self.provider.api_key, base_url=self.provider.base_url)
        return self._client

    async def generate(self, kind: str, context: str, limit: int = GENERATOR_MAX_ITEMS) -> List[dict]:
        limit = max(1, min(limit, GENERATOR_MAX_ITEMS))
        prompt = GENERATION_PROMPT_TEMPLATE.format(kind=kind, context=context, limit=limit)
        client = self._get_client()

        log.info(f"[GENERATOR] {self.provider.name}/{self.provider.model}: {kind} (prompt {len(prompt)} chars)")
        try:
            response = await client.chat.completions.create(
                model=self.provider.model,
                messages=[
                    {"role": "system", "content": "Return only valid JSON."},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.1,
                response_format={"type": "json_object"},
                max_tokens=2048,
            )
        except OpenAIError as e:
            raise GeneratorError(f"Generator call failed: {e}") from e

        content = response.choices[0].message.content or ""
        candidates = parse_candidates(content, limit)
        log.info(f"[GENERATOR] {kind}: {len(candidates)} candidates")
        return candidates


def get_generator(db: Session) -> StructureGenerator:
    return StructureGenerator(resolve_provider(db))
