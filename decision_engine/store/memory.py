# FILE: decision_engine/store/memory.py
"""
In-memory DecisionStore.

Used by tests and when no database is configured. Upserts are serialized
with an asyncio.Lock; reads return copies so callers cannot mutate state.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from ..schemas import DecisionRecord, DecisionSearch
from .base import DecisionStore, matches_search, merge_for_upsert, newest_first

logger = logging.getLogger(__name__)


class InMemoryDecisionStore(DecisionStore):
    """
    Dict-backed store keyed by (unique_key, context_hash).

    Usage:
        store = InMemoryDecisionStore()
        await store.upsert(record)
        hit = await store.get_by_key(key.unique_key, key.context_hash)
    """

    def __init__(self):
        self._records: Dict[Tuple[str, str], DecisionRecord] = {}
        self._lock = asyncio.Lock()
        self.upsert_count = 0

    def __len__(self) -> int:
        return len(self._records)

    async def get_by_id(self, record_id: str) -> Optional[DecisionRecord]:
        for record in self._records.values():
            if record.id == record_id:
                return record.model_copy(deep=True)
        return None

    async def get_by_key(self, unique_key: str, context_hash: str) -> Optional[DecisionRecord]:
        record = self._records.get((unique_key, context_hash))
        return record.model_copy(deep=True) if record else None

    async def search_by_fingerprint(
        self,
        fp: str,
        gate: str,
        intent_lang: str,
        days_bucket: str,
        policy_version: str,
        limit: int = 10,
    ) -> List[DecisionRecord]:
        if not fp:
            return []
        hits = [
            r for r in self._records.values()
            if r.intent_fingerprint == fp
            and r.gate == gate
            and r.intent_lang == intent_lang
            and r.days_bucket == days_bucket
            and r.policy_version == policy_version
        ]
        return [r.model_copy(deep=True) for r in newest_first(hits)[:limit]]

    async def search_similarity_candidates(
        self,
        intent_lang: str,
        gate: str,
        limit: int = 50,
    ) -> List[DecisionRecord]:
        hits = [r for r in self._records.values() if r.intent_lang == intent_lang and r.gate == gate]
        return [r.model_copy(deep=True) for r in newest_first(hits)[:limit]]

    async def search(self, filters: DecisionSearch) -> List[DecisionRecord]:
        hits = [r for r in self._records.values() if matches_search(r, filters)]
        return [r.model_copy(deep=True) for r in newest_first(hits)[:filters.limit]]

    async def list(self, limit: int = 50) -> List[DecisionRecord]:
        return [r.model_copy(deep=True) for r in newest_first(list(self._records.values()))[:limit]]

    async def upsert(self, record: DecisionRecord) -> DecisionRecord:
        key = (record.unique_key, record.context_hash)
        async with self._lock:
            merged = merge_for_upsert(self._records.get(key), record)
            self._records[key] = merged.model_copy(deep=True)
            self.upsert_count += 1
        logger.debug(f"[decision_store] upsert {merged.id} outcome={merged.engine_outcome.value}")
        return merged
