# FILE: decision_engine/store/base.py
"""
DecisionStore contract.

Any store supporting point lookup by composite key, filtered scan and
idempotent upsert satisfies it. Freshness is NOT a store concern: records
are returned regardless of age and the orchestrator decides reuse.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..schemas import DecisionRecord, DecisionSearch


class DecisionStore(ABC):
    """Async key -> DecisionRecord map. Implementations own concurrency safety."""

    @abstractmethod
    async def get_by_id(self, record_id: str) -> Optional[DecisionRecord]:
        ...

    @abstractmethod
    async def get_by_key(self, unique_key: str, context_hash: str) -> Optional[DecisionRecord]:
        ...

    @abstractmethod
    async def search_by_fingerprint(
        self,
        fp: str,
        gate: str,
        intent_lang: str,
        days_bucket: str,
        policy_version: str,
        limit: int = 10,
    ) -> List[DecisionRecord]:
        ...

    @abstractmethod
    async def search_similarity_candidates(
        self,
        intent_lang: str,
        gate: str,
        limit: int = 50,
    ) -> List[DecisionRecord]:
        """Broad scan on (intent_lang, gate). The caller filters by similarity."""
        ...

    @abstractmethod
    async def search(self, filters: DecisionSearch) -> List[DecisionRecord]:
        ...

    @abstractmethod
    async def list(self, limit: int = 50) -> List[DecisionRecord]:
        ...

    @abstractmethod
    async def upsert(self, record: DecisionRecord) -> DecisionRecord:
        """
        Idempotent on (unique_key, context_hash).

        Replaces the payload fields, keeps the first created_at and id,
        and keeps the newer updated_at.
        """
        ...


def merge_for_upsert(existing: Optional[DecisionRecord], incoming: DecisionRecord) -> DecisionRecord:
    """Shared upsert semantics for store implementations."""
    if existing is None:
        return incoming
    updated_at = max(existing.updated_at, incoming.updated_at)
    return incoming.model_copy(update={
        "id": existing.id,
        "created_at": min(existing.created_at, incoming.created_at),
        "updated_at": updated_at,
    })


def matches_search(record: DecisionRecord, filters: DecisionSearch) -> bool:
    if filters.intent_substring:
        needle = filters.intent_substring.lower()
        if needle not in record.normalized_intent.lower() and needle not in record.intent_raw.lower():
            return False
    if filters.category is not None and record.category != filters.category:
        return False
    if filters.intent_lang and record.intent_lang != filters.intent_lang:
        return False
    if filters.gate is not None and record.gate != filters.gate:
        return False
    if filters.intent_fingerprint is not None and record.intent_fingerprint != filters.intent_fingerprint:
        return False
    if filters.days_bucket and record.days_bucket != filters.days_bucket:
        return False
    if filters.policy_version and record.policy_version != filters.policy_version:
        return False
    if filters.verdict is not None and record.verdict != filters.verdict:
        return False
    return True


def newest_first(records: List[DecisionRecord]) -> List[DecisionRecord]:
    return sorted(records, key=lambda r: r.updated_at, reverse=True)
