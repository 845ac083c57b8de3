# FILE: decision_engine/store/sql.py
"""
SQLAlchemy-backed DecisionStore.

- Sync ORM sessions, run off the event loop via asyncio.to_thread
- Upsert is race-safe: a concurrent insert that hits the unique constraint
  rolls back and is retried as an update (last writer wins)
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..schemas import DecisionRecord, DecisionSearch
from .base import DecisionStore, merge_for_upsert
from .models import DecisionRecordRow

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def row_to_record(row: DecisionRecordRow) -> DecisionRecord:
    return DecisionRecord(
        id=row.id,
        unique_key=row.unique_key,
        context_hash=row.context_hash,
        intent_raw=row.intent_raw,
        normalized_intent=row.normalized_intent,
        intent_lang=row.intent_lang,
        ui_locale=row.ui_locale,
        days=row.days,
        days_bucket=row.days_bucket,
        category=row.category,
        gates=row.gates or {},
        verdict=row.verdict,
        reason_code=row.reason_code,
        engine_outcome=row.engine_outcome,
        engine_payload=row.engine_payload or {},
        intent_fingerprint=row.intent_fingerprint or "",
        intent_fingerprint_algo=row.intent_fingerprint_algo or "",
        policy_version=row.policy_version,
        gate=row.gate,
        schema_version=row.schema_version,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _apply(row: DecisionRecordRow, record: DecisionRecord) -> None:
    data = record.model_dump(mode="json", exclude={"created_at", "updated_at"})
    for field_name, value in data.items():
        setattr(row, field_name, value)
    row.created_at = record.created_at
    row.updated_at = record.updated_at


class SqlDecisionStore(DecisionStore):
    """
    Store backed by the decision_records table.

    Usage:
        store = SqlDecisionStore(SessionLocal)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def _run(self, fn, *args):
        return await asyncio.to_thread(self._in_session, fn, *args)

    def _in_session(self, fn, *args):
        db = self._session_factory()
        try:
            return fn(db, *args)
        finally:
            db.close()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_by_id(self, record_id: str) -> Optional[DecisionRecord]:
        def _q(db: Session):
            row = db.query(DecisionRecordRow).filter(DecisionRecordRow.id == record_id).first()
            return row_to_record(row) if row else None
        return await self._run(_q)

    async def get_by_key(self, unique_key: str, context_hash: str) -> Optional[DecisionRecord]:
        def _q(db: Session):
            row = (
                db.query(DecisionRecordRow)
                .filter(
                    DecisionRecordRow.unique_key == unique_key,
                    DecisionRecordRow.context_hash == context_hash,
                )
                .first()
            )
            return row_to_record(row) if row else None
        return await self._run(_q)

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

        def _q(db: Session):
            rows = (
                db.query(DecisionRecordRow)
                .filter(
                    DecisionRecordRow.intent_fingerprint == fp,
                    DecisionRecordRow.gate == gate,
                    DecisionRecordRow.intent_lang == intent_lang,
                    DecisionRecordRow.days_bucket == days_bucket,
                    DecisionRecordRow.policy_version == policy_version,
                )
                .order_by(DecisionRecordRow.updated_at.desc())
                .limit(limit)
                .all()
            )
            return [row_to_record(r) for r in rows]
        return await self._run(_q)

    async def search_similarity_candidates(
        self,
        intent_lang: str,
        gate: str,
        limit: int = 50,
    ) -> List[DecisionRecord]:
        def _q(db: Session):
            rows = (
                db.query(DecisionRecordRow)
                .filter(
                    DecisionRecordRow.intent_lang == intent_lang,
                    DecisionRecordRow.gate == gate,
                )
                .order_by(DecisionRecordRow.updated_at.desc())
                .limit(limit)
                .all()
            )
            return [row_to_record(r) for r in rows]
        return await self._run(_q)

    async def search(self, filters: DecisionSearch) -> List[DecisionRecord]:
        def _q(db: Session):
            query = db.query(DecisionRecordRow)
            if filters.intent_substring:
                # Literal substring: % and _ in the needle are escaped
                needle = filters.intent_substring.lower()
                query = query.filter(or_(
                    func.lower(DecisionRecordRow.normalized_intent).contains(needle, autoescape=True),
                    func.lower(DecisionRecordRow.intent_raw).contains(needle, autoescape=True),
                ))
            if filters.category is not None:
                query = query.filter(DecisionRecordRow.category == filters.category.value)
            if filters.intent_lang:
                query = query.filter(DecisionRecordRow.intent_lang == filters.intent_lang)
            if filters.gate is not None:
                query = query.filter(DecisionRecordRow.gate == filters.gate.value)
            if filters.intent_fingerprint is not None:
                query = query.filter(DecisionRecordRow.intent_fingerprint == filters.intent_fingerprint)
            if filters.days_bucket:
                query = query.filter(DecisionRecordRow.days_bucket == filters.days_bucket)
            if filters.policy_version:
                query = query.filter(DecisionRecordRow.policy_version == filters.policy_version)
            if filters.verdict is not None:
                query = query.filter(DecisionRecordRow.verdict == filters.verdict.value)
            rows = query.order_by(DecisionRecordRow.updated_at.desc()).limit(filters.limit).all()
            return [row_to_record(r) for r in rows]
        return await self._run(_q)

    async def list(self, limit: int = 50) -> List[DecisionRecord]:
        def _q(db: Session):
            rows = (
                db.query(DecisionRecordRow)
                .order_by(DecisionRecordRow.updated_at.desc())
                .limit(limit)
                .all()
            )
            return [row_to_record(r) for r in rows]
        return await self._run(_q)

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------

    async def upsert(self, record: DecisionRecord) -> DecisionRecord:
        return await self._run(self._upsert_sync, record)

    def _find(self, db: Session, record: DecisionRecord) -> Optional[DecisionRecordRow]:
        return (
            db.query(DecisionRecordRow)
            .filter(
                DecisionRecordRow.unique_key == record.unique_key,
                DecisionRecordRow.context_hash == record.context_hash,
            )
            .first()
        )

    def _update_row(self, db: Session, row: DecisionRecordRow, record: DecisionRecord) -> DecisionRecord:
        merged = merge_for_upsert(row_to_record(row), record)
        _apply(row, merged)
        db.commit()
        return merged

    def _upsert_sync(self, db: Session, record: DecisionRecord) -> DecisionRecord:
        row = self._find(db, record)
        if row is not None:
            return self._update_row(db, row, record)

        try:
            row = DecisionRecordRow()
            _apply(row, record)
            db.add(row)
            db.commit()
            logger.debug(f"[decision_store] Inserted {record.id}")
            return record
        except IntegrityError:
            db.rollback()
            logger.debug(f"[decision_store] {record.id} inserted by concurrent request, updating")
            row = self._find(db, record)
            if row is None:
                raise
            return self._update_row(db, row, record)
