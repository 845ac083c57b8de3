# FILE: decision_engine/store/models.py
"""
Decision Store - SQLAlchemy Models

One table, one row per derived cache key:
- (unique_key, context_hash) is unique: upserts replace, never duplicate
- engine outcome + payload are stored verbatim for replay (gate-only
  records from standalone gate checks carry no outcome)
- gate results are folded into a JSON map
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Index, UniqueConstraint,
)

from decision_engine.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


# =============================================================================
# DECISION RECORDS
# =============================================================================

class DecisionRecordRow(Base):
    """
    Persisted decision for one derived key.

    Timestamps are stored timezone-aware where the backend supports it;
    SQLite drops tzinfo, so readers re-attach UTC.
    """
    __tablename__ = "decision_records"

    # Primary key
    id = Column(String(64), primary_key=True)

    # Cache key
    unique_key = Column(String(64), nullable=False)
    context_hash = Column(String(64), nullable=False)

    # Intent
    intent_raw = Column(Text, nullable=False)
    normalized_intent = Column(Text, nullable=False)
    intent_lang = Column(String(16), nullable=False)
    ui_locale = Column(String(16), nullable=False, default="en")
    days = Column(Integer, nullable=False)
    days_bucket = Column(String(8), nullable=False)

    # Decision
    category = Column(String(32), nullable=True, index=True)
    gates = Column(JSON, nullable=False, default=dict)
    verdict = Column(String(16), nullable=False, index=True)
    reason_code = Column(String(64), nullable=True)
    engine_outcome = Column(String(32), nullable=True)
    engine_payload = Column(JSON, nullable=False, default=dict)

    # Fingerprint
    intent_fingerprint = Column(Text, nullable=False, default="")
    intent_fingerprint_algo = Column(String(16), nullable=False, default="")

    # Versions
    policy_version = Column(String(32), nullable=False)
    gate = Column(String(32), nullable=False)
    schema_version = Column(String(32), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("unique_key", "context_hash", name="uq_decision_key"),
        Index("ix_decision_fingerprint", "intent_fingerprint", "gate", "intent_lang",
              "days_bucket", "policy_version"),
        Index("ix_decision_lang_gate", "intent_lang", "gate"),
    )
