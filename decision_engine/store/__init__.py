# FILE: decision_engine/store/__init__.py
"""
Decision Store.

Durable, idempotent key -> DecisionRecord map with exact-key, fingerprint
and similarity-candidate lookups, plus the (gate, verdict) freshness policy.
"""

from .base import DecisionStore
from .memory import InMemoryDecisionStore
from .sql import SqlDecisionStore
from .freshness import freshness_window_days, is_record_fresh, record_is_fresh

__all__ = [
    "DecisionStore",
    "InMemoryDecisionStore",
    "SqlDecisionStore",
    "freshness_window_days",
    "is_record_fresh",
    "record_is_fresh",
]
