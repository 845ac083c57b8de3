# FILE: decision_engine/store/freshness.py
"""
Freshness policy for cached decisions.

Windows are indexed by (gate, verdict): a cached block is revisited sooner
than a cached actionable verdict, and controllability holds for 90 days.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from config.engine_config import FreshnessConfig
from ..schemas import DecisionGate, DecisionRecord, DecisionVerdict


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def freshness_window_days(
    gate: Union[DecisionGate, str],
    verdict: Optional[Union[DecisionVerdict, str]] = None,
    config: Optional[FreshnessConfig] = None,
) -> int:
    cfg = config or FreshnessConfig()
    gate_value = _value(gate)
    if verdict is not None:
        exact = cfg.windows.get((gate_value, _value(verdict)))
        if exact is not None:
            return exact
    return cfg.windows.get((gate_value, "*"), cfg.default_days)


def is_record_fresh(
    updated_at: datetime,
    gate: Union[DecisionGate, str],
    verdict: Optional[Union[DecisionVerdict, str]] = None,
    now: Optional[datetime] = None,
    config: Optional[FreshnessConfig] = None,
) -> bool:
    """True if updated_at is strictly younger than the (gate, verdict) window."""
    now = now or datetime.now(timezone.utc)
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    window = timedelta(days=freshness_window_days(gate, verdict, config))
    return now - updated_at < window


def record_is_fresh(
    record: DecisionRecord,
    now: Optional[datetime] = None,
    config: Optional[FreshnessConfig] = None,
) -> bool:
    return is_record_fresh(record.updated_at, record.gate, record.verdict, now, config)
