# FILE: config/engine_config.py
"""
Decision Engine - Configuration

Centralized config for every knob the decision pipeline reads:
similarity band, gate thresholds, judge timeouts, freshness windows,
duration clamping and the policy/schema versions that feed cache keys.

Env overrides (read once, at first get_engine_config() call):
- DECISION_POLICY_VERSION: bump to invalidate every cached decision
- DECISION_JUDGE_TIMEOUT_S: default judge timeout in seconds
- DECISION_EQUIVALENCE_TIMEOUT_S: equivalence judge timeout in seconds
- DECISION_JUDGE_MODEL: model id used by the OpenAI judge client
- DECISION_DEFAULT_CATEGORY: category used when the router judge is unavailable
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Tuple


# =============================================================================
# VERSIONS
# =============================================================================

# Part of every cache key. Any prompt or policy change bumps this.
POLICY_VERSION = os.getenv("DECISION_POLICY_VERSION", "2026-10-01")

# Shape of the persisted DecisionRecord.
SCHEMA_VERSION = "decision-record-v1"

FINGERPRINT_ALGO = "fp_v1"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class DaysConfig:
    """
    Duration clamping. Bucket boundaries live in preprocess.days_bucket and
    are part of the cache key, so they are not configurable here.
    """
    default_days: int = 14
    min_days: int = 1
    max_days: int = 365


@dataclass(frozen=True)
class SimilarityConfig:
    """
    Fuzzy near-duplicate band.

    Below `low` the intents are unrelated, above `high` the exact and
    fingerprint paths own the match. Only [low, high] reaches the judge.
    """
    low: float = 0.70
    high: float = 0.90
    # Lookup only runs when len(normalized_intent) > min_length
    min_length: int = 20
    candidate_limit: int = 50
    fingerprint_limit: int = 10
    # In-band candidates sent to the equivalence judge, best score first
    equivalence_max_calls: int = 3


@dataclass(frozen=True)
class ThresholdConfig:
    """
    Confidence thresholds at which deterministic gates and judges are acted on.
    """
    tone_min_confidence: float = 0.85
    controllability_min_confidence: float = 0.75
    category_min_confidence: float = 0.6
    # Audience heuristics at or above this decide locally (no safety judge)
    audience_local_confidence: float = 0.75
    # Suggestions shown on ASK_USER_CHOOSE_CATEGORY
    category_suggestions: int = 3
    max_angles: int = 4


@dataclass(frozen=True)
class JudgeConfig:
    """
    External judge call settings.
    """
    timeout_s: float = 6.0
    equivalence_timeout_s: float = 5.0
    model: str = "gpt-4o-mini"
    max_tokens: int = 400
    temperature: float = 0.0


@dataclass(frozen=True)
class FreshnessConfig:
    """
    Reuse windows for cached decisions, indexed by (gate, verdict).

    A "*" verdict is the gate-wide fallback. Unknown gates use default_days.
    Gates other than decision_engine are persisted by standalone gate checks.
    """
    windows: Dict[Tuple[str, str], int] = field(default_factory=lambda: {
        ("controllability", "*"): 90,
        ("safety", "*"): 7,
        ("audience_safety", "*"): 7,
        ("decision_engine", "BLOCKED"): 7,
        ("decision_engine", "*"): 14,
        ("tone", "*"): 14,
        ("category", "*"): 14,
        ("ambition", "*"): 14,
    })
    default_days: int = 14


@dataclass(frozen=True)
class EngineConfig:
    """
    Master configuration for the decision engine.
    """
    policy_version: str = POLICY_VERSION
    schema_version: str = SCHEMA_VERSION
    default_category: str = "CHALLENGE"
    days: DaysConfig = field(default_factory=DaysConfig)
    similarity: SimilarityConfig = field(default_factory=SimilarityConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    judges: JudgeConfig = field(default_factory=JudgeConfig)
    freshness: FreshnessConfig = field(default_factory=FreshnessConfig)


@lru_cache(maxsize=1)
def get_engine_config() -> EngineConfig:
    """Get the engine configuration with env overrides applied."""
    judges = JudgeConfig(
        timeout_s=_env_float("DECISION_JUDGE_TIMEOUT_S", JudgeConfig.timeout_s),
        equivalence_timeout_s=_env_float(
            "DECISION_EQUIVALENCE_TIMEOUT_S", JudgeConfig.equivalence_timeout_s
        ),
        model=os.getenv("DECISION_JUDGE_MODEL", JudgeConfig.model),
    )
    return EngineConfig(
        default_category=os.getenv("DECISION_DEFAULT_CATEGORY", "CHALLENGE"),
        judges=judges,
    )


__all__ = [
    "POLICY_VERSION",
    "SCHEMA_VERSION",
    "FINGERPRINT_ALGO",
    "DaysConfig",
    "SimilarityConfig",
    "ThresholdConfig",
    "JudgeConfig",
    "FreshnessConfig",
    "EngineConfig",
    "get_engine_config",
]
