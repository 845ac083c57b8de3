# FILE: config/__init__.py
"""Configuration package for the decision engine.

Contains:
- engine_config.py: thresholds, similarity band, judge timeouts, freshness windows
"""

from config.engine_config import (
    POLICY_VERSION,
    SCHEMA_VERSION,
    FINGERPRINT_ALGO,
    DaysConfig,
    SimilarityConfig,
    ThresholdConfig,
    JudgeConfig,
    FreshnessConfig,
    EngineConfig,
    get_engine_config,
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
