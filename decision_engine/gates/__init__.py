# FILE: decision_engine/gates/__init__.py
"""
Deterministic gates. Pure functions of text (+ context), no I/O, always
attempted before any judge call.
"""

from .patterns import PatternRule, build_rules, compile_patterns, first_rule, first_match, any_match
from .safety import check_hard_block, assess_audience_safety
from .tone import detect_tone, tone_is_decisive
from .ambition import check_ambition
from .controllability import detect_controllability
from .category import infer_category
from .realism import assess_soft_realism

__all__ = [
    "PatternRule",
    "build_rules",
    "compile_patterns",
    "first_rule",
    "first_match",
    "any_match",
    "check_hard_block",
    "assess_audience_safety",
    "detect_tone",
    "tone_is_decisive",
    "check_ambition",
    "detect_controllability",
    "infer_category",
    "assess_soft_realism",
]
