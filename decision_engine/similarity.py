# FILE: decision_engine/similarity.py
"""
Trigram-Jaccard similarity for fuzzy near-duplicate detection.

Latin-family text uses character 3-grams. Text containing CJK/kana/hangul
uses single-character sets, since 3-grams carry little signal there.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Set

from config.engine_config import SimilarityConfig
from .preprocess import has_ideographic


class SimilarityBand(str, Enum):
    BELOW = "below"        # unrelated, no judge
    IN_BAND = "in_band"    # judge must confirm
    ABOVE = "above"        # owned by exact/fingerprint paths


def trigrams(text: str) -> Set[str]:
    if not text:
        return set()
    if has_ideographic(text):
        return {ch for ch in text if not ch.isspace()}
    if len(text) < 3:
        return {text}
    return {text[i:i + 3] for i in range(len(text) - 2)}


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def trigram_jaccard(a: str, b: str) -> float:
    return jaccard(trigrams(a), trigrams(b))


def classify_band(score: float, config: Optional[SimilarityConfig] = None) -> SimilarityBand:
    """Inclusive band: low <= score <= high is IN_BAND."""
    cfg = config or SimilarityConfig()
    if score < cfg.low:
        return SimilarityBand.BELOW
    if score > cfg.high:
        return SimilarityBand.ABOVE
    return SimilarityBand.IN_BAND


def similarity_eligible(normalized_intent: str, config: Optional[SimilarityConfig] = None) -> bool:
    """Short intents never take the fuzzy path."""
    cfg = config or SimilarityConfig()
    return len(normalized_intent or "") > cfg.min_length
