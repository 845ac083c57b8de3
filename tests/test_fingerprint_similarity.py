# FILE: tests/test_fingerprint_similarity.py
"""
Tests for decision_engine/fingerprint.py and decision_engine/similarity.py
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from config.engine_config import SimilarityConfig
from decision_engine.fingerprint import compute_fingerprint, fingerprint_tokens, stem_en, strip_accents
from decision_engine.schemas import Category
from decision_engine.similarity import (
    SimilarityBand,
    classify_band,
    jaccard,
    similarity_eligible,
    trigram_jaccard,
    trigrams,
)


class TestFingerprint:
    """fp_v1 collapses phrasing variants of the same goal."""

    def test_learn_to_sew_variants_collide(self):
        a = compute_fingerprint("learn to sew", "en")
        b = compute_fingerprint("learn sewing", "en")
        assert a.fp == b.fp == "sew"
        assert a.algo == "fp_v1"

    def test_french_filler_bigram_dropped(self):
        a = compute_fingerprint("apprendre à faire du pain", "fr")
        b = compute_fingerprint("apprendre le pain", "fr")
        assert a.fp == b.fp == "pain"

    def test_accents_stripped_for_latin(self):
        assert compute_fingerprint("améliorer ma cuisine", "fr").fp == "cuisine"

    def test_tokens_sorted_and_deduped(self):
        result = compute_fingerprint("guitar and piano and guitar", "en")
        assert result.tokens == ["guitar", "piano"]
        assert result.fp == "guitar_piano"

    def test_punctuation_splits(self):
        assert fingerprint_tokens("learn: guitar!", "en") == ["guitar"]

    def test_unknown_language_uses_all_stopwords(self):
        assert compute_fingerprint("the guitar", "xx").fp == "guitar"

    def test_category_never_changes_fp(self):
        """Fingerprint is stable before and after category resolution."""
        before = compute_fingerprint("learn to sew a dress", "en")
        after = compute_fingerprint("learn to sew a dress", "en", Category.CREATE)
        assert before.fp == after.fp

    def test_only_weak_verbs_yields_empty(self):
        assert compute_fingerprint("learn to improve", "en").fp == ""


class TestStemAndAccents:
    @pytest.mark.parametrize("token,stem", [
        ("sewing", "sew"),
        ("swimming", "swim"),
        ("code", "cod"),
        ("sing", "sing"),
        ("run", "run"),
    ])
    def test_stem_en(self, token, stem):
        assert stem_en(token) == stem

    def test_strip_accents(self):
        assert strip_accents("éèçñ") == "eecn"


class TestTrigramJaccard:
    def test_identical(self):
        assert trigram_jaccard("learn guitar", "learn guitar") == 1.0

    def test_disjoint(self):
        assert trigram_jaccard("abc", "xyz") == 0.0

    def test_short_text(self):
        assert trigrams("ab") == {"ab"}

    def test_ideographic_uses_characters(self):
        assert trigrams("学习 吉他") == {"学", "习", "吉", "他"}

    def test_empty_sets(self):
        assert jaccard(set(), set()) == 1.0
        assert jaccard({"a"}, set()) == 0.0

    def test_symmetric(self):
        a, b = "learn to play guitar", "learn to play the guitar"
        assert trigram_jaccard(a, b) == trigram_jaccard(b, a)


class TestBand:
    """Inclusive [0.70, 0.90] band."""

    @pytest.mark.parametrize("score,band", [
        (0.0, SimilarityBand.BELOW),
        (0.6999, SimilarityBand.BELOW),
        (0.70, SimilarityBand.IN_BAND),
        (0.85, SimilarityBand.IN_BAND),
        (0.90, SimilarityBand.IN_BAND),
        (0.9001, SimilarityBand.ABOVE),
        (1.0, SimilarityBand.ABOVE),
    ])
    def test_edges(self, score, band):
        assert classify_band(score) == band

    def test_custom_band(self):
        cfg = SimilarityConfig(low=0.5, high=0.6)
        assert classify_band(0.55, cfg) == SimilarityBand.IN_BAND
        assert classify_band(0.65, cfg) == SimilarityBand.ABOVE

    def test_eligibility_is_strictly_longer_than_min(self):
        assert not similarity_eligible("x" * 20)
        assert similarity_eligible("x" * 21)
        assert not similarity_eligible("")
