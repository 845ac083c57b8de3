# FILE: decision_engine/fingerprint.py
"""
Intent fingerprint (fp_v1).

Collapses near-duplicate intents into one canonical token set so that
"learn to sew" and "learn sewing" hit the same cached decision without a
judge call. Strictly more aggressive than cache-key normalization.

Pipeline:
1. lowercase, split on Unicode punctuation/symbol boundaries and whitespace
2. strip diacritics (Latin-family languages)
3. drop the "preposition + filler verb" bigram ("to do", "à faire", ...)
4. drop stopwords for the language (union of all lists when unknown)
5. drop weak verbs unconditionally (stable before and after category resolution)
6. light English stemming (-ing, doubled consonant, trailing e)
7. sort, dedupe, join with "_"
"""
from __future__ import annotations

import unicodedata
from typing import Dict, FrozenSet, List, Optional, Tuple

from config.engine_config import FINGERPRINT_ALGO
from .schemas import FingerprintResult

FP_SEPARATOR = "_"

LATIN_LANGS = frozenset({"fr", "en", "es", "de", "it", "pt"})


# =============================================================================
# WORD LISTS
# =============================================================================

STOPWORDS: Dict[str, FrozenSet[str]] = {
    "fr": frozenset({
        "a", "au", "aux", "de", "du", "des", "la", "le", "les", "un", "une", "d", "l",
        "en", "pour", "comment", "et", "ou", "que", "qui", "dans", "sur", "avec", "par",
        "sans", "sous", "entre", "vers", "chez", "mon", "ma", "mes", "je",
    }),
    "en": frozenset({
        "a", "an", "the", "to", "for", "of", "in", "on", "at", "by", "with", "from",
        "and", "or", "how", "my", "i",
    }),
    "es": frozenset({
        "a", "al", "de", "del", "el", "la", "los", "las", "un", "una", "en", "para",
        "como", "y", "o", "que", "con", "por", "sin", "mi", "mis",
    }),
    "de": frozenset({
        "der", "die", "das", "den", "dem", "ein", "eine", "einen", "zu", "zum", "zur",
        "und", "oder", "wie", "mit", "fur", "von", "in", "im", "auf", "mein", "meine",
    }),
    "it": frozenset({
        "a", "al", "di", "del", "della", "il", "lo", "la", "i", "gli", "le", "un", "una",
        "in", "per", "come", "e", "o", "che", "con", "su", "mio", "mia",
    }),
    "pt": frozenset({
        "a", "o", "os", "as", "de", "do", "da", "um", "uma", "em", "para", "como", "e",
        "ou", "que", "com", "por", "meu", "minha",
    }),
}

ALL_STOPWORDS: FrozenSet[str] = frozenset().union(*STOPWORDS.values())

# Removed regardless of language or category
WEAK_VERBS: FrozenSet[str] = frozenset({
    # en
    "learn", "study", "practice", "practise", "improve", "become", "do", "want",
    "get", "master", "understand", "know",
    # fr (accent-stripped forms included)
    "apprendre", "pratiquer", "ameliorer", "devenir", "faire", "vouloir",
    "maitriser", "maîtriser", "comprendre", "savoir",
    # es
    "aprender", "estudiar", "practicar", "mejorar", "hacer", "querer", "dominar",
    # de
    "lernen", "studieren", "uben", "üben", "verbessern", "werden", "machen", "wollen",
    # it
    "imparare", "studiare", "praticare", "migliorare", "diventare", "fare", "volere",
})

# Connective "preposition + filler verb" pairs, after accent stripping
FILLER_BIGRAMS: Dict[str, Tuple[str, str]] = {
    "fr": ("a", "faire"),
    "en": ("to", "do"),
    "es": ("a", "hacer"),
    "de": ("zu", "machen"),
    "it": ("a", "fare"),
    "pt": ("a", "fazer"),
}


# =============================================================================
# HELPERS
# =============================================================================

def _split_on_punct(text: str) -> List[str]:
    chars = []
    for ch in text:
        cat = unicodedata.category(ch)
        if cat[0] in ("P", "S"):
            chars.append(" ")
        else:
            chars.append(ch)
    return "".join(chars).split()


def strip_accents(token: str) -> str:
    decomposed = unicodedata.normalize("NFD", token)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def _drop_bigram(tokens: List[str], pair: Optional[Tuple[str, str]]) -> List[str]:
    if not pair:
        return tokens
    out: List[str] = []
    i = 0
    while i < len(tokens):
        if i + 1 < len(tokens) and (tokens[i], tokens[i + 1]) == pair:
            i += 2
            continue
        out.append(tokens[i])
        i += 1
    return out


def stem_en(token: str) -> str:
    """Very light English stemming: sewing -> sew, swimming -> swim, code -> cod."""
    if token.endswith("ing") and len(token) - 3 >= 3:
        token = token[:-3]
        if len(token) >= 2 and token[-1] == token[-2] and token[-1] not in "aeiou":
            token = token[:-1]
    if len(token) > 3 and token.endswith("e"):
        token = token[:-1]
    return token


# =============================================================================
# FINGERPRINT
# =============================================================================

def fingerprint_tokens(normalized_intent: str, intent_lang: Optional[str]) -> List[str]:
    lang = (intent_lang or "").lower()
    tokens = _split_on_punct((normalized_intent or "").lower())

    if lang in LATIN_LANGS:
        tokens = [strip_accents(t) for t in tokens]

    tokens = _drop_bigram(tokens, FILLER_BIGRAMS.get(lang))

    stopwords = STOPWORDS.get(lang, ALL_STOPWORDS)
    tokens = [t for t in tokens if t not in stopwords and t not in WEAK_VERBS]

    if lang == "en":
        tokens = [stem_en(t) for t in tokens]

    return sorted(set(t for t in tokens if t))


def compute_fingerprint(
    normalized_intent: str,
    intent_lang: Optional[str],
    category: Optional[str] = None,
) -> FingerprintResult:
    """
    Fingerprint an intent. Pure function of (text, lang, category).

    The category is accepted so callers can pass it at either computation
    point; it never changes the token set.
    """
    tokens = fingerprint_tokens(normalized_intent, intent_lang)
    return FingerprintResult(
        fp=FP_SEPARATOR.join(tokens),
        algo=FINGERPRINT_ALGO,
        tokens=tokens,
    )
