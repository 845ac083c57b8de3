# FILE: decision_engine/preprocess.py
"""
Intent preprocessing.

Pure functions, no I/O:
- normalize_intent: trim, collapse whitespace, lowercase (except CJK/kana/hangul)
- script_stats: code point counts per script, as ratios
- infer_language: script first, then lexical markers, then UI locale
- clamp_days / days_bucket: duration handling (bucket is part of the cache key)
"""
from __future__ import annotations

import math
import re
import unicodedata
from typing import Dict, Optional, Tuple

from config.engine_config import EngineConfig, get_engine_config
from .schemas import PreprocessedInput


# =============================================================================
# SCRIPT RANGES
# =============================================================================

# Any of these keep the original case and switch similarity to char sets
IDEOGRAPHIC_RE = re.compile(r"[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af]")

_SCRIPT_RANGES: Tuple[Tuple[str, int, int], ...] = (
    ("cjk", 0x4E00, 0x9FFF),
    ("cjk", 0x3400, 0x4DBF),
    ("kana", 0x3040, 0x309F),
    ("kana", 0x30A0, 0x30FF),
    ("hangul", 0xAC00, 0xD7AF),
    ("hangul", 0x1100, 0x11FF),
    ("cyrillic", 0x0400, 0x04FF),
    ("arabic", 0x0600, 0x06FF),
)

SCRIPTS = ("latin", "cjk", "kana", "hangul", "cyrillic", "arabic", "other")

_WS_RE = re.compile(r"\s+")


# =============================================================================
# LEXICAL MARKERS (Latin script only)
# =============================================================================

# Order matters: ties without a UI locale preference resolve to the first entry
LANGUAGE_MARKERS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "fr": {
        "chars": ("é", "è", "ê", "à", "ù", "ç", "œ", "ë", "î", "ô"),
        "words": ("le", "la", "les", "des", "une", "pour", "avec", "être", "devenir",
                  "apprendre", "comment", "jours", "mon", "ma", "mes", "je", "du", "et"),
    },
    "es": {
        "chars": ("ñ", "¿", "¡", "á", "í", "ó", "ú"),
        "words": ("el", "los", "las", "una", "para", "con", "aprender", "cómo", "como",
                  "días", "mi", "mis", "quiero", "ser", "hacer", "y"),
    },
    "de": {
        "chars": ("ä", "ö", "ü", "ß"),
        "words": ("der", "die", "das", "und", "ein", "eine", "lernen", "mit", "für",
                  "ich", "mein", "meine", "wie", "tage", "werden", "zu"),
    },
    "it": {
        "chars": ("ì", "ò"),
        "words": ("il", "lo", "gli", "una", "per", "con", "imparare", "come", "giorni",
                  "mio", "mia", "voglio", "diventare", "di", "e"),
    },
    "pt": {
        "chars": ("ã", "õ", "â"),
        "words": ("o", "os", "uma", "para", "com", "aprender", "como", "dias", "meu",
                  "minha", "quero", "ser", "fazer", "não"),
    },
    "en": {
        "chars": (),
        "words": ("the", "a", "an", "to", "for", "with", "learn", "how", "days", "my",
                  "i", "want", "become", "get", "and", "of", "in", "back"),
    },
}

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)


def normalize_intent(text: Optional[str]) -> str:
    """Trim, collapse whitespace, lowercase unless ideographic/kana/hangul is present."""
    if not text:
        return ""
    collapsed = _WS_RE.sub(" ", text).strip()
    if IDEOGRAPHIC_RE.search(collapsed):
        return collapsed
    return collapsed.lower()


def has_ideographic(text: str) -> bool:
    return bool(IDEOGRAPHIC_RE.search(text or ""))


def _script_of(ch: str) -> Optional[str]:
    cp = ord(ch)
    for name, lo, hi in _SCRIPT_RANGES:
        if lo <= cp <= hi:
            return name
    if ch.isalpha():
        try:
            if "LATIN" in unicodedata.name(ch):
                return "latin"
        except ValueError:
            return "other"
        return "other"
    if ch.isdigit():
        return "other"
    return None


def script_stats(text: str) -> Tuple[str, Dict[str, float]]:
    """
    Count code points per script range and normalize to ratios.

    Returns (dominant_script, ratios). Whitespace and punctuation are ignored.
    An input with no countable characters yields ("none", {}).
    """
    counts: Dict[str, int] = {}
    for ch in text or "":
        script = _script_of(ch)
        if script is None:
            continue
        counts[script] = counts.get(script, 0) + 1

    total = sum(counts.values())
    if total == 0:
        return "none", {}

    ratios = {name: round(counts[name] / total, 4) for name in SCRIPTS if name in counts}
    dominant = max(SCRIPTS, key=lambda name: counts.get(name, 0))
    return dominant, ratios


def _locale_primary(ui_locale: Optional[str]) -> str:
    if not ui_locale:
        return "en"
    return re.split(r"[-_]", ui_locale.strip().lower())[0] or "en"


def _lexical_language(text: str, ui_lang: str) -> Optional[str]:
    lowered = text.lower()
    words = set(_WORD_RE.findall(lowered))
    scores: Dict[str, int] = {}
    for lang, markers in LANGUAGE_MARKERS.items():
        score = sum(1 for ch in markers["chars"] if ch in lowered)
        score += sum(1 for w in markers["words"] if w in words)
        if score:
            scores[lang] = score

    if not scores:
        return None

    best = max(scores.values())
    tied = [lang for lang in LANGUAGE_MARKERS if scores.get(lang) == best]
    if ui_lang in tied:
        return ui_lang
    return tied[0]


def infer_language(text: str, ui_locale: Optional[str] = "en") -> str:
    """
    Infer a BCP-47-like primary subtag.

    Script decides first (ko/ja/zh/ru/ar), then Latin lexical markers,
    then the UI locale.
    """
    ui_lang = _locale_primary(ui_locale)
    dominant, ratios = script_stats(text)

    if ratios.get("hangul"):
        return "ko"
    if ratios.get("kana"):
        return "ja"
    if ratios.get("cjk"):
        return "zh"
    if dominant == "cyrillic":
        return "ru"
    if dominant == "arabic":
        return "ar"

    if dominant == "latin":
        lexical = _lexical_language(text, ui_lang)
        if lexical:
            return lexical

    return ui_lang


def clamp_days(days: Optional[float], config: Optional[EngineConfig] = None) -> int:
    """Missing or non-finite -> default; otherwise rounded and clamped to [min, max]."""
    cfg = (config or get_engine_config()).days
    if days is None:
        return cfg.default_days
    try:
        value = float(days)
    except (TypeError, ValueError):
        return cfg.default_days
    if not math.isfinite(value):
        return cfg.default_days
    return max(cfg.min_days, min(cfg.max_days, int(round(value))))


def days_bucket(days: int) -> str:
    """Four-band duration bucket. Changing these is a breaking policy change."""
    if days <= 14:
        return "<=14"
    if days <= 30:
        return "<=30"
    if days <= 90:
        return "<=90"
    return ">90"


def preprocess_intent(
    intent: Optional[str],
    days: Optional[float] = None,
    ui_locale: Optional[str] = "en",
    config: Optional[EngineConfig] = None,
) -> PreprocessedInput:
    """Build the PreprocessedInput for a raw intent. Pure and idempotent."""
    cfg = config or get_engine_config()
    raw = intent or ""
    normalized = normalize_intent(raw)
    dominant, ratios = script_stats(normalized)
    clamped = clamp_days(days, cfg)

    return PreprocessedInput(
        intent_raw=raw,
        normalized_intent=normalized,
        intent_lang=infer_language(normalized, ui_locale),
        ui_locale=ui_locale or "en",
        days=clamped,
        days_bucket=days_bucket(clamped),
        policy_version=cfg.policy_version,
        schema_version=cfg.schema_version,
        dominant_script=dominant,
        script_ratios=ratios,
    )
