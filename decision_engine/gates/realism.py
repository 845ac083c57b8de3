# FILE: decision_engine/gates/realism.py
"""
Soft realism gate (deterministic, runs before the realism judge).

Only catches the unambiguous cases: mastering a language in a month or
less. Everything else returns None and the realism judge decides.
"""
from __future__ import annotations

import re
from typing import Optional

from ..schemas import Angle, RealismGateResult, RealismLevel
from .patterns import compile_patterns, first_match

LANGUAGE_GOAL_RE = re.compile(
    r"\b(english|french|spanish|german|italian|japanese|chinese|mandarin|korean|portuguese|arabic|russian"
    r"|anglais|fran[çc]ais|espagnol|allemand|italien|japonais|chinois|cor[ée]en|portugais|arabe|russe"
    r"|ingl[ée]s|franc[ée]s|alem[áa]n|italiano|japon[ée]s|chino|coreano"
    r"|englisch|franz[öo]sisch|spanisch|italienisch|japanisch"
    r"|inglese|francese|spagnolo|tedesco|giapponese|cinese)\b",
    re.IGNORECASE,
)

MASTERY_PATTERNS = compile_patterns([
    r"\b(fluent(ly)?|fluency|bilingual|master(y|ing)?|native[- ]level|like a native|perfectly|c1|c2)\b",
    r"\b(couramment|bilingue|ma[iî]triser|parfaitement|niveau natif|courant)\b",
    r"\b(con fluidez|fluido|dominar|perfectamente)\b",
    r"\b(flie[ßs]end|perfekt|beherrschen)\b",
    r"\b(fluentemente|perfettamente|padroneggiare)\b",
])

# Shortest window in which mastery claims are still judged by the LLM
MASTERY_MIN_DAYS = 31

_ADJUST_TEXT = {
    "en": "Reach conversational basics (A1/A2) in {language}",
    "fr": "Atteindre les bases conversationnelles (A1/A2) en {language}",
    "es": "Alcanzar las bases conversacionales (A1/A2) en {language}",
    "de": "Grundlagen für Gespräche (A1/A2) in {language} erreichen",
    "it": "Raggiungere le basi conversazionali (A1/A2) in {language}",
}


def _basics_text(lang: str, language: str) -> str:
    template = _ADJUST_TEXT.get(lang, _ADJUST_TEXT["en"])
    return template.format(language=language)


def assess_soft_realism(
    text: str,
    days: int,
    lang: str = "en",
) -> Optional[RealismGateResult]:
    """
    Deterministic realism check.

    Returns UNREALISTIC with adjustments for language mastery in <= 30 days,
    STRETCH for other mastery claims in <= 14 days, else None (inconclusive).
    """
    text = text or ""
    mastery = first_match(MASTERY_PATTERNS, text)
    if not mastery:
        return None

    language = LANGUAGE_GOAL_RE.search(text)
    if language and days < MASTERY_MIN_DAYS:
        adjustments = [
            Angle(label="realismAdjustReachBasics", next_intent=_basics_text(lang, language.group(0)), days=days),
            Angle(label="realismAdjustExtendDays", next_intent=text, days=90),
            Angle(label="realismAdjustExtendDays", next_intent=text, days=180),
        ]
        return RealismGateResult(
            status=RealismLevel.UNREALISTIC,
            reason_code="language_mastery_short_window",
            confidence=0.9,
            why_short="realismLanguageMasteryShort",
            adjustments=adjustments,
            rationale=f"{mastery.group(0)} {language.group(0)} in {days} days",
        )

    if days <= 14:
        return RealismGateResult(
            status=RealismLevel.STRETCH,
            reason_code="mastery_short_window",
            confidence=0.6,
            why_short="realismMasteryStretch",
            rationale=mastery.group(0),
        )

    return None
