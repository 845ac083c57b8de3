# FILE: decision_engine/gates/patterns.py
"""
Pattern-table helpers shared by the deterministic gates.

Each gate is a list of PatternRule evaluated in priority order. Adding a
locale or a phrase is a one-line table change.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class PatternRule:
    """(pattern, reason_code) plus optional level/confidence/lang hint."""
    pattern: str
    reason_code: str
    confidence: float = 1.0
    level: Optional[str] = None
    lang: Optional[str] = None
    compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "compiled", re.compile(self.pattern, re.IGNORECASE))

    def search(self, text: str) -> Optional[re.Match]:
        return self.compiled.search(text)


def build_rules(rows: Iterable[Tuple]) -> List[PatternRule]:
    """Rows are (pattern, reason_code[, confidence[, level[, lang]]])."""
    return [PatternRule(*row) for row in rows]


def compile_patterns(patterns: Sequence[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def first_rule(rules: Sequence[PatternRule], text: str) -> Optional[Tuple[PatternRule, re.Match]]:
    """First matching rule in priority order."""
    for rule in rules:
        match = rule.search(text)
        if match:
            return rule, match
    return None


def first_match(patterns: Sequence[re.Pattern], text: str) -> Optional[re.Match]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


def any_match(patterns: Sequence[re.Pattern], text: str) -> bool:
    return first_match(patterns, text) is not None


# =============================================================================
# SHARED FRAMES
# =============================================================================

# "in 30 days", "3 weeks", "20 min per day": the intent already carries a plan frame
ACTIONABLE_FRAME_PATTERNS = compile_patterns([
    r"\b(in|within|en|dans|durante|innerhalb|entro)\s+\d+\s*(days?|weeks?|months?|jours?|semaines?|mois|d[ií]as|semanas|meses|tagen?|wochen|monaten?|giorni|settimane|mesi)\b",
    r"\b\d+\s*(days?|weeks?|jours?|semaines?|d[ií]as|semanas|tage|wochen|giorni|settimane)\b",
    r"\b\d+\s*(min|mins|minutes?|h|hours?|heures?|minutos?|minuten|minuti)\s*(a|per|par|por|pro|al)\s*(day|jour|d[ií]a|tag|giorno)\b",
    r"\b(per day|a day|every day|daily|par jour|chaque jour|cada d[ií]a|al d[ií]a|pro tag|jeden tag|al giorno|ogni giorno)\b",
    r"\d+\s*(天|周|个月|일|주|개월|日間|週間|ヶ月)",
])
