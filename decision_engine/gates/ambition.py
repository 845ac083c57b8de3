# FILE: decision_engine/gates/ambition.py
"""
Ambition / life-goal gate.

Guards first: an intent that already carries an actionable time frame or a
concrete learning/training verb is never flagged. Otherwise a table of
elite-role and superlative patterns (fr, en, es, zh, ko, ja) requires an
ambition confirmation before planning.
"""
from __future__ import annotations

import logging

from ..schemas import AmbitionGateResult, AmbitionReason
from .patterns import ACTIONABLE_FRAME_PATTERNS, build_rules, compile_patterns, first_match, first_rule

logger = logging.getLogger(__name__)


# =============================================================================
# GUARDS
# =============================================================================

LEARNING_VERB_PATTERNS = compile_patterns([
    r"\b(learn(ing)?|study(ing)?|practi[cs]e|practi[cs]ing|train(ing)?|prepare|preparing|improve|rehearse)\b",
    r"\b(apprendre|[ée]tudier|pratiquer|m'entra[iî]ner|entra[iî]ner|pr[ée]parer|r[ée]viser|r[ée]p[ée]ter)\b",
    r"\b(aprender|estudiar|practicar|entrenar|preparar)\b",
    r"\b(lernen|[üu]ben|trainieren|vorbereiten)\b",
    r"\b(imparare|studiare|allenare|praticare|preparare)\b",
    r"(学习|练习|准备|공부|연습|준비|勉強|練習|準備)",
])


# =============================================================================
# ELITE ROLES AND SUPERLATIVES
# =============================================================================

_ELITE = AmbitionReason.ELITE_ROLE.value
_SUPER = AmbitionReason.SUPERLATIVE.value

# (pattern, reason, confidence, level, lang)
ELITE_OR_SUPERLATIVE_RULES = build_rules([
    # fr
    (r"\bpr[ée]sidente? de la r[ée]publique\b", _ELITE, 0.95, None, "fr"),
    (r"\bpremi(er|[eè]re) ministre\b", _ELITE, 0.9, None, "fr"),
    (r"\b(devenir|[êe]tre) (le |la )?(pr[ée]sidente?|roi|reine|pape)\b", _ELITE, 0.9, None, "fr"),
    (r"\bprix nobel\b", _ELITE, 0.9, None, "fr"),
    (r"\b(gagner|remporter) (un |l')?oscar\b", _ELITE, 0.9, None, "fr"),
    (r"\bchampion(ne)? du monde\b", _ELITE, 0.9, None, "fr"),
    (r"\bmilliardaire\b", _ELITE, 0.9, None, "fr"),
    (r"\b(le|la) meilleure? (du monde|de france)\b", _SUPER, 0.85, None, "fr"),
    (r"\b(devenir|[êe]tre) (c[ée]l[èe]bre|une star mondiale)\b", _SUPER, 0.85, None, "fr"),
    (r"\b(entrer|[êe]tre admise?) [àa] (harvard|stanford|polytechnique|oxford)\b", _ELITE, 0.85, None, "fr"),
    # en
    (r"\bbecome (the )?(president|prime minister|king|queen|pope)\b", _ELITE, 0.9, None, "en"),
    (r"\bpresident of the (united states|usa|us|country)\b", _ELITE, 0.95, None, "en"),
    (r"\b(become (a )?)?billionaire\b", _ELITE, 0.9, None, "en"),
    (r"\b(win (a |the )?)?nobel prize\b", _ELITE, 0.9, None, "en"),
    (r"\bwin (an |the )?oscar\b", _ELITE, 0.9, None, "en"),
    (r"\bworld champion\b", _ELITE, 0.9, None, "en"),
    (r"\bolympic (gold|champion)\b", _ELITE, 0.9, None, "en"),
    (r"\b(get into|admitted to) (harvard|stanford|mit|oxford|cambridge)\b", _ELITE, 0.85, None, "en"),
    (r"\bworld[- ]class\b", _SUPER, 0.85, None, "en"),
    (r"\b(number one|#1|no\. ?1) in the world\b", _SUPER, 0.85, None, "en"),
    (r"\bthe best in the world\b", _SUPER, 0.85, None, "en"),
    (r"\bbecome the goat\b", _SUPER, 0.85, None, "en"),
    (r"\b(become|be) (world[- ])?famous\b", _SUPER, 0.85, None, "en"),
    # es
    (r"\bpresidente? de (la rep[úu]blica|espa[ñn]a|m[ée]xico|gobierno)\b", _ELITE, 0.95, None, "es"),
    (r"\b(ser|volverme|hacerme) millonari[oa]\b", _ELITE, 0.9, None, "es"),
    (r"\bcampe[oó]n(a)? del mundo\b", _ELITE, 0.9, None, "es"),
    (r"\bel mejor del mundo\b", _SUPER, 0.85, None, "es"),
    # zh
    (r"(成为|当上|当).{0,4}(总统|主席|首相|亿万富翁|世界冠军)", _ELITE, 0.95, None, "zh"),
    (r"(总统|亿万富翁|诺贝尔)", _ELITE, 0.9, None, "zh"),
    (r"世界第一", _SUPER, 0.85, None, "zh"),
    # ko
    (r"(대통령|억만장자|노벨상|세계 챔피언)", _ELITE, 0.9, None, "ko"),
    (r"세계 최고", _SUPER, 0.85, None, "ko"),
    # ja
    (r"(大統領|総理大臣|億万長者|ノーベル賞)", _ELITE, 0.9, None, "ja"),
    (r"世界一", _SUPER, 0.85, None, "ja"),
])


def check_ambition(text: str) -> AmbitionGateResult:
    """
    Decide whether the intent needs an ambition confirmation.

    Guards short-circuit to "pass" before any elite pattern is consulted.
    """
    text = text or ""

    if first_match(ACTIONABLE_FRAME_PATTERNS, text):
        return AmbitionGateResult(
            status="pass",
            reason_code=AmbitionReason.ACTIONABLE_FRAME,
            confidence=0.9,
        )

    guard = first_match(LEARNING_VERB_PATTERNS, text)
    if guard:
        return AmbitionGateResult(
            status="pass",
            reason_code=AmbitionReason.LEARNING_VERB,
            confidence=0.9,
            rationale=guard.group(0),
        )

    hit = first_rule(ELITE_OR_SUPERLATIVE_RULES, text)
    if hit:
        rule, match = hit
        logger.debug(f"[ambition] marker={match.group(0)!r} lang={rule.lang}")
        return AmbitionGateResult(
            status="confirm",
            reason_code=AmbitionReason(rule.reason_code),
            confidence=rule.confidence,
            requires_confirmation=True,
            marker=match.group(0),
            lang_hint=rule.lang,
        )

    return AmbitionGateResult(status="pass", reason_code=AmbitionReason.NO_MARKER, confidence=0.6)
