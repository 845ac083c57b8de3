# FILE: decision_engine/gates/safety.py
"""
Safety gates.

Tiered:
1. Hard block: fixed high-severity phrase lists. Always blocks, never cached past.
2. Audience heuristics: adult-only content, weapons, drugs, gambling.
   High confidence decides locally, lower confidence defers to the judge.
3. Sensitive vocabulary: uncertain, defer to the judge.
4. Otherwise allow for all ages.

check_hard_block runs on the normalized intent before any cache or judge access.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from ..schemas import (
    AudienceLevel,
    DecisionGate,
    SafetyGateResult,
    SafetyReason,
    SafetyStatus,
)
from .patterns import any_match, build_rules, compile_patterns, first_rule

logger = logging.getLogger(__name__)


# =============================================================================
# HARD BLOCK
# =============================================================================

MINOR_TERMS_RE = re.compile(
    r"\b(enfants?|mineure?s?|underage|minors?|kids?|child|children|teens?|teenagers?"
    r"|adolescente?s?|preteens?|menores?|niñ[oa]s?|kinder|minderjährige?)\b",
    re.IGNORECASE,
)

SEXUAL_TERMS_RE = re.compile(
    r"\b(sex|sexual|sexuel(le)?s?|sexy|porn\w*|explicit|intercourse|nudes|rape"
    r"|violer|viol|erotic\w*|sexo|sexuales?)\b",
    re.IGNORECASE,
)

# Priority order: first hit wins
HARD_BLOCK_RULES = build_rules([
    (r"\b(how to|ways to|comment)\s+(rape|violer)\b", SafetyReason.SEXUAL_VIOLENCE.value),
    (r"\b(rape|raping)\s+(someone|a (woman|man|girl|boy)|her|him)\b", SafetyReason.SEXUAL_VIOLENCE.value),
    (r"\b(drug|force)\s+(someone|her|him)\s+(to|into)\s+(have\s+)?sex\b", SafetyReason.SEXUAL_VIOLENCE.value),
    (r"\bagression sexuelle\b", SafetyReason.SEXUAL_VIOLENCE.value),

    (r"\bhow to (kill|hurt|harm) myself\b", SafetyReason.SELF_HARM.value),
    (r"\b(commit suicide|end my life|suicide methods?|ways to die)\b", SafetyReason.SELF_HARM.value),
    (r"\bcomment (se|me) (suicider|tuer)\b", SafetyReason.SELF_HARM.value),
    (r"\b(mettre fin à mes jours|me scarifier)\b", SafetyReason.SELF_HARM.value),
    (r"\b(c[oó]mo suicidarme|quitarme la vida)\b", SafetyReason.SELF_HARM.value),

    (r"\bhow to (make|build) (a |an )?(pipe |nail )?(bomb|explosive)s?\b", SafetyReason.EXPLOSIVES_HOWTO.value),
    (r"\b(bomb[- ]making|explosive recipe|make explosives|molotov cocktail)\b", SafetyReason.EXPLOSIVES_HOWTO.value),
    (r"\b(build|make) (a |an )?(pipe )?bomb\b", SafetyReason.EXPLOSIVES_HOWTO.value),
    (r"\bfabriquer (une )?(bombe|explosifs?)\b", SafetyReason.EXPLOSIVES_HOWTO.value),
    (r"\bfabricar (una )?bomba\b", SafetyReason.EXPLOSIVES_HOWTO.value),
    (r"\b(3d[- ]print(ed)?|homemade|untraceable) (gun|firearm)s?\b", SafetyReason.EXPLOSIVES_HOWTO.value),

    (r"\bhow to (murder|poison|kidnap|strangle)\b", SafetyReason.CRIME_HOWTO.value),
    (r"\bhow to kill (someone|somebody|a person|my (wife|husband|boss|neighbou?r))\b", SafetyReason.CRIME_HOWTO.value),
    (r"\bget away with murder\b", SafetyReason.CRIME_HOWTO.value),
    (r"\bcomment (tuer|empoisonner|kidnapper)\b", SafetyReason.CRIME_HOWTO.value),
    (r"\bc[oó]mo (matar|envenenar) a\b", SafetyReason.CRIME_HOWTO.value),
])


# =============================================================================
# AUDIENCE HEURISTICS
# =============================================================================

# (pattern, reason, confidence, level)
AUDIENCE_RULES = build_rules([
    (r"\b(porn\w*|onlyfans|sexting|escort(ing)?|strip ?club|sex toys?|erotic\w*|kamasutra)\b",
     SafetyReason.ADULT_SEXUAL.value, 0.85, AudienceLevel.ADULT_ONLY.value),
    (r"\b(nude|nudity|naked|nudis[tm]e?|naturism)\b",
     SafetyReason.NUDITY.value, 0.85, AudienceLevel.ADULT_ONLY.value),
    (r"\b(guns?|firearms?|rifles?|pistols?|shotguns?|shooting range|armes? à feu|fusil|carabine)\b",
     SafetyReason.WEAPONS.value, 0.75, AudienceLevel.ADULT_ONLY.value),
    (r"\b(cannabis|weed|marijuana|cocaine|lsd|psilocybin|magic mushrooms|drogues?|mdma|ecstasy|ketamine)\b",
     SafetyReason.DRUGS.value, 0.7, AudienceLevel.ADULT_ONLY.value),
    (r"\b(gambl\w*|casino|poker|sports betting|paris sportifs|roulette|slot machines?|blackjack)\b",
     SafetyReason.GAMBLING.value, 0.7, AudienceLevel.ADULT_ONLY.value),
])

# Quitting or recovering from a habit is an all-ages goal
RECOVERY_FRAME_PATTERNS = compile_patterns([
    r"\b(detox|quit(ting)?|stop(ping)?|sober|sobriety|recovery|recover from|get clean|addiction)\b",
    r"\b(arrêter|sevrage|désintox\w*|addiction|décrocher)\b",
    r"\b(dejar|desintoxicaci[oó]n|adicci[oó]n)\b",
])

SENSITIVE_PATTERNS = compile_patterns([
    r"\b(hack(ing)?|lock ?pick\w*|steal\w*|shoplift\w*|weapons?|poison\w*|suicide|self[- ]harm)\b",
    r"\b(diet pills|extreme (diet|fasting)|purge|pro[- ]ana|revenge|stalk\w*)\b",
    r"\b(spy on|track (my )?(wife|husband|partner|girlfriend|boyfriend)|read (her|his) messages)\b",
    r"\b(pirater|voler|vengeance|espionner|arme)\b",
])


def check_hard_block(text: str) -> Optional[SafetyGateResult]:
    """
    Unconditional block on high-severity content.

    Returns a blocking SafetyGateResult, or None if nothing matched.
    """
    if not text:
        return None

    if MINOR_TERMS_RE.search(text) and SEXUAL_TERMS_RE.search(text):
        logger.info("[safety] Hard block: sexual_minors")
        return SafetyGateResult(
            status=SafetyStatus.BLOCK,
            reason_code=SafetyReason.SEXUAL_MINORS,
            level=AudienceLevel.BLOCKED,
            confidence=1.0,
            rationale="minor_and_sexual_terms",
        )

    hit = first_rule(HARD_BLOCK_RULES, text)
    if hit:
        rule, match = hit
        logger.info(f"[safety] Hard block: {rule.reason_code}")
        return SafetyGateResult(
            status=SafetyStatus.BLOCK,
            reason_code=SafetyReason(rule.reason_code),
            level=AudienceLevel.BLOCKED,
            confidence=1.0,
            rationale=match.group(0),
        )

    return None


def assess_audience_safety(text: str, local_threshold: float = 0.75) -> SafetyGateResult:
    """
    Full tiered safety assessment (hard block included).

    status=uncertain is the only result that should trigger the safety judge.
    """
    blocked = check_hard_block(text)
    if blocked is not None:
        return blocked

    hit = first_rule(AUDIENCE_RULES, text)
    if hit:
        rule, match = hit
        recovering = rule.reason_code in (SafetyReason.DRUGS.value, SafetyReason.GAMBLING.value) \
            and any_match(RECOVERY_FRAME_PATTERNS, text)
        if recovering:
            return SafetyGateResult(
                gate=DecisionGate.AUDIENCE_SAFETY,
                status=SafetyStatus.ALLOW,
                reason_code=SafetyReason.NO_RISK_SIGNAL,
                level=AudienceLevel.ALL_AGES,
                confidence=0.85,
                rationale=f"recovery_frame:{match.group(0)}",
            )
        if rule.confidence >= local_threshold:
            return SafetyGateResult(
                gate=DecisionGate.AUDIENCE_SAFETY,
                status=SafetyStatus.ALLOW,
                reason_code=SafetyReason(rule.reason_code),
                level=AudienceLevel(rule.level),
                confidence=rule.confidence,
                rationale=match.group(0),
            )
        return SafetyGateResult(
            gate=DecisionGate.AUDIENCE_SAFETY,
            status=SafetyStatus.UNCERTAIN,
            reason_code=SafetyReason(rule.reason_code),
            level=AudienceLevel(rule.level),
            confidence=rule.confidence,
            rationale=match.group(0),
        )

    if any_match(SENSITIVE_PATTERNS, text):
        return SafetyGateResult(
            gate=DecisionGate.AUDIENCE_SAFETY,
            status=SafetyStatus.UNCERTAIN,
            reason_code=SafetyReason.SENSITIVE_TOPIC,
            level=AudienceLevel.ALL_AGES,
            confidence=0.5,
        )

    return SafetyGateResult(
        gate=DecisionGate.AUDIENCE_SAFETY,
        status=SafetyStatus.ALLOW,
        reason_code=SafetyReason.NO_RISK_SIGNAL,
        level=AudienceLevel.ALL_AGES,
        confidence=0.9,
    )
