# FILE: decision_engine/gates/controllability.py
"""
Controllability gate: does the outcome depend on the user, or on others?

Pattern groups map to (reason_code, level, confidence). An actionable frame
combined with an action verb downgrades any match to high controllability:
a concrete plan can exist around an externally dependent goal.
"""
from __future__ import annotations

from typing import Optional

from ..schemas import (
    Category,
    ControllabilityGateResult,
    ControllabilityLevel,
    ControllabilityReason,
)
from .patterns import ACTIONABLE_FRAME_PATTERNS, any_match, build_rules, compile_patterns, first_rule

_LOW = ControllabilityLevel.LOW.value
_MEDIUM = ControllabilityLevel.MEDIUM.value


# =============================================================================
# PATTERN GROUPS (priority order)
# =============================================================================

# (pattern, reason, confidence, level)
CONTROLLABILITY_RULES = build_rules([
    # Romantic outcomes
    (r"\b(get|win) (back )?(my |her |him |them )?(ex|girlfriend|boyfriend|wife|husband|crush)( back)?\b",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.85, _LOW),
    (r"\bmake (him|her|them|someone|my crush) (love|like|fall (in love )?for|want) me\b",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.85, _LOW),
    (r"\b(r[ée]cup[ée]rer|reconqu[ée]rir) (mon|ma) (ex|copine|copain|femme|mari)\b",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.85, _LOW),
    (r"\bqu'?(il|elle) (m'aime|revienne|tombe amoureu)",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.85, _LOW),
    (r"\b(recuperar|reconquistar) a mi (ex|novia|novio)\b",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.85, _LOW),
    (r"\b(find|meet) (a |my |the )?(soulmate|girlfriend|boyfriend|wife|husband|love of my life)\b",
     ControllabilityReason.ROMANTIC_OUTCOME.value, 0.8, _LOW),

    # Other people
    (r"\bmake (my )?(boss|parents?|friends?|people|someone|kids?|partner) (respect|like|listen to|accept|forgive) me\b",
     ControllabilityReason.DEPENDS_ON_OTHER_PEOPLE.value, 0.9, _LOW),
    (r"\b(convince|persuade) (my |someone|people|everyone)\b",
     ControllabilityReason.DEPENDS_ON_OTHER_PEOPLE.value, 0.9, _LOW),
    (r"\bget (him|her|them|people|everyone) to\b",
     ControllabilityReason.DEPENDS_ON_OTHER_PEOPLE.value, 0.9, _LOW),
    (r"\b(faire en sorte qu'?|obliger) (il|elle|ils|mon|ma|mes)\b",
     ControllabilityReason.DEPENDS_ON_OTHER_PEOPLE.value, 0.9, _LOW),
    (r"\b(convaincre|persuader) (mon|ma|mes|les|quelqu'un)\b",
     ControllabilityReason.DEPENDS_ON_OTHER_PEOPLE.value, 0.9, _LOW),

    # Approval / selection
    (r"\b(get|be|being) (hired|accepted|admitted|selected|chosen|picked|promoted|signed)\b",
     ControllabilityReason.APPROVAL_OR_SELECTION.value, 0.8, _LOW),
    (r"\b(pass|win) (the |my )?(audition|casting)\b",
     ControllabilityReason.APPROVAL_OR_SELECTION.value, 0.8, _LOW),
    (r"\b[êe]tre (embauch[ée]|accept[ée]|admis|s[ée]lectionn[ée]|choisi|promu)e?\b",
     ControllabilityReason.APPROVAL_OR_SELECTION.value, 0.8, _LOW),
    (r"\bd[ée]crocher (un|le|mon) (job|poste|cdi|contrat)\b",
     ControllabilityReason.APPROVAL_OR_SELECTION.value, 0.8, _LOW),

    # Institutions
    (r"\b(get|obtain) (a |my |the )?(visa|green card|citizenship|residence permit|loan|grant|scholarship)\b",
     ControllabilityReason.DEPENDS_ON_INSTITUTION.value, 0.8, _LOW),
    (r"\bobtenir (un |une |mon |ma )?(visa|titre de s[ée]jour|pr[êe]t|bourse|nationalit[ée])\b",
     ControllabilityReason.DEPENDS_ON_INSTITUTION.value, 0.8, _LOW),
    (r"\bwin (my |the )?(lawsuit|court case|appeal)\b",
     ControllabilityReason.DEPENDS_ON_INSTITUTION.value, 0.8, _LOW),

    # Random / competitive processes
    (r"\b(win|gagner|ganar|vincere) (the |au |[àa] la |la |al )?(lottery|loto|lotto|loter[ií]a|lotteria|jackpot|euromillions?)\b",
     ControllabilityReason.DEPENDS_ON_RANDOM_OUTCOME.value, 0.9, _LOW),
    (r"\bwin (at )?(the )?(casino|roulette|slot machines?)\b",
     ControllabilityReason.DEPENDS_ON_RANDOM_OUTCOME.value, 0.9, _LOW),

    # Markets
    (r"\b(get rich|become rich|devenir riche|hacerme rico|make (a )?million|double my (money|savings|investment))\b",
     ControllabilityReason.MONEY_MARKET_OUTCOME.value, 0.8, _LOW),
    (r"\b(my )?(crypto|bitcoin|stocks?|shares) (go|goes|to go) (up|to the moon)\b",
     ControllabilityReason.MONEY_MARKET_OUTCOME.value, 0.8, _LOW),

    # Elite life goals
    (r"\b(pr[ée]sidente?|president|prime minister|premier ministre|billionaire|milliardaire)\b",
     ControllabilityReason.LIFE_GOAL_ELITE_ROLE.value, 0.7, _MEDIUM),

    # Health outcomes
    (r"\b(cure|heal|gu[ée]rir (de )?) ?(my |mon |ma )?(cancer|diabetes|illness|disease|maladie|diab[èe]te)\b",
     ControllabilityReason.HEALTH_OUTCOME_EXTERNAL.value, 0.7, _MEDIUM),
    (r"\b(get pregnant|tomber enceinte|quedar embarazada)\b",
     ControllabilityReason.HEALTH_OUTCOME_EXTERNAL.value, 0.7, _MEDIUM),
])

ACTION_VERB_PATTERNS = compile_patterns([
    r"\b(practi[cs]e|train|prepare|write|build|call|plan|improve|work on|learn|study|apply|send|rehearse)\b",
    r"\b(pr[ée]parer|travailler|[ée]crire|pratiquer|entra[iî]ner|apprendre|planifier|postuler|envoyer)\b",
    r"\b(preparar|trabajar|escribir|practicar|entrenar|aprender|planificar)\b",
])


def detect_controllability(text: str, category: Optional[Category] = None) -> ControllabilityGateResult:
    """
    Classify how much the outcome depends on the user.

    No match: high/unknown at 0.6 (inconclusive). Frame + verb: high at 0.8.
    """
    text = text or ""
    hit = first_rule(CONTROLLABILITY_RULES, text)
    if not hit:
        return ControllabilityGateResult(
            status=ControllabilityLevel.HIGH,
            reason_code=ControllabilityReason.UNKNOWN,
            confidence=0.6,
        )

    rule, match = hit
    if any_match(ACTIONABLE_FRAME_PATTERNS, text) and any_match(ACTION_VERB_PATTERNS, text):
        return ControllabilityGateResult(
            status=ControllabilityLevel.HIGH,
            reason_code=ControllabilityReason.ACTIONABLE_FRAME,
            confidence=0.8,
            matched=match.group(0),
            rationale=f"downgraded_from:{rule.reason_code}",
        )

    return ControllabilityGateResult(
        status=ControllabilityLevel(rule.level),
        reason_code=ControllabilityReason(rule.reason_code),
        confidence=rule.confidence,
        matched=match.group(0),
    )
