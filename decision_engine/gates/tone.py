# FILE: decision_engine/gates/tone.py
"""
Tone gate: serious | playful | nonsense | unclear.

Fixed phrase lists only. The orchestrator acts on the result only at or
above the tone threshold (0.85), so low-confidence labels are advisory.
"""
from __future__ import annotations

import re
from typing import Optional

from ..schemas import ToneGateResult, ToneLabel, ToneReason
from .patterns import compile_patterns, first_match


# =============================================================================
# PATTERNS
# =============================================================================

FANTASY_PATTERNS = compile_patterns([
    r"\b(ride|tame|train|become|befriend) (a |an |my own )?(dragon|unicorn|pegasus)s?\b",
    r"\b(devenir|dompter|chevaucher) (un |une )?(dragon|licorne)s?\b",
    r"\bfly to the moon\b",
    r"\b(fly|voler) (like a bird|comme un oiseau|sans avion|without (a )?plane)\b",
    r"\bbecome (a |an )?(wizard|superhero|vampire|mermaid|jedi|pokemon master)\b",
    r"\bdevenir (un |une )?(sorci[eè]re?|super-?h[ée]ros|vampire|sir[eè]ne)\b",
    r"\b(time travel|travel back in time|voyager dans le temps)\b",
    r"\b(teleport\w*|become invisible|devenir invisible|read minds)\b",
    r"\b(live|vivre) (forever|[ée]ternellement)\b",
])

FOOD_WORDS = (
    "pizza", "pizzas", "burger", "burgers", "sushi", "tacos", "taco", "chocolate",
    "chocolat", "fries", "frites", "hotdog", "hot-dog", "donut", "donuts", "kebab",
    "croissant", "croissants", "nutella", "ice cream", "glace", "cookies", "bonbons",
    "candy", "cake", "gâteau",
)

_FOOD_ALT = "|".join(re.escape(w) for w in FOOD_WORDS)

# "eat 10 pizzas", "manger 3 burgers"
FOOD_CHALLENGE_PATTERNS = compile_patterns([
    rf"\b(eat|eating|manger|comer|essen|mangiare)\s+(\d+|a lot of|plein de|tons of)\s+({_FOOD_ALT})\b",
    rf"\b(eat|manger)\s+({_FOOD_ALT})\s+(every day|all day|tous les jours|toute la journée)\b",
])

# Single words treated as trivial/nonsense on their own
TRIVIAL_SINGLE_WORDS = frozenset({
    "pizza", "burger", "sushi", "tacos", "chocolate", "dragon", "banana", "lol",
    "mdr", "test", "hello", "bonjour", "hola", "yo", "nothing", "rien", "idk",
    "whatever", "blah", "potato", "patate",
})

KEYBOARD_MASH_PATTERNS = compile_patterns([
    r"^(.)\1{3,}$",
    r"^(asdf|qwer|azer|zxcv|hjkl)\w*$",
    r"^[b-df-hj-np-tv-xz]{6,}$",
])

_WORD_SPLIT = re.compile(r"\s+")


def detect_tone(text: str, lang: Optional[str] = None) -> ToneGateResult:
    """
    Classify the tone of a normalized intent.

    Priority: empty > fantasy > food challenge > single word > serious.
    """
    cleaned = (text or "").strip().strip(".!?¿¡,;:").strip()
    if not cleaned:
        return ToneGateResult(status=ToneLabel.UNCLEAR, reason_code=ToneReason.EMPTY, confidence=1.0)

    lowered = cleaned.lower()

    match = first_match(FANTASY_PATTERNS, lowered)
    if match:
        return ToneGateResult(
            status=ToneLabel.PLAYFUL,
            reason_code=ToneReason.FANTASY_PLAYFUL,
            confidence=0.95,
            rationale=match.group(0),
        )

    match = first_match(FOOD_CHALLENGE_PATTERNS, lowered)
    if match:
        return ToneGateResult(
            status=ToneLabel.PLAYFUL,
            reason_code=ToneReason.FOOD_TRIVIAL,
            confidence=0.9,
            rationale=match.group(0),
        )

    words = _WORD_SPLIT.split(lowered)
    if len(words) == 1:
        word = words[0]
        if word in TRIVIAL_SINGLE_WORDS or first_match(KEYBOARD_MASH_PATTERNS, word):
            return ToneGateResult(
                status=ToneLabel.NONSENSE,
                reason_code=ToneReason.SINGLE_WORD_TRIVIAL,
                confidence=0.9,
                rationale=word,
            )
        if word in FOOD_WORDS:
            return ToneGateResult(
                status=ToneLabel.PLAYFUL,
                reason_code=ToneReason.FOOD_TRIVIAL,
                confidence=0.9,
                rationale=word,
            )
        return ToneGateResult(
            status=ToneLabel.UNCLEAR,
            reason_code=ToneReason.SINGLE_WORD_UNCLEAR,
            confidence=0.7,
            rationale=word,
        )

    return ToneGateResult(status=ToneLabel.SERIOUS, reason_code=ToneReason.NO_SIGNAL, confidence=0.5)


def tone_is_decisive(result: ToneGateResult, threshold: float = 0.85) -> bool:
    """True when the orchestrator should stop with PLAYFUL_OR_NONSENSE."""
    return result.status != ToneLabel.SERIOUS and result.confidence >= threshold
