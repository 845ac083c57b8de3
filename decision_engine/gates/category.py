# FILE: decision_engine/gates/category.py
"""
Deterministic category inference.

Keyword tables per category, checked in priority order. WELLBEING first so
that romantic or emotional goals never land in a skill category. No match
returns None and the orchestrator falls back to the router judge.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from ..schemas import Category, CategoryGateResult
from .patterns import compile_patterns, first_match

# Priority order matters: first category with a match wins
CATEGORY_PATTERNS: Dict[Category, List] = {
    Category.WELLBEING: compile_patterns([
        r"\b(my )?ex( back)?\b",
        r"\b(breakup|break up|heartbreak|get over (him|her|them)|move on)\b",
        r"\b(girlfriend|boyfriend|crush|soulmate|love life|relationship)\b",
        r"\b(stress|anxiety|anxious|depress\w*|burn ?out|self[- ]esteem|self[- ]confidence|loneliness|lonely)\b",
        r"\b(sleep better|insomnia|meditat\w*|mindful\w*|relax\w*|well[- ]?being|mental health)\b",
        r"\b(lose weight|weight loss|eat healthier|quit smoking|stop smoking|detox|sober)\b",
        r"\b(rupture|chagrin d'amour|mon ex|ma copine|mon copain|angoisse|confiance en moi|estime de soi|dormir mieux|m[ée]diter|perdre du poids|arr[êe]ter de fumer)\b",
        r"\b(ansiedad|autoestima|dormir mejor|mi ex|bajar de peso|dejar de fumar)\b",
    ]),
    Category.LEARN: compile_patterns([
        r"\b(learn\w*|study|studying|course|exam|certification|degree|revise|understand)\b",
        r"\b(english|french|spanish|german|italian|japanese|chinese|mandarin|korean|portuguese|arabic|russian)\b",
        r"\b(apprendre|[ée]tudier|r[ée]viser|examen|cours|anglais|espagnol|allemand|italien|japonais|chinois|cor[ée]en)\b",
        r"\b(aprender|estudiar|examen|ingl[ée]s|franc[ée]s|alem[áa]n)\b",
        r"\b(lernen|studieren|pr[üu]fung|englisch|franz[öo]sisch|spanisch)\b",
        r"\b(imparare|studiare|esame|inglese|francese|spagnolo|tedesco)\b",
        r"(学习|学|공부|배우|勉強|習う)",
    ]),
    Category.CREATE: compile_patterns([
        r"\b(write|writing) (a |my )?(novel|book|blog|screenplay|song|poem|newsletter)\b",
        r"\b(paint\w*|draw\w*|sketch\w*|illustrat\w*|compose|sculpt\w*|knit\w*|crochet|sew\w*|pottery|ceramics)\b",
        r"\b(build|launch|create|make|start) (a |an |my )?(app|website|game|podcast|youtube channel|blog|side project|business|brand|portfolio)\b",
        r"\b([ée]crire un (roman|livre|blog)|peindre|dessiner|composer|tricoter|coudre|cr[ée]er (une|un|mon) (app|site|podcast|cha[iî]ne|entreprise))\b",
        r"\b(escribir una novela|pintar|dibujar|componer|coser)\b",
    ]),
    Category.PERFORM: compile_patterns([
        r"\b(marathon|half[- ]marathon|triathlon|run (a |my )?\d+ ?k|5k|10k|push[- ]?ups?|pull[- ]?ups?)\b",
        r"\b(play (the )?(guitar|piano|violin|drums|bass|ukulele|saxophone|chess))\b",
        r"\b(sing\w*|dance|dancing|public speaking|give a (talk|speech|presentation)|perform\w*|stand[- ]?up|audition)\b",
        r"\b(courir|semi[- ]marathon|jouer (de la|du) (guitare|piano|violon|batterie)|chanter|danser|prise de parole|discours)\b",
        r"\b(correr|tocar (la|el) (guitarra|piano)|cantar|bailar)\b",
    ]),
    Category.SOCIAL: compile_patterns([
        r"\b(make (new )?friends|meet (new )?people|network\w*|small talk|socializ\w*|be more social|shyness|shy)\b",
        r"\b(my (boss|colleagues?|coworkers?|parents|family|friends)|conflict|communicat\w*)\b",
        r"\b(se faire des amis|rencontrer (des|de nouvelles) (gens|personnes)|timidit[ée]|r[ée]seauter|mes coll[èe]gues|ma famille)\b",
        r"\b(hacer amigos|conocer gente|timidez)\b",
    ]),
    Category.CHALLENGE: compile_patterns([
        r"\b(challenge|\d+[- ]day|no sugar|no social media|cold showers?|wake up (at|early)|habit|streak|every ?day)\b",
        r"\b(d[ée]fi|sans sucre|sans r[ée]seaux sociaux|douche froide|me lever (t[ôo]t|[àa]))\b",
        r"\b(reto|desaf[ií]o|sin az[úu]car)\b",
    ]),
}


def infer_category(text: str) -> Optional[CategoryGateResult]:
    """First category whose keyword table matches, or None."""
    text = text or ""
    for category, patterns in CATEGORY_PATTERNS.items():
        match = first_match(patterns, text)
        if match:
            return CategoryGateResult(
                status="resolved",
                reason_code="keyword_match",
                confidence=0.8,
                category=category,
                source="deterministic",
                rationale=match.group(0),
            )
    return None
