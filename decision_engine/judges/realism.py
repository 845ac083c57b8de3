# FILE: decision_engine/judges/realism.py
"""
Realism judge. Runs only for feasibility categories, after the
deterministic soft-realism check was inconclusive.
"""
from __future__ import annotations

from typing import Optional

from ..schemas import Category, RealismOutput
from .base import JudgeRunner, build_user_prompt

JUDGE_NAME = "realism"

REALISM_SYSTEM_PROMPT = """You assess whether a goal is realistic in the given number of days
for a motivated beginner practising about 30-60 minutes a day.

- ok: achievable
- stretch: ambitious but possible
- unrealistic: not achievable; propose up to 3 adjustments, each a smaller goal
  or a longer duration: {"label": "<short>", "next_intent": "<goal>", "days": <int>}

Respond with JSON only:
{"realism": "ok" | "stretch" | "unrealistic", "why_short": "<short, user's language>", "adjustments": [...]}"""


async def judge_realism(
    runner: JudgeRunner,
    intent: str,
    days: int,
    category: Category,
    intent_lang: str,
) -> Optional[RealismOutput]:
    user = build_user_prompt(
        "Assess the realism of this goal.",
        {"intent": intent, "days": days, "category": category.value, "intent_lang": intent_lang},
    )
    return await runner.run(JUDGE_NAME, REALISM_SYSTEM_PROMPT, user, RealismOutput)
