# FILE: decision_engine/judges/reformulation.py
"""
Reformulation and objectives-preview judges.

Both only enrich a payload that is already decided (angles or proceed);
a None result falls back to the normalized intent and an empty preview.
"""
from __future__ import annotations

from typing import Optional

from ..schemas import Category, ObjectivesOutput, ReformulationOutput
from .base import JudgeRunner, build_user_prompt

REFORMULATION_JUDGE_NAME = "reformulation"
OBJECTIVES_JUDGE_NAME = "objectives"

REFORMULATION_SYSTEM_PROMPT = """Rewrite the user's goal as one short, clear, positive
sentence in the user's language, starting with a verb. Keep the meaning. Do not add
a duration unless the user wrote one.

Respond with JSON only:
{"reformulated_intent": "<sentence>"}"""

OBJECTIVES_SYSTEM_PROMPT = """List up to 3 concrete, measurable objectives a plan for this
goal would reach by the end of the given number of days, in the user's language.

Respond with JSON only:
{"objectives": ["<objective>", ...]}"""


async def reformulate_intent(
    runner: JudgeRunner,
    intent: str,
    days: int,
    intent_lang: str,
    ui_locale: str,
) -> Optional[ReformulationOutput]:
    user = build_user_prompt(
        "Reformulate this goal.",
        {"intent": intent, "days": days, "intent_lang": intent_lang, "ui_locale": ui_locale},
    )
    return await runner.run(REFORMULATION_JUDGE_NAME, REFORMULATION_SYSTEM_PROMPT, user, ReformulationOutput)


async def preview_objectives(
    runner: JudgeRunner,
    intent: str,
    days: int,
    category: Category,
    intent_lang: str,
) -> Optional[ObjectivesOutput]:
    user = build_user_prompt(
        "List the objectives.",
        {"intent": intent, "days": days, "category": category.value, "intent_lang": intent_lang},
    )
    return await runner.run(OBJECTIVES_JUDGE_NAME, OBJECTIVES_SYSTEM_PROMPT, user, ObjectivesOutput)
