# FILE: decision_engine/judges/category.py
"""
Category judges:
- router: picks one category when deterministic inference found none
- analysis: per-category prompt deciding clarify vs angles vs clear
"""
from __future__ import annotations

from typing import Optional

from ..schemas import Category, CategoryAnalysisOutput, CategoryRouterOutput
from ..taxonomy import CATEGORY_DOCS, get_category_doc
from .base import JudgeRunner, build_user_prompt

ROUTER_JUDGE_NAME = "category_router"
ANALYSIS_JUDGE_NAME = "category_analysis"


def _category_list() -> str:
    return "\n".join(f"- {c.value}: {doc.description}" for c, doc in CATEGORY_DOCS.items())


ROUTER_SYSTEM_PROMPT = """You route a user's goal to exactly one category.

CATEGORIES:
{category_list}

If no category fits well, still pick the closest one and lower the confidence.

Respond with JSON only:
{{"category": "<CATEGORY>", "subcategory": "<optional short tag>", "confidence": <0.0-1.0>, "rationale": "<short English>"}}"""


ANALYSIS_SYSTEM_PROMPT = """You analyse a user's goal in the category {category}: {description}

Decide:
- actionable: can a concrete plan be built from this goal as written?
- needs_clarification: is a key detail missing? If so, ask ONE short question
  in the user's language (clarify_question).
- angles: if the goal is broad or depends on others, up to 4 concrete
  reframings the user controls: {{"label", "next_intent", "days"}}.
- suggested_rewrites: up to 3 clearer phrasings of the goal.

Respond with JSON only:
{{"actionable": bool, "needs_clarification": bool, "clarify_question": str|null,
  "angles": [...], "suggested_rewrites": [...], "notes": "<short English>"}}"""


async def route_category(runner: JudgeRunner, intent: str, intent_lang: str) -> Optional[CategoryRouterOutput]:
    system = ROUTER_SYSTEM_PROMPT.format(category_list=_category_list())
    user = build_user_prompt("Route this goal.", {"intent": intent, "intent_lang": intent_lang})
    return await runner.run(ROUTER_JUDGE_NAME, system, user, CategoryRouterOutput)


async def analyze_category(
    runner: JudgeRunner,
    intent: str,
    category: Category,
    days: int,
    intent_lang: str,
    ui_locale: str,
) -> Optional[CategoryAnalysisOutput]:
    doc = get_category_doc(category)
    system = ANALYSIS_SYSTEM_PROMPT.format(category=doc.category.value, description=doc.description)
    user = build_user_prompt(
        "Analyse this goal.",
        {"intent": intent, "days": days, "intent_lang": intent_lang, "ui_locale": ui_locale},
    )
    return await runner.run(ANALYSIS_JUDGE_NAME, system, user, CategoryAnalysisOutput)
