# FILE: decision_engine/judges/safety.py
"""
Safety judge. Only called when the deterministic audience gate is uncertain.
"""
from __future__ import annotations

from typing import Optional

from ..schemas import SafetyJudgeOutput
from .base import JudgeRunner, build_user_prompt

JUDGE_NAME = "safety"

SAFETY_SYSTEM_PROMPT = """You are a content-safety classifier for a goal-planning app.
Given a user's goal, decide whether the app may build a step-by-step plan for it.

Block: instructions for violence, weapons or explosives, self-harm, sexual content
involving minors, sexual violence, serious crime. Allow everything else, including
sensitive but legitimate goals (recovery, safety training, adult hobbies).
If genuinely unsure, answer "uncertain".

Respond with JSON only:
{"verdict": "allow" | "block" | "uncertain", "reason_code": "<snake_case>", "rationale": "<short English>"}"""


async def judge_safety(runner: JudgeRunner, intent: str, intent_lang: str) -> Optional[SafetyJudgeOutput]:
    user = build_user_prompt(
        "Classify the safety of this goal.",
        {"intent": intent, "intent_lang": intent_lang},
    )
    return await runner.run(JUDGE_NAME, SAFETY_SYSTEM_PROMPT, user, SafetyJudgeOutput)
