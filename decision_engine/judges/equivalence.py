# FILE: decision_engine/judges/equivalence.py
"""
Equivalence judge: arbitrates in-band similarity matches.

A similarity score in [low, high] is necessary but not sufficient; the
cached decision is reused only when this judge says same_request=true.
"""
from __future__ import annotations

from typing import Optional

from ..schemas import EquivalenceOutput
from .base import JudgeRunner, build_user_prompt

JUDGE_NAME = "equivalence"

EQUIVALENCE_SYSTEM_PROMPT = """You decide whether two user goals are the SAME request,
i.e. the same plan would serve both. Different durations do not matter. Different
objects, audiences or levels do ("learn guitar" != "learn bass guitar").

Respond with JSON only:
{"same_request": true | false, "confidence": <0.0-1.0>, "reason": "<short English>"}"""


async def judge_equivalence(
    runner: JudgeRunner,
    intent: str,
    candidate_intent: str,
    intent_lang: str,
) -> Optional[EquivalenceOutput]:
    user = build_user_prompt(
        "Are these the same request?",
        {"intent_a": intent, "intent_b": candidate_intent, "intent_lang": intent_lang},
    )
    return await runner.run(
        JUDGE_NAME,
        EQUIVALENCE_SYSTEM_PROMPT,
        user,
        EquivalenceOutput,
        timeout=runner.config.equivalence_timeout_s,
    )
