# FILE: decision_engine/judges/__init__.py
"""
External judges: asynchronous, timeout-bounded classifiers invoked only when
deterministic signals are insufficient. Every judge returns a typed result
or None ("no signal").
"""

from .clients import (
    JudgeLLMClient,
    OpenAIJudgeClient,
    NullJudgeClient,
    ScriptedJudgeClient,
    get_judge_client,
)
from .base import JudgeRunner, parse_judge_output, build_user_prompt
from .safety import judge_safety
from .category import route_category, analyze_category
from .equivalence import judge_equivalence
from .realism import judge_realism
from .reformulation import reformulate_intent, preview_objectives

__all__ = [
    "JudgeLLMClient",
    "OpenAIJudgeClient",
    "NullJudgeClient",
    "ScriptedJudgeClient",
    "get_judge_client",
    "JudgeRunner",
    "parse_judge_output",
    "build_user_prompt",
    "judge_safety",
    "route_category",
    "analyze_category",
    "judge_equivalence",
    "judge_realism",
    "reformulate_intent",
    "preview_objectives",
]
