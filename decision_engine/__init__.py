# FILE: decision_engine/__init__.py
"""
Decision Engine

Classifies a free-text intent (plus duration and UI locale) into exactly one
terminal outcome with a typed payload, and persists the decision for reuse.

Usage:
    from decision_engine import DecisionEngine, DecisionEngineInput, InMemoryDecisionStore

    engine = DecisionEngine(InMemoryDecisionStore())
    output = await engine.decide(DecisionEngineInput(intent="learn to play guitar", days=30))
    output.outcome  # DecisionOutcome.PROCEED_TO_GENERATE
"""

from .schemas import (
    DecisionOutcome,
    DecisionVerdict,
    DecisionGate,
    Category,
    DecisionEngineInput,
    EngineOutput,
    GateCheckOutput,
    DecisionDebug,
    DecisionRecord,
    DecisionSearch,
    Angle,
)
from .preprocess import preprocess_intent, infer_language, normalize_intent
from .keys import build_decision_key
from .fingerprint import compute_fingerprint
from .similarity import trigram_jaccard, classify_band, SimilarityBand
from .store import DecisionStore, InMemoryDecisionStore, SqlDecisionStore
from .judges import JudgeLLMClient, OpenAIJudgeClient, NullJudgeClient, ScriptedJudgeClient
from .orchestrator import DecisionEngine, STANDALONE_GATES, run_decision_engine, derive_guide_title

__all__ = [
    "DecisionOutcome",
    "DecisionVerdict",
    "DecisionGate",
    "Category",
    "DecisionEngineInput",
    "EngineOutput",
    "GateCheckOutput",
    "DecisionDebug",
    "DecisionRecord",
    "DecisionSearch",
    "Angle",
    "preprocess_intent",
    "infer_language",
    "normalize_intent",
    "build_decision_key",
    "compute_fingerprint",
    "trigram_jaccard",
    "classify_band",
    "SimilarityBand",
    "DecisionStore",
    "InMemoryDecisionStore",
    "SqlDecisionStore",
    "JudgeLLMClient",
    "OpenAIJudgeClient",
    "NullJudgeClient",
    "ScriptedJudgeClient",
    "DecisionEngine",
    "STANDALONE_GATES",
    "run_decision_engine",
    "derive_guide_title",
]
