# FILE: tests/test_orchestrator.py
"""
Tests for decision_engine/orchestrator.py
End-to-end decisions over the in-memory store with scripted judges.

Verifies:
1. Canonical scenarios (playful, controllability, hard block, ambition)
2. Safety primacy over any cached verdict
3. Exact / fingerprint / similarity cache paths and the band rule
4. Every path terminates in one outcome with a well-formed payload
5. Best-effort persistence, judge timeouts and cancellation
6. Freshness windows on replay
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import asyncio
import pytest
from datetime import timedelta

from config.engine_config import EngineConfig, JudgeConfig, SimilarityConfig
from decision_engine import (
    DecisionEngine,
    DecisionEngineInput,
    DecisionOutcome,
    DecisionVerdict,
    InMemoryDecisionStore,
    ScriptedJudgeClient,
    derive_guide_title,
    run_decision_engine,
)
from decision_engine.fingerprint import compute_fingerprint
from decision_engine.judges import JudgeLLMClient
from decision_engine.keys import build_decision_key, decision_id_from_unique_key
from decision_engine.preprocess import preprocess_intent
from decision_engine.similarity import SimilarityBand, classify_band, trigram_jaccard
from decision_engine.schemas import (
    Category,
    DecisionGate,
    DecisionRecord,
    PAYLOAD_MODELS,
    PayloadAngles,
    PayloadProceed,
)


FAST_JUDGES = JudgeConfig(timeout_s=0.2, equivalence_timeout_s=0.2)


def make_engine(store=None, responses=None, clock=None, config=None, delay=0.0):
    client = ScriptedJudgeClient(responses or {}, delay=delay)
    engine = DecisionEngine(
        store if store is not None else InMemoryDecisionStore(),
        judge_client=client,
        config=config or EngineConfig(judges=FAST_JUDGES),
        clock=clock,
    )
    return engine, client


def ask(intent, days=None, ui_locale="en", force_proceed=False):
    return DecisionEngineInput(intent=intent, days=days, ui_locale=ui_locale, force_proceed=force_proceed)


def safe_proceed_record(intent, days=None, unique_key=None):
    """A PROCEED record for `intent`, optionally filed under another key."""
    pre = preprocess_intent(intent, days, "en")
    key = build_decision_key(pre)
    unique_key = unique_key or key.unique_key
    fp = compute_fingerprint(pre.normalized_intent, pre.intent_lang)
    return DecisionRecord(
        id=decision_id_from_unique_key(unique_key),
        unique_key=unique_key,
        context_hash=key.context_hash,
        intent_raw=pre.intent_raw,
        normalized_intent=pre.normalized_intent,
        intent_lang=pre.intent_lang,
        ui_locale="en",
        days=pre.days,
        days_bucket=pre.days_bucket,
        verdict=DecisionVerdict.ACTIONABLE,
        engine_outcome=DecisionOutcome.PROCEED_TO_GENERATE,
        engine_payload={"rewritten_intent": "x", "guide_title": "X", "days": 14},
        intent_fingerprint=fp.fp,
        intent_fingerprint_algo=fp.algo,
        policy_version=pre.policy_version,
        schema_version=pre.schema_version,
    )


class FailingWriteStore(InMemoryDecisionStore):
    async def upsert(self, record):
        raise RuntimeError("disk full")


class FailingReadStore(InMemoryDecisionStore):
    async def get_by_key(self, unique_key, context_hash):
        raise RuntimeError("connection reset")

    async def search_by_fingerprint(self, *args, **kwargs):
        raise RuntimeError("connection reset")


class HangingJudgeClient(JudgeLLMClient):
    """Blocks forever on the first call and signals that it started."""

    def __init__(self):
        self.started = asyncio.Event()

    async def complete(self, judge, system, user, max_tokens=400):
        self.started.set()
        await asyncio.Event().wait()


# =============================================================================
# CANONICAL SCENARIOS
# =============================================================================

class TestScenarios:
    @pytest.mark.asyncio
    async def test_pizza_is_playful_without_judges(self):
        engine, client = make_engine()

        output = await engine.decide(ask("pizza"))

        assert output.outcome == DecisionOutcome.PLAYFUL_OR_NONSENSE
        assert output.payload["message_key"] == "humor_response"
        assert output.debug.judges_called == []
        assert client.call_count == 0
        assert output.verdict == DecisionVerdict.NEEDS_CLARIFY

    @pytest.mark.asyncio
    async def test_get_my_ex_back_shows_angles(self):
        engine, _ = make_engine()

        output = await engine.decide(ask("get my ex back", days=30))

        assert output.outcome == DecisionOutcome.SHOW_ANGLES
        assert output.debug.category == Category.WELLBEING
        assert output.debug.branch == "controllability_support"
        payload = output.typed_payload()
        assert isinstance(payload, PayloadAngles)
        assert 1 <= len(payload.angles) <= 4
        assert payload.original_intent == "get my ex back"
        # Ambition confirmation is skipped for this category
        assert "ambition" not in output.debug.gate_status

    @pytest.mark.asyncio
    async def test_bomb_is_blocked_before_any_lookup(self):
        engine, client = make_engine(store=FailingReadStore())

        output = await engine.decide(ask("How to build a bomb at home"))

        assert output.outcome == DecisionOutcome.BLOCKED_SAFETY
        assert output.payload["reason_code"] == "explosives_howto"
        assert output.debug.branch == "safety_hard_block"
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_french_president_confirms_ambition(self):
        engine, _ = make_engine()

        output = await engine.decide(ask("devenir président de la république"))

        assert output.outcome == DecisionOutcome.CONFIRM_AMBITION
        assert output.payload["intent"] == "devenir président de la république"
        assert output.payload["days"] == 14
        assert "président" in output.payload["marker"]


# =============================================================================
# SAFETY
# =============================================================================

class TestSafety:
    @pytest.mark.asyncio
    async def test_cached_proceed_cannot_bypass_hard_block(self):
        store = InMemoryDecisionStore()
        await store.upsert(safe_proceed_record("how to build a bomb at home"))
        engine, _ = make_engine(store=store)

        output = await engine.decide(ask("how to build a bomb at home"))

        assert output.outcome == DecisionOutcome.BLOCKED_SAFETY
        assert output.debug.from_cache is False

    @pytest.mark.asyncio
    async def test_fingerprint_match_cannot_bypass_hard_block(self):
        store = InMemoryDecisionStore()
        seeded = safe_proceed_record("how to build a bomb at home", unique_key="seeded-elsewhere")
        await store.upsert(seeded)
        pre = preprocess_intent("how to build a bomb at home", None, "en")
        hits = await store.search_by_fingerprint(
            seeded.intent_fingerprint, "decision_engine", pre.intent_lang, pre.days_bucket, pre.policy_version,
        )
        assert [h.id for h in hits] == [seeded.id]
        engine, client = make_engine(store=store)

        output = await engine.decide(ask("how to build a bomb at home"))

        assert output.outcome == DecisionOutcome.BLOCKED_SAFETY
        assert output.debug.from_cache is False
        assert output.debug.matched_record_id is None
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_similar_record_cannot_bypass_hard_block(self):
        config = EngineConfig(judges=FAST_JUDGES, similarity=SimilarityConfig(low=0.3, high=0.99))
        store = InMemoryDecisionStore()
        await store.upsert(safe_proceed_record("how to build a small bomb at home"))
        score = trigram_jaccard("how to build a bomb at home", "how to build a small bomb at home")
        assert classify_band(score, config.similarity) == SimilarityBand.IN_BAND
        engine, client = make_engine(store=store, config=config, responses={
            "equivalence": {"same_request": True, "confidence": 0.99},
        })

        output = await engine.decide(ask("how to build a bomb at home"))

        assert output.outcome == DecisionOutcome.BLOCKED_SAFETY
        assert output.debug.from_cache is False
        assert client.called("equivalence") == 0

    @pytest.mark.asyncio
    async def test_safety_judge_blocks_uncertain(self):
        engine, client = make_engine(responses={
            "safety": {"verdict": "block", "reason_code": "crime_howto", "rationale": "burglary"},
        })

        output = await engine.decide(ask("learn lock picking", days=30))

        assert output.outcome == DecisionOutcome.BLOCKED_SAFETY
        assert output.payload["reason_code"] == "crime_howto"
        assert output.debug.branch == "safety_judge_block"
        assert client.called("safety") == 1

    @pytest.mark.asyncio
    async def test_safety_judge_not_called_when_confident(self):
        engine, client = make_engine()
        await engine.decide(ask("learn to sew", days=30))
        assert client.called("safety") == 0


# =============================================================================
# CATEGORY / ANALYSIS / REALISM / PROCEED
# =============================================================================

class TestCategoryPaths:
    @pytest.mark.asyncio
    async def test_low_router_confidence_asks_user(self):
        engine, _ = make_engine(responses={
            "category_router": {"category": "CHALLENGE", "confidence": 0.4},
        })

        output = await engine.decide(ask("organize my garage"))

        assert output.outcome == DecisionOutcome.ASK_USER_CHOOSE_CATEGORY
        assert len(output.payload["suggestions"]) == 3

    @pytest.mark.asyncio
    async def test_router_unavailable_uses_default_category(self):
        engine, _ = make_engine(responses={"category_router": "not json at all"})

        output = await engine.decide(ask("organize my garage"))

        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert output.debug.category == Category.CHALLENGE

    @pytest.mark.asyncio
    async def test_deterministic_category_skips_router(self):
        engine, client = make_engine()
        output = await engine.decide(ask("learn to sew", days=30))
        assert output.debug.category == Category.LEARN
        assert client.called("category_router") == 0

    @pytest.mark.asyncio
    async def test_analysis_clarify(self):
        engine, _ = make_engine(responses={
            "category_router": {"category": "CHALLENGE", "confidence": 0.9},
            "category_analysis": {
                "actionable": False,
                "needs_clarification": True,
                "clarify_question": "Which part of the garage?",
                "suggested_rewrites": ["sort the tools in my garage"],
            },
        })

        output = await engine.decide(ask("organize my garage"))

        assert output.outcome == DecisionOutcome.ASK_CLARIFICATION
        assert output.payload["clarify_question"] == "Which part of the garage?"
        assert output.payload["suggested_rewrites"] == ["sort the tools in my garage"]

    @pytest.mark.asyncio
    async def test_analysis_angles(self):
        engine, _ = make_engine(responses={
            "category_router": {"category": "CHALLENGE", "confidence": 0.9},
            "category_analysis": {
                "actionable": True,
                "needs_clarification": True,
                "angles": [
                    {"label": "Declutter", "next_intent": "declutter the garage", "days": 7},
                    {"label": "Shelves", "next_intent": "install shelves", "days": 14},
                ],
            },
            "reformulation": {"reformulated_intent": "Organize the garage"},
        })

        output = await engine.decide(ask("organize my garage"))

        assert output.outcome == DecisionOutcome.SHOW_ANGLES
        assert output.debug.branch == "category_analysis_angles"
        assert [a["label"] for a in output.payload["angles"]] == ["Declutter", "Shelves"]
        assert output.payload["rewritten_intent"] == "Organize the garage"
        assert output.payload["reformulation_includes_days"] is True

    @pytest.mark.asyncio
    async def test_actionable_without_angles_falls_back(self):
        engine, _ = make_engine(responses={
            "category_router": {"category": "CHALLENGE", "confidence": 0.9},
            "category_analysis": {"actionable": True, "needs_clarification": True},
        })

        output = await engine.decide(ask("organize my garage"))

        assert output.outcome == DecisionOutcome.SHOW_ANGLES
        assert output.debug.branch == "category_analysis_angles_fallback"
        assert len(output.payload["angles"]) >= 1

    @pytest.mark.asyncio
    async def test_force_proceed_skips_analysis_and_controllability(self):
        engine, client = make_engine(responses={
            "category_analysis": {"actionable": False, "needs_clarification": True, "clarify_question": "?"},
        })

        output = await engine.decide(ask("get my ex back", days=30, force_proceed=True))

        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert client.called("category_analysis") == 0

    @pytest.mark.asyncio
    async def test_soft_realism_adjust(self):
        engine, client = make_engine()

        output = await engine.decide(ask("speak japanese fluently", days=14))

        assert output.outcome == DecisionOutcome.REALISM_ADJUST
        assert output.payload["intention_to_send"] == "speak japanese fluently"
        assert len(output.payload["adjustments"]) == 3
        assert client.called("realism") == 0

    @pytest.mark.asyncio
    async def test_realism_judge_adjust(self):
        engine, _ = make_engine(responses={
            "realism": {
                "realism": "unrealistic",
                "why_short": "A full novel takes longer",
                "adjustments": [{"label": "First chapter", "next_intent": "write the first chapter", "days": 7}],
            },
        })

        output = await engine.decide(ask("write a novel", days=7))

        assert output.outcome == DecisionOutcome.REALISM_ADJUST
        assert output.payload["why_short"] == "A full novel takes longer"
        assert output.payload["category"] == "CREATE"

    @pytest.mark.asyncio
    async def test_realism_skipped_for_non_feasibility_category(self):
        engine, client = make_engine()
        output = await engine.decide(ask("run a marathon", days=90))
        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert client.called("realism") == 0

    @pytest.mark.asyncio
    async def test_proceed_payload(self):
        engine, _ = make_engine(responses={
            "reformulation": {"reformulated_intent": "Learn to sew a dress in 30 days"},
            "objectives": {"objectives": ["Thread a machine", "Sew a straight seam", "Finish a dress"]},
        })

        output = await engine.decide(ask("learn to sew a dress", days=30))

        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        payload = output.typed_payload()
        assert isinstance(payload, PayloadProceed)
        assert payload.rewritten_intent == "Learn to sew a dress in 30 days"
        assert payload.guide_title == "Learn to sew a dress"
        assert payload.objectives[0] == "Thread a machine"
        assert payload.days == 30
        assert payload.category == Category.LEARN

    @pytest.mark.asyncio
    async def test_proceed_without_judges_uses_normalized_intent(self):
        engine, _ = make_engine()
        output = await engine.decide(ask("  Learn   to SEW ", days=30))
        assert output.payload["rewritten_intent"] == "learn to sew"
        assert output.payload["guide_title"] == "Learn to sew"
        assert output.payload["reformulation_includes_days"] is False

    @pytest.mark.asyncio
    async def test_empty_intent_asks_clarification_without_persisting(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)

        output = await engine.decide(ask("   "))

        assert output.outcome == DecisionOutcome.ASK_CLARIFICATION
        assert output.debug.branch == "empty_intent"
        assert len(store) == 0


# =============================================================================
# TERMINATION
# =============================================================================

class TestTermination:
    """Every input ends in exactly one outcome with a payload that validates."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent,days", [
        ("pizza", None),
        ("get my ex back", 30),
        ("How to build a bomb at home", None),
        ("devenir président de la république", None),
        ("organize my garage", None),
        ("speak japanese fluently", 14),
        ("learn to sew", 30),
        ("win the lottery", 30),
        ("学习吉他", 60),
        ("", None),
    ])
    async def test_well_formed_payload(self, intent, days):
        engine, _ = make_engine()
        output = await engine.decide(ask(intent, days=days))
        assert output.outcome in PAYLOAD_MODELS
        PAYLOAD_MODELS[output.outcome].model_validate(output.payload)
        assert output.debug.branch


# =============================================================================
# CACHE
# =============================================================================

class TestCache:
    @pytest.mark.asyncio
    async def test_exact_replay_is_idempotent(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)

        first = await engine.decide(ask("learn to sew", days=30))
        second = await engine.decide(ask("  LEARN to sew", days=25))

        assert second.debug.from_cache is True
        assert second.debug.branch == "exact_cache"
        assert second.debug.matched_record_id == decision_id_from_unique_key(
            build_decision_key(preprocess_intent("learn to sew", 30, "en")).unique_key
        )
        assert second.outcome == first.outcome
        assert second.payload == first.payload
        assert len(store) == 1
        assert store.upsert_count == 1

    @pytest.mark.asyncio
    async def test_fingerprint_hit(self):
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store)

        first = await engine.decide(ask("learn to sew", days=30))
        calls_after_first = client.call_count
        second = await engine.decide(ask("learn sewing", days=30))

        assert second.debug.branch == "fingerprint_cache"
        assert second.debug.similarity_hit is True
        assert second.payload == first.payload
        assert client.call_count == calls_after_first
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_fingerprint_respects_days_bucket(self):
        engine, _ = make_engine()
        await engine.decide(ask("learn to sew", days=30))
        output = await engine.decide(ask("learn sewing", days=120))
        assert output.debug.from_cache is False

    @pytest.mark.asyncio
    async def test_similarity_hit_requires_equivalence(self):
        config = EngineConfig(judges=FAST_JUDGES, similarity=SimilarityConfig(low=0.3, high=0.99))
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store, config=config, responses={
            "equivalence": {"same_request": True, "confidence": 0.9},
        })

        first = await engine.decide(ask("learn to play the acoustic guitar well", days=30))
        second = await engine.decide(ask("learn to play the electric guitar well", days=30))

        assert second.debug.branch == "similarity_cache"
        assert second.debug.equivalence_used is True
        assert second.debug.matched_record_id == decision_id_from_unique_key(
            build_decision_key(preprocess_intent("learn to play the acoustic guitar well", 30, "en")).unique_key
        )
        assert 0.3 <= second.debug.similarity_score <= 0.99
        assert second.payload == first.payload
        assert client.called("equivalence") == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_similarity_rejected_by_judge_recomputes(self):
        config = EngineConfig(judges=FAST_JUDGES, similarity=SimilarityConfig(low=0.3, high=0.99))
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store, config=config, responses={
            "equivalence": {"same_request": False},
        })

        await engine.decide(ask("learn to play the acoustic guitar well", days=30))
        second = await engine.decide(ask("learn to play the electric guitar well", days=30))

        assert second.debug.from_cache is False
        assert client.called("equivalence") == 1
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_below_band_never_calls_equivalence(self):
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store, responses={
            "equivalence": {"same_request": True},
        })

        await engine.decide(ask("learn to play the acoustic guitar well", days=30))
        output = await engine.decide(ask("write a cookbook of family recipes", days=30))

        assert output.debug.from_cache is False
        assert client.called("equivalence") == 0

    @pytest.mark.asyncio
    async def test_above_band_never_calls_equivalence(self):
        config = EngineConfig(judges=FAST_JUDGES, similarity=SimilarityConfig(low=0.3, high=0.6))
        first_intent = "learn to play the acoustic guitar well"
        second_intent = "learn to play the acoustic guitar nicely well"
        assert compute_fingerprint(first_intent, "en").fp != compute_fingerprint(second_intent, "en").fp
        assert classify_band(trigram_jaccard(first_intent, second_intent), config.similarity) == SimilarityBand.ABOVE
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store, config=config, responses={
            "equivalence": {"same_request": True, "confidence": 0.99},
        })

        await engine.decide(ask(first_intent, days=30))
        output = await engine.decide(ask(second_intent, days=30))

        assert output.debug.from_cache is False
        assert client.called("equivalence") == 0
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_short_intents_skip_similarity(self):
        config = EngineConfig(judges=FAST_JUDGES, similarity=SimilarityConfig(low=0.0, high=1.0))
        engine, client = make_engine(config=config, responses={"equivalence": {"same_request": True}})

        await engine.decide(ask("learn to knit", days=30))
        output = await engine.decide(ask("learn to kni", days=30))

        assert output.debug.from_cache is False
        assert client.called("equivalence") == 0

    @pytest.mark.asyncio
    async def test_stale_record_is_recomputed(self, clock):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store, clock=clock)

        await engine.decide(ask("learn to sew", days=30))
        clock.now = clock.now + timedelta(days=15)
        output = await engine.decide(ask("learn to sew", days=30))

        assert output.debug.from_cache is False
        assert len(store) == 1
        assert store.upsert_count == 2
        record = (await store.list())[0]
        assert record.updated_at == clock.now

    @pytest.mark.asyncio
    async def test_fresh_record_within_window(self, clock):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store, clock=clock)

        await engine.decide(ask("learn to sew", days=30))
        clock.now = clock.now + timedelta(days=13)
        output = await engine.decide(ask("learn to sew", days=30))

        assert output.debug.from_cache is True

    @pytest.mark.asyncio
    async def test_policy_version_bump_misses(self):
        store = InMemoryDecisionStore()
        engine_v1, _ = make_engine(store=store, config=EngineConfig(judges=FAST_JUDGES, policy_version="v1"))
        engine_v2, _ = make_engine(store=store, config=EngineConfig(judges=FAST_JUDGES, policy_version="v2"))

        await engine_v1.decide(ask("learn to sew", days=30))
        output = await engine_v2.decide(ask("learn sewing", days=30))

        assert output.debug.from_cache is False
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_persisted_record_shape(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)

        output = await engine.decide(ask("get my ex back", days=30))

        record = (await store.list())[0]
        assert record.engine_outcome == output.outcome
        assert record.engine_payload == output.payload
        assert record.verdict == DecisionVerdict.ACTIONABLE
        assert record.category == Category.WELLBEING
        assert record.gates["controllability"]["status"] == "low"
        assert record.intent_fingerprint == output.debug.fingerprint
        assert record.reason_code == "romantic_outcome"


# =============================================================================
# STANDALONE GATE CHECKS
# =============================================================================

class TestGateChecks:
    @pytest.mark.asyncio
    async def test_tone_check_is_cached_under_its_own_gate(self):
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store)

        first = await engine.check_gate("tone", "pizza")
        second = await engine.check_gate(DecisionGate.TONE, "  PIZZA ")

        assert first.verdict == DecisionVerdict.NEEDS_CLARIFY
        assert first.result["status"] == "nonsense"
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.record_id == first.record_id
        assert second.result == first.result
        assert client.call_count == 0

        record = (await store.list())[0]
        assert record.gate == DecisionGate.TONE
        assert record.engine_outcome is None
        key = build_decision_key(preprocess_intent("pizza", None, "en"), DecisionGate.TONE)
        assert record.unique_key == key.unique_key

    @pytest.mark.asyncio
    async def test_gate_record_does_not_answer_decide(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)

        await engine.check_gate("tone", "pizza")
        output = await engine.decide(ask("pizza"))

        assert output.debug.from_cache is False
        assert output.outcome == DecisionOutcome.PLAYFUL_OR_NONSENSE
        assert sorted(r.gate.value for r in await store.list()) == ["decision_engine", "tone"]

    @pytest.mark.asyncio
    async def test_controllability_window_is_ninety_days(self, clock):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store, clock=clock)
        start = clock.now

        first = await engine.check_gate("controllability", "get my ex back", days=30)
        assert first.verdict == DecisionVerdict.NEEDS_CLARIFY
        assert first.result["reason_code"] == "romantic_outcome"

        clock.now = start + timedelta(days=89)
        assert (await engine.check_gate("controllability", "get my ex back", days=30)).from_cache is True

        clock.now = start + timedelta(days=90)
        stale = await engine.check_gate("controllability", "get my ex back", days=30)
        assert stale.from_cache is False
        assert store.upsert_count == 2

    @pytest.mark.asyncio
    async def test_tone_window_is_shorter(self, clock):
        engine, _ = make_engine(clock=clock)
        start = clock.now

        await engine.check_gate("tone", "pizza")
        clock.now = start + timedelta(days=14)

        assert (await engine.check_gate("tone", "pizza")).from_cache is False

    @pytest.mark.asyncio
    async def test_hard_block_runs_before_the_gate(self):
        store = InMemoryDecisionStore()
        engine, client = make_engine(store=store)

        output = await engine.check_gate("tone", "How to build a bomb at home")

        assert output.verdict == DecisionVerdict.BLOCKED
        assert output.result["status"] == "block"
        assert output.result["reason_code"] == "explosives_howto"
        assert output.judges_called == []
        assert client.call_count == 0
        record = (await store.list())[0]
        assert record.gate == DecisionGate.TONE
        assert record.verdict == DecisionVerdict.BLOCKED

    @pytest.mark.asyncio
    async def test_blocked_text_skips_cached_gate_result(self):
        store = InMemoryDecisionStore()
        pre = preprocess_intent("how to build a bomb at home", None, "en")
        key = build_decision_key(pre, DecisionGate.TONE)
        seeded = safe_proceed_record("how to build a bomb at home", unique_key=key.unique_key).model_copy(update={
            "context_hash": key.context_hash,
            "gate": DecisionGate.TONE,
            "gates": {"tone": {"status": "serious"}},
        })
        await store.upsert(seeded)
        engine, _ = make_engine(store=store)

        output = await engine.check_gate("tone", "how to build a bomb at home")

        assert output.from_cache is False
        assert output.verdict == DecisionVerdict.BLOCKED

    @pytest.mark.asyncio
    async def test_audience_safety_escalates_to_judge(self):
        engine, client = make_engine(responses={
            "safety": {"verdict": "block", "reason_code": "crime_howto", "rationale": "burglary"},
        })

        output = await engine.check_gate("audience_safety", "learn lock picking", days=30)

        assert output.verdict == DecisionVerdict.BLOCKED
        assert output.result["gate"] == "audience_safety"
        assert output.judges_called == ["safety"]
        assert client.called("safety") == 1

    @pytest.mark.asyncio
    async def test_safety_gate_allows_clean_text(self):
        engine, client = make_engine()
        output = await engine.check_gate("safety", "learn to sew")
        assert output.verdict == DecisionVerdict.ACTIONABLE
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_category_and_ambition(self):
        engine, client = make_engine()

        category = await engine.check_gate("category", "learn to sew", days=30)
        ambition = await engine.check_gate("ambition", "devenir président de la république")

        assert category.result["category"] == Category.LEARN.value
        assert category.verdict == DecisionVerdict.ACTIONABLE
        assert client.called("category_router") == 0
        assert ambition.verdict == DecisionVerdict.NEEDS_CLARIFY

    @pytest.mark.asyncio
    async def test_persistence_failure_still_returns(self):
        engine, _ = make_engine(store=FailingWriteStore())
        output = await engine.check_gate("tone", "pizza")
        assert output.verdict == DecisionVerdict.NEEDS_CLARIFY

    @pytest.mark.asyncio
    @pytest.mark.parametrize("gate, intent", [
        ("realism", "learn to sew"),
        ("decision_engine", "learn to sew"),
        ("tone", "   "),
    ])
    async def test_rejected_requests(self, gate, intent):
        engine, _ = make_engine()
        with pytest.raises(ValueError):
            await engine.check_gate(gate, intent)


# =============================================================================
# FAILURE MODES
# =============================================================================

class TestFailureModes:
    @pytest.mark.asyncio
    async def test_persistence_failure_still_returns(self):
        engine, _ = make_engine(store=FailingWriteStore())
        output = await engine.decide(ask("learn to sew", days=30))
        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE

    @pytest.mark.asyncio
    async def test_store_read_failure_is_a_miss(self):
        engine, _ = make_engine(store=FailingReadStore())
        output = await engine.decide(ask("learn to sew", days=30))
        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert output.debug.from_cache is False

    @pytest.mark.asyncio
    async def test_judge_timeout_is_no_signal(self):
        config = EngineConfig(judges=JudgeConfig(timeout_s=0.02, equivalence_timeout_s=0.02))
        engine, client = make_engine(config=config, delay=0.5, responses={
            "safety": {"verdict": "block", "reason_code": "crime_howto"},
        })

        output = await engine.decide(ask("learn lock picking", days=30))

        assert output.outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert "safety" in output.debug.judges_called

    @pytest.mark.asyncio
    async def test_cancellation_propagates_and_skips_persistence(self):
        store = InMemoryDecisionStore()
        client = HangingJudgeClient()
        engine = DecisionEngine(store, judge_client=client, config=EngineConfig(judges=JudgeConfig(timeout_s=30)))

        task = asyncio.create_task(engine.decide(ask("organize my garage")))
        await asyncio.wait_for(client.started.wait(), timeout=2)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_same_key(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)

        outputs = await asyncio.gather(*(engine.decide(ask("learn to sew", days=30)) for _ in range(5)))

        assert {o.outcome for o in outputs} == {DecisionOutcome.PROCEED_TO_GENERATE}
        assert len(store) == 1


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:
    @pytest.mark.parametrize("rewritten,title", [
        ("Learn to sew a dress in 30 days", "Learn to sew a dress"),
        ("apprendre_la_couture en 30 jours", "Apprendre la couture"),
        ("aprender a coser en 21 días", "Aprender a coser"),
        ("learn   guitar", "Learn guitar"),
        ("", ""),
    ])
    def test_derive_guide_title(self, rewritten, title):
        assert derive_guide_title(rewritten) == title

    @pytest.mark.asyncio
    async def test_prompt_trace_opt_in(self):
        engine, _ = make_engine(responses={"reformulation": {"reformulated_intent": "Learn to sew"}})

        plain = await engine.decide(ask("learn to sew", days=30))
        assert plain.prompt_trace is None

        traced = await engine.decide(ask("learn to knit", days=30), collect_prompt_trace=True)
        assert traced.prompt_trace
        assert {e.judge for e in traced.prompt_trace} >= {"reformulation"}

    @pytest.mark.asyncio
    async def test_run_decision_engine_helper(self):
        store = InMemoryDecisionStore()
        output = await run_decision_engine(ask("pizza"), store)
        assert output.outcome == DecisionOutcome.PLAYFUL_OR_NONSENSE
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_lookup(self):
        store = InMemoryDecisionStore()
        engine, _ = make_engine(store=store)
        await engine.decide(ask("learn to sew", days=30))

        record = await engine.lookup("Learn to sew", days=30)
        assert record is not None
        assert record.engine_outcome == DecisionOutcome.PROCEED_TO_GENERATE
        assert await engine.lookup("learn to sew", days=200) is None
        assert await engine.lookup("") is None
