# FILE: decision_engine/orchestrator.py
"""
Decision Engine orchestrator.

One ordered, short-circuiting pass per request:

    preprocess
    -> hard safety block (normalized intent, before any cache or judge I/O)
    -> exact cache -> fingerprint cache -> similarity cache (equivalence judge)
    -> audience safety -> safety judge (uncertain only)
    -> tone -> category (inference, then router judge) -> ambition
    -> category analysis (clarify / angles) -> controllability fallback
    -> realism (soft, then judge; feasibility categories only) -> proceed

Every terminal branch persists a DecisionRecord under the pre-category
decision_engine key. Persistence is best-effort: write errors are logged and
swallowed. Cancellation propagates and skips persistence. Cache replays are
returned as-is and not rewritten.

check_gate() runs a single gate (safety, audience safety, tone, category,
ambition, controllability) outside the pipeline and caches it under that
gate's own key, so the per-gate freshness windows apply.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from config.engine_config import EngineConfig, ThresholdConfig, get_engine_config
from .fingerprint import compute_fingerprint
from .gates import (
    assess_audience_safety,
    assess_soft_realism,
    check_ambition,
    check_hard_block,
    detect_controllability,
    detect_tone,
    infer_category,
    tone_is_decisive,
)
from .judges import (
    JudgeLLMClient,
    JudgeRunner,
    NullJudgeClient,
    analyze_category,
    judge_equivalence,
    judge_realism,
    judge_safety,
    preview_objectives,
    reformulate_intent,
    route_category,
)
from .keys import build_decision_key, decision_id_from_unique_key
from .preprocess import preprocess_intent
from .schemas import (
    AmbitionGateResult,
    Angle,
    CacheKey,
    Category,
    CategoryGateResult,
    ControllabilityGateResult,
    ControllabilityLevel,
    DecisionDebug,
    DecisionEngineInput,
    DecisionGate,
    DecisionOutcome,
    DecisionRecord,
    DecisionSearch,
    DecisionVerdict,
    EngineOutput,
    FingerprintResult,
    GateCheckOutput,
    GateResult,
    PayloadAngles,
    PayloadBlocked,
    PayloadChooseCategory,
    PayloadClarify,
    PayloadConfirmAmbition,
    PayloadPlayfulOrNonsense,
    PayloadProceed,
    PayloadRealismAdjust,
    PreprocessedInput,
    RealismGateResult,
    RealismLevel,
    SafetyGateResult,
    SafetyJudgeOutput,
    SafetyReason,
    SafetyStatus,
    ToneGateResult,
    ToneLabel,
    verdict_for_outcome,
)
from .similarity import SimilarityBand, classify_band, similarity_eligible, trigram_jaccard
from .store import DecisionStore, is_record_fresh
from .taxonomy import category_suggestions, default_angles, get_category_doc

logger = logging.getLogger(__name__)

ENGINE_GATE = DecisionGate.DECISION_ENGINE

# Message keys resolved by the localization layer
ANGLES_PRIMARY_KEY = "controllabilitySupportTitle"
ANGLES_SECONDARY_KEY = "controllabilitySupportBody"
CLARIFY_EMPTY_KEY = "clarifyEmptyIntent"

_DAY_SUFFIX_RE = re.compile(
    r"\s+(?:en|in|dans|within)\s+\d+\s+(?:jours?|days?|d[ií]as|tagen?|giorni)\s*$",
    re.IGNORECASE,
)


def derive_guide_title(rewritten_intent: str) -> str:
    """Short guide-style title: strip a trailing day suffix, capitalize."""
    title = (rewritten_intent or "").strip()
    title = _DAY_SUFFIX_RE.sub("", title)
    title = re.sub(r"\s+", " ", title.replace("_", " ")).strip()
    if not title:
        return (rewritten_intent or "").strip()
    return title[0].upper() + title[1:]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _code(value: Any) -> Optional[str]:
    return getattr(value, "value", value)


# Gates that can run on their own, each cached under its own key and window
STANDALONE_GATES = (
    DecisionGate.SAFETY,
    DecisionGate.AUDIENCE_SAFETY,
    DecisionGate.TONE,
    DecisionGate.CATEGORY,
    DecisionGate.AMBITION,
    DecisionGate.CONTROLLABILITY,
)


def gate_verdict(result: GateResult, thresholds: ThresholdConfig) -> DecisionVerdict:
    """Coarse verdict persisted for a standalone gate result."""
    if isinstance(result, SafetyGateResult):
        if result.status == SafetyStatus.BLOCK:
            return DecisionVerdict.BLOCKED
        if result.status == SafetyStatus.UNCERTAIN:
            return DecisionVerdict.NEEDS_CLARIFY
        return DecisionVerdict.ACTIONABLE
    if isinstance(result, ToneGateResult):
        if result.status == ToneLabel.SERIOUS:
            return DecisionVerdict.ACTIONABLE
        return DecisionVerdict.NEEDS_CLARIFY
    if isinstance(result, AmbitionGateResult):
        return DecisionVerdict.NEEDS_CLARIFY if result.requires_confirmation else DecisionVerdict.ACTIONABLE
    if isinstance(result, ControllabilityGateResult):
        if (
            result.status == ControllabilityLevel.LOW
            and result.confidence >= thresholds.controllability_min_confidence
        ):
            return DecisionVerdict.NEEDS_CLARIFY
        return DecisionVerdict.ACTIONABLE
    if isinstance(result, CategoryGateResult) and result.status == "ambiguous":
        return DecisionVerdict.NEEDS_CLARIFY
    return DecisionVerdict.ACTIONABLE


def _fold_safety_judge(audience: SafetyGateResult, judged: SafetyJudgeOutput) -> SafetyGateResult:
    """Safety judge verdict on top of an uncertain audience result."""
    return SafetyGateResult(
        status=judged.verdict,
        reason_code=SafetyReason.JUDGE_BLOCK if judged.verdict == SafetyStatus.BLOCK else audience.reason_code,
        level=audience.level,
        confidence=0.8,
        rationale=f"{judged.reason_code}: {judged.rationale or ''}".strip(),
    )


@dataclass
class _RunContext:
    """Per-request state. Never shared across requests."""
    request: DecisionEngineInput
    pre: PreprocessedInput
    key: CacheKey
    fingerprint: FingerprintResult
    runner: JudgeRunner
    gates: Dict[str, GateResult] = field(default_factory=dict)
    category: Optional[Category] = None
    tone: Optional[ToneLabel] = None
    reformulation: Optional[str] = None
    reformulation_done: bool = False

    @property
    def text(self) -> str:
        return self.pre.normalized_intent

    def add_gate(self, result: GateResult, name: Optional[str] = None) -> None:
        self.gates[name or result.gate.value] = result


class DecisionEngine:
    """
    Multi-stage decision engine.

    Usage:
        engine = DecisionEngine(InMemoryDecisionStore(), judge_client=OpenAIJudgeClient())
        output = await engine.decide(DecisionEngineInput(intent="learn to sew", days=30))
    """

    def __init__(
        self,
        store: DecisionStore,
        judge_client: Optional[JudgeLLMClient] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.judge_client = judge_client or NullJudgeClient()
        self.config = config or get_engine_config()
        self._clock = clock or _utcnow

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def decide(
        self,
        request: DecisionEngineInput,
        collect_prompt_trace: bool = False,
    ) -> EngineOutput:
        """Run the pipeline once and return exactly one of the eight outcomes."""
        pre = preprocess_intent(request.intent, request.days, request.ui_locale, self.config)
        ctx = _RunContext(
            request=request,
            pre=pre,
            key=build_decision_key(pre, ENGINE_GATE),
            fingerprint=compute_fingerprint(pre.normalized_intent, pre.intent_lang),
            runner=JudgeRunner(self.judge_client, self.config.judges, collect_trace=collect_prompt_trace),
        )

        # Empty input has no meaningful key: answer without store I/O
        if not pre.normalized_intent:
            logger.debug("[decision_engine] empty intent")
            return self._output(
                ctx,
                DecisionOutcome.ASK_CLARIFICATION,
                PayloadClarify(clarify_question=CLARIFY_EMPTY_KEY),
                branch="empty_intent",
                reason_code="empty_intent",
            )

        return await self._run(ctx)

    async def lookup(
        self,
        intent: str,
        days: Optional[float] = None,
        ui_locale: str = "en",
    ) -> Optional[DecisionRecord]:
        """Cached record for the pre-category key of this intent, fresh or not."""
        pre = preprocess_intent(intent, days, ui_locale, self.config)
        if not pre.normalized_intent:
            return None
        key = build_decision_key(pre, ENGINE_GATE)
        return await self.store.get_by_key(key.unique_key, key.context_hash)

    async def search(self, filters: DecisionSearch) -> List[DecisionRecord]:
        return await self.store.search(filters)

    async def check_gate(
        self,
        gate: Union[DecisionGate, str],
        intent: str,
        days: Optional[float] = None,
        ui_locale: str = "en",
    ) -> GateCheckOutput:
        """
        Run one gate on its own.

        The result is cached under build_decision_key(pre, gate) and reused
        while fresh for that gate's window. The hard block still runs first:
        blocked text skips the cache, never reaches another gate or a judge,
        and is stored as a BLOCKED verdict for the requested gate.

        Raises ValueError for a gate without a standalone check or an empty
        intent.
        """
        gate = DecisionGate(gate)
        if gate not in STANDALONE_GATES:
            raise ValueError(f"Gate has no standalone check: {gate.value}")
        pre = preprocess_intent(intent, days, ui_locale, self.config)
        if not pre.normalized_intent:
            raise ValueError("Intent is empty")

        key = build_decision_key(pre, gate)
        runner = JudgeRunner(self.judge_client, self.config.judges)

        result = check_hard_block(pre.normalized_intent)
        if result is None:
            try:
                record = await self.store.get_by_key(key.unique_key, key.context_hash)
            except Exception as e:
                logger.warning(f"[decision_engine] {gate.value} lookup failed, treating as miss: {e}")
                record = None
            if record is not None and gate.value in record.gates and self._is_fresh(record, self._clock()):
                logger.debug(f"[decision_engine] {gate.value} cache hit {record.id}")
                return GateCheckOutput(
                    gate=gate,
                    verdict=record.verdict,
                    result=dict(record.gates[gate.value]),
                    from_cache=True,
                    record_id=record.id,
                )
            result = await self._run_gate(gate, pre, runner)

        verdict = gate_verdict(result, self.config.thresholds)
        result_dict = result.model_dump(mode="json")
        record = self._new_record(
            pre,
            key,
            gate=gate,
            category=getattr(result, "category", None),
            gates={gate.value: result_dict},
            verdict=verdict,
            reason_code=_code(result.reason_code),
        )
        logger.info(f"[decision_engine] gate={gate.value} verdict={verdict.value} reason={record.reason_code}")
        try:
            await self.store.upsert(record)
        except Exception as e:
            logger.warning(f"[decision_engine] persist failed for {gate.value} {key.unique_key[:12]}: {e}")

        return GateCheckOutput(
            gate=gate,
            verdict=verdict,
            result=result_dict,
            record_id=record.id,
            judges_called=list(runner.calls),
        )

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def _run(self, ctx: _RunContext) -> EngineOutput:
        thresholds = self.config.thresholds
        request, pre = ctx.request, ctx.pre

        # 1) Hard safety block: first, so no cached verdict can bypass it
        hard = check_hard_block(ctx.text)
        if hard is not None:
            ctx.add_gate(hard)
            return await self._finish(
                ctx,
                DecisionOutcome.BLOCKED_SAFETY,
                PayloadBlocked(reason_code=hard.reason_code.value),
                branch="safety_hard_block",
                reason_code=hard.reason_code.value,
            )

        # 2) Caches: exact -> fingerprint -> similarity
        cached = await self._lookup_cache(ctx)
        if cached is not None:
            return cached

        # 3) Audience safety, then the judge only when uncertain
        audience = assess_audience_safety(ctx.text, thresholds.audience_local_confidence)
        ctx.add_gate(audience)
        if audience.status == SafetyStatus.UNCERTAIN:
            judged = await judge_safety(ctx.runner, ctx.text, pre.intent_lang)
            if judged is not None:
                ctx.add_gate(_fold_safety_judge(audience, judged))
                if judged.verdict == SafetyStatus.BLOCK:
                    return await self._finish(
                        ctx,
                        DecisionOutcome.BLOCKED_SAFETY,
                        PayloadBlocked(reason_code=judged.reason_code),
                        branch="safety_judge_block",
                        reason_code=judged.reason_code,
                    )

        # 4) Tone
        tone = detect_tone(ctx.text, pre.intent_lang)
        ctx.add_gate(tone)
        ctx.tone = tone.status
        if tone_is_decisive(tone, thresholds.tone_min_confidence):
            return await self._finish(
                ctx,
                DecisionOutcome.PLAYFUL_OR_NONSENSE,
                PayloadPlayfulOrNonsense(tone=tone.status, reason_code=tone.reason_code.value),
                branch="tone_playful_nonsense",
                reason_code=tone.reason_code.value,
            )

        # 5) Category
        category_result = await self._resolve_category(ctx.text, ctx.runner, pre.intent_lang)
        ctx.add_gate(category_result)
        ctx.category = category_result.category
        if category_result.status == "ambiguous":
            return await self._finish(
                ctx,
                DecisionOutcome.ASK_USER_CHOOSE_CATEGORY,
                PayloadChooseCategory(suggestions=category_suggestions(thresholds.category_suggestions)),
                branch="category_low_confidence",
                reason_code=category_result.reason_code,
            )
        doc = get_category_doc(ctx.category)

        # 6) Ambition (skipped for categories routed to the angle support path)
        if not doc.skip_ambition_confirmation:
            ambition = check_ambition(ctx.text)
            ctx.add_gate(ambition)
            if ambition.requires_confirmation:
                return await self._finish(
                    ctx,
                    DecisionOutcome.CONFIRM_AMBITION,
                    PayloadConfirmAmbition(intent=request.intent, days=pre.days, marker=ambition.marker),
                    branch="ambition_confirm",
                    reason_code=ambition.reason_code.value,
                )

        # 7) Category analysis: clarify, or angles unless the intent is already clear
        if not request.force_proceed:
            analysis = await analyze_category(
                ctx.runner, ctx.text, ctx.category, pre.days, pre.intent_lang, pre.ui_locale,
            )
            if analysis is not None:
                ctx.add_gate(GateResult(
                    gate=DecisionGate.CATEGORY_ANALYSIS,
                    status="clear" if analysis.intent_clear else (
                        "clarify" if analysis.needs_clarification else
                        "actionable" if analysis.actionable else "not_actionable"
                    ),
                    reason_code="judge",
                    confidence=0.7,
                    rationale=analysis.notes,
                ))
                if analysis.needs_clarification and analysis.clarify_question:
                    return await self._finish(
                        ctx,
                        DecisionOutcome.ASK_CLARIFICATION,
                        PayloadClarify(
                            clarify_question=analysis.clarify_question,
                            suggested_rewrites=analysis.suggested_rewrites,
                        ),
                        branch="category_analysis_clarify",
                    )
                if analysis.actionable and not analysis.intent_clear:
                    if analysis.angles:
                        return await self._finish_angles(
                            ctx, analysis.angles, branch="category_analysis_angles",
                        )
                    return await self._finish_angles(
                        ctx, self._default_angles(ctx), branch="category_analysis_angles_fallback",
                    )

        # 8) Controllability fallback
        ctrl = detect_controllability(ctx.text, ctx.category)
        ctx.add_gate(ctrl)
        if (
            ctrl.status == ControllabilityLevel.LOW
            and ctrl.confidence >= thresholds.controllability_min_confidence
            and not request.force_proceed
        ):
            return await self._finish_angles(
                ctx,
                self._default_angles(ctx),
                branch="controllability_support",
                reason_code=ctrl.reason_code.value,
            )

        # 9) Realism (feasibility categories only)
        realism = None
        if doc.requires_feasibility_eval:
            realism = await self._assess_realism(ctx)
            if realism is not None:
                ctx.add_gate(realism)
                if realism.status == RealismLevel.UNREALISTIC and realism.adjustments:
                    return await self._finish(
                        ctx,
                        DecisionOutcome.REALISM_ADJUST,
                        PayloadRealismAdjust(
                            why_short=realism.why_short,
                            adjustments=realism.adjustments,
                            intention_to_send=request.intent,
                            days=pre.days,
                            category=ctx.category,
                        ),
                        branch="realism_adjust",
                        reason_code=realism.reason_code,
                    )

        # 10) Proceed
        rewritten, from_judge = await self._rewritten_intent(ctx)
        objectives = await preview_objectives(ctx.runner, ctx.text, pre.days, ctx.category, pre.intent_lang)
        payload = PayloadProceed(
            rewritten_intent=rewritten,
            reformulation_includes_days=from_judge,
            guide_title=derive_guide_title(rewritten),
            objectives=objectives.objectives if objectives else [],
            days=pre.days,
            category=ctx.category,
            realism_acknowledged=realism is not None and realism.status == RealismLevel.STRETCH,
        )
        return await self._finish(ctx, DecisionOutcome.PROCEED_TO_GENERATE, payload, branch="proceed")

    # =========================================================================
    # STAGES
    # =========================================================================

    async def _lookup_cache(self, ctx: _RunContext) -> Optional[EngineOutput]:
        pre, sim = ctx.pre, self.config.similarity
        now = self._clock()

        try:
            record = await self.store.get_by_key(ctx.key.unique_key, ctx.key.context_hash)
        except Exception as e:
            logger.warning(f"[decision_engine] exact lookup failed, treating as miss: {e}")
            record = None
        if record is not None and self._is_fresh(record, now):
            return self._replay(ctx, record, branch="exact_cache")

        if ctx.fingerprint.fp:
            try:
                candidates = await self.store.search_by_fingerprint(
                    ctx.fingerprint.fp,
                    ENGINE_GATE.value,
                    pre.intent_lang,
                    pre.days_bucket,
                    pre.policy_version,
                    limit=sim.fingerprint_limit,
                )
            except Exception as e:
                logger.warning(f"[decision_engine] fingerprint lookup failed, treating as miss: {e}")
                candidates = []
            for candidate in candidates:
                if self._is_fresh(candidate, now):
                    return self._replay(ctx, candidate, branch="fingerprint_cache", similarity_hit=True)

        if not similarity_eligible(ctx.text, sim):
            return None

        try:
            candidates = await self.store.search_similarity_candidates(
                pre.intent_lang, ENGINE_GATE.value, limit=sim.candidate_limit,
            )
        except Exception as e:
            logger.warning(f"[decision_engine] similarity scan failed, treating as miss: {e}")
            return None

        in_band: List[Tuple[float, DecisionRecord]] = []
        for candidate in candidates:
            if candidate.unique_key == ctx.key.unique_key:
                continue
            if candidate.policy_version != pre.policy_version or candidate.days_bucket != pre.days_bucket:
                continue
            if not self._is_fresh(candidate, now):
                continue
            score = trigram_jaccard(ctx.text, candidate.normalized_intent)
            if classify_band(score, sim) == SimilarityBand.IN_BAND:
                in_band.append((score, candidate))

        in_band.sort(key=lambda pair: pair[0], reverse=True)
        for score, candidate in in_band[:sim.equivalence_max_calls]:
            verdict = await judge_equivalence(ctx.runner, ctx.text, candidate.normalized_intent, pre.intent_lang)
            if verdict is not None and verdict.same_request:
                return self._replay(
                    ctx,
                    candidate,
                    branch="similarity_cache",
                    similarity_hit=True,
                    equivalence_used=True,
                    similarity_score=round(score, 4),
                )
            logger.debug(f"[decision_engine] similarity candidate {candidate.id} not confirmed ({score:.3f})")

        return None

    async def _resolve_category(self, text: str, runner: JudgeRunner, intent_lang: str) -> CategoryGateResult:
        inferred = infer_category(text)
        if inferred is not None:
            return inferred

        routed = await route_category(runner, text, intent_lang)
        if routed is None:
            return CategoryGateResult(
                status="defaulted",
                reason_code="router_unavailable",
                confidence=0.0,
                category=Category(self.config.default_category),
                source="default",
            )
        if routed.confidence < self.config.thresholds.category_min_confidence:
            return CategoryGateResult(
                status="ambiguous",
                reason_code="low_confidence",
                confidence=routed.confidence,
                category=routed.category,
                source="judge",
                rationale=routed.rationale,
            )
        return CategoryGateResult(
            status="resolved",
            reason_code="router",
            confidence=routed.confidence,
            category=routed.category,
            source="judge",
            rationale=routed.rationale,
        )

    async def _run_gate(self, gate: DecisionGate, pre: PreprocessedInput, runner: JudgeRunner) -> GateResult:
        """Standalone gate body. The hard block has already passed."""
        text, thresholds = pre.normalized_intent, self.config.thresholds

        if gate == DecisionGate.SAFETY:
            return SafetyGateResult(status=SafetyStatus.ALLOW, reason_code=SafetyReason.NO_RISK_SIGNAL, confidence=1.0)
        if gate == DecisionGate.AUDIENCE_SAFETY:
            audience = assess_audience_safety(text, thresholds.audience_local_confidence)
            if audience.status != SafetyStatus.UNCERTAIN:
                return audience
            judged = await judge_safety(runner, text, pre.intent_lang)
            if judged is None:
                return audience
            return _fold_safety_judge(audience, judged).model_copy(update={"gate": DecisionGate.AUDIENCE_SAFETY})
        if gate == DecisionGate.TONE:
            return detect_tone(text, pre.intent_lang)
        if gate == DecisionGate.CATEGORY:
            return await self._resolve_category(text, runner, pre.intent_lang)
        if gate == DecisionGate.AMBITION:
            return check_ambition(text)
        return detect_controllability(text)

    async def _assess_realism(self, ctx: _RunContext) -> Optional[RealismGateResult]:
        pre = ctx.pre
        soft = assess_soft_realism(ctx.text, pre.days, pre.intent_lang)
        if soft is not None and soft.status == RealismLevel.UNREALISTIC:
            return soft

        judged = await judge_realism(ctx.runner, ctx.text, pre.days, ctx.category, pre.intent_lang)
        if judged is None:
            return soft
        return RealismGateResult(
            status=judged.realism,
            reason_code="judge",
            confidence=0.7,
            why_short=judged.why_short,
            adjustments=judged.adjustments,
        )

    async def _rewritten_intent(self, ctx: _RunContext) -> Tuple[str, bool]:
        """Reformulation judge, called at most once and only when a payload needs it."""
        if not ctx.reformulation_done:
            ctx.reformulation_done = True
            result = await reformulate_intent(
                ctx.runner, ctx.request.intent, ctx.pre.days, ctx.pre.intent_lang, ctx.pre.ui_locale,
            )
            if result is not None and result.reformulated_intent.strip():
                ctx.reformulation = result.reformulated_intent.strip()
        if ctx.reformulation:
            return ctx.reformulation, True
        return ctx.pre.normalized_intent or ctx.request.intent, False

    def _default_angles(self, ctx: _RunContext) -> List[Angle]:
        return default_angles(
            ctx.category or Category(self.config.default_category),
            ctx.pre.ui_locale,
            ctx.request.intent,
            ctx.pre.days,
            ctx.pre.intent_lang,
        )

    # =========================================================================
    # OUTPUT / PERSISTENCE
    # =========================================================================

    def _is_fresh(self, record: DecisionRecord, now: datetime) -> bool:
        return is_record_fresh(record.updated_at, record.gate, record.verdict, now, self.config.freshness)

    def _replay(self, ctx: _RunContext, record: DecisionRecord, branch: str, **debug: Any) -> EngineOutput:
        logger.debug(f"[decision_engine] {branch} hit {record.id}")
        return EngineOutput(
            outcome=record.engine_outcome,
            payload=dict(record.engine_payload),
            debug=DecisionDebug(
                branch=branch,
                category=record.category,
                gate_status={name: str(g.get("status")) for name, g in record.gates.items()},
                policy_version=ctx.pre.policy_version,
                from_cache=True,
                matched_record_id=record.id,
                fingerprint=ctx.fingerprint.fp or None,
                reason_code=record.reason_code,
                judges_called=list(ctx.runner.calls),
                **debug,
            ),
            prompt_trace=ctx.runner.trace,
        )

    def _output(
        self,
        ctx: _RunContext,
        outcome: DecisionOutcome,
        payload: Union[BaseModel, Dict[str, Any]],
        branch: str,
        reason_code: Optional[str] = None,
    ) -> EngineOutput:
        payload_dict = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else dict(payload)
        return EngineOutput(
            outcome=outcome,
            payload=payload_dict,
            debug=DecisionDebug(
                branch=branch,
                category=ctx.category,
                gate_status={name: str(getattr(g.status, "value", g.status)) for name, g in ctx.gates.items()},
                policy_version=ctx.pre.policy_version,
                fingerprint=ctx.fingerprint.fp or None,
                reason_code=reason_code,
                tone=ctx.tone,
                judges_called=list(ctx.runner.calls),
            ),
            prompt_trace=ctx.runner.trace,
        )

    async def _finish(
        self,
        ctx: _RunContext,
        outcome: DecisionOutcome,
        payload: BaseModel,
        branch: str,
        reason_code: Optional[str] = None,
    ) -> EngineOutput:
        output = self._output(ctx, outcome, payload, branch, reason_code)
        logger.info(f"[decision_engine] outcome={outcome.value} branch={branch} category={ctx.category}")
        await self._persist(ctx, output)
        return output

    async def _finish_angles(
        self,
        ctx: _RunContext,
        angles: List[Angle],
        branch: str,
        reason_code: Optional[str] = None,
    ) -> EngineOutput:
        rewritten, from_judge = await self._rewritten_intent(ctx)
        payload = PayloadAngles(
            primary=ANGLES_PRIMARY_KEY,
            secondary=ANGLES_SECONDARY_KEY,
            angles=angles[:self.config.thresholds.max_angles],
            original_intent=ctx.request.intent,
            rewritten_intent=rewritten,
            reformulation_includes_days=from_judge,
        )
        return await self._finish(ctx, DecisionOutcome.SHOW_ANGLES, payload, branch, reason_code)

    def _new_record(
        self,
        pre: PreprocessedInput,
        key: CacheKey,
        gate: DecisionGate,
        category: Optional[Category],
        gates: Dict[str, Dict[str, Any]],
        verdict: DecisionVerdict,
        reason_code: Optional[str] = None,
        outcome: Optional[DecisionOutcome] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> DecisionRecord:
        fp = compute_fingerprint(pre.normalized_intent, pre.intent_lang, category)
        now = self._clock()
        return DecisionRecord(
            id=decision_id_from_unique_key(key.unique_key),
            unique_key=key.unique_key,
            context_hash=key.context_hash,
            intent_raw=pre.intent_raw,
            normalized_intent=pre.normalized_intent,
            intent_lang=pre.intent_lang,
            ui_locale=pre.ui_locale,
            days=pre.days,
            days_bucket=pre.days_bucket,
            category=category,
            gates=gates,
            verdict=verdict,
            reason_code=reason_code,
            engine_outcome=outcome,
            engine_payload=payload or {},
            intent_fingerprint=fp.fp,
            intent_fingerprint_algo=fp.algo if fp.fp else "",
            policy_version=pre.policy_version,
            gate=gate,
            schema_version=pre.schema_version,
            created_at=now,
            updated_at=now,
        )

    def _build_record(self, ctx: _RunContext, output: EngineOutput) -> DecisionRecord:
        return self._new_record(
            ctx.pre,
            ctx.key,
            gate=ENGINE_GATE,
            category=ctx.category,
            gates={name: g.model_dump(mode="json") for name, g in ctx.gates.items()},
            verdict=verdict_for_outcome(output.outcome),
            reason_code=output.debug.reason_code,
            outcome=output.outcome,
            payload=output.payload,
        )

    async def _persist(self, ctx: _RunContext, output: EngineOutput) -> None:
        try:
            await self.store.upsert(self._build_record(ctx, output))
        except Exception as e:
            # Best-effort: the decision is still returned
            logger.warning(f"[decision_engine] persist failed for {ctx.key.unique_key[:12]}: {e}")


async def run_decision_engine(
    request: DecisionEngineInput,
    store: DecisionStore,
    judge_client: Optional[JudgeLLMClient] = None,
    collect_prompt_trace: bool = False,
) -> EngineOutput:
    """One-shot helper: build an engine and decide."""
    engine = DecisionEngine(store, judge_client=judge_client)
    return await engine.decide(request, collect_prompt_trace=collect_prompt_trace)
