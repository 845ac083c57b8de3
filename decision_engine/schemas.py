# FILE: decision_engine/schemas.py
"""
Pydantic models for the Decision Engine.
Defines outcomes, verdicts, gate results, payloads, judge outputs and the
persisted DecisionRecord.

v1.1 (2026-09): Added audience_safety gate and typed payload helpers
v1.2 (2026-10): Added judge output models (reformulation, objectives preview)
"""
from __future__ import annotations
from enum import Enum
from typing import Optional, List, Dict, Any, Type
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, timezone


def utcnow():
    """Timezone-aware UTC now."""
    return datetime.now(timezone.utc)


# =============================================================================
# CLOSED ENUMS
# =============================================================================

class DecisionOutcome(str, Enum):
    """Terminal outcome tags. Every run ends in exactly one of these."""
    PROCEED_TO_GENERATE = "PROCEED_TO_GENERATE"
    SHOW_ANGLES = "SHOW_ANGLES"
    ASK_CLARIFICATION = "ASK_CLARIFICATION"
    CONFIRM_AMBITION = "CONFIRM_AMBITION"
    ASK_USER_CHOOSE_CATEGORY = "ASK_USER_CHOOSE_CATEGORY"
    REALISM_ADJUST = "REALISM_ADJUST"
    BLOCKED_SAFETY = "BLOCKED_SAFETY"
    PLAYFUL_OR_NONSENSE = "PLAYFUL_OR_NONSENSE"


class DecisionVerdict(str, Enum):
    ACTIONABLE = "ACTIONABLE"
    NEEDS_CLARIFY = "NEEDS_CLARIFY"
    BLOCKED = "BLOCKED"


class DecisionGate(str, Enum):
    """Gate names. Also used as the `gate` component of cache keys."""
    DECISION_ENGINE = "decision_engine"
    SAFETY = "safety"
    AUDIENCE_SAFETY = "audience_safety"
    TONE = "tone"
    CATEGORY = "category"
    AMBITION = "ambition"
    CATEGORY_ANALYSIS = "category_analysis"
    CONTROLLABILITY = "controllability"
    REALISM = "realism"
    EQUIVALENCE = "equivalence"


class Category(str, Enum):
    LEARN = "LEARN"
    CREATE = "CREATE"
    PERFORM = "PERFORM"
    WELLBEING = "WELLBEING"
    SOCIAL = "SOCIAL"
    CHALLENGE = "CHALLENGE"


class SafetyStatus(str, Enum):
    ALLOW = "allow"
    BLOCK = "block"
    UNCERTAIN = "uncertain"


class AudienceLevel(str, Enum):
    ALL_AGES = "all_ages"
    ADULT_ONLY = "adult_only"
    BLOCKED = "blocked"


class SafetyReason(str, Enum):
    SEXUAL_MINORS = "sexual_minors"
    SEXUAL_VIOLENCE = "sexual_violence"
    SELF_HARM = "self_harm"
    EXPLOSIVES_HOWTO = "explosives_howto"
    CRIME_HOWTO = "crime_howto"
    ADULT_SEXUAL = "adult_sexual"
    NUDITY = "nudity"
    WEAPONS = "weapons"
    DRUGS = "drugs"
    GAMBLING = "gambling"
    SENSITIVE_TOPIC = "sensitive_topic"
    JUDGE_BLOCK = "judge_block"
    NO_RISK_SIGNAL = "no_risk_signal"


class ToneLabel(str, Enum):
    SERIOUS = "serious"
    PLAYFUL = "playful"
    NONSENSE = "nonsense"
    UNCLEAR = "unclear"


class ToneReason(str, Enum):
    EMPTY = "empty"
    FANTASY_PLAYFUL = "fantasy_playful"
    FOOD_TRIVIAL = "food_trivial"
    SINGLE_WORD_TRIVIAL = "single_word_trivial"
    SINGLE_WORD_UNCLEAR = "single_word_unclear"
    NO_SIGNAL = "no_signal"


class AmbitionReason(str, Enum):
    ELITE_ROLE = "elite_role"
    SUPERLATIVE = "superlative"
    ACTIONABLE_FRAME = "actionable_frame"
    LEARNING_VERB = "learning_verb"
    NO_MARKER = "no_marker"


class ControllabilityLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ControllabilityReason(str, Enum):
    DEPENDS_ON_OTHER_PEOPLE = "depends_on_other_people"
    DEPENDS_ON_INSTITUTION = "depends_on_institution"
    DEPENDS_ON_RANDOM_OUTCOME = "depends_on_random_outcome"
    LIFE_GOAL_ELITE_ROLE = "life_goal_elite_role"
    ROMANTIC_OUTCOME = "romantic_outcome"
    APPROVAL_OR_SELECTION = "approval_or_selection"
    HEALTH_OUTCOME_EXTERNAL = "health_outcome_external"
    MONEY_MARKET_OUTCOME = "money_market_outcome"
    ACTIONABLE_FRAME = "actionable_frame"
    UNKNOWN = "unknown"


class RealismLevel(str, Enum):
    OK = "ok"
    STRETCH = "stretch"
    UNREALISTIC = "unrealistic"


# =============================================================================
# INPUT / PREPROCESSING
# =============================================================================

class DecisionEngineInput(BaseModel):
    """Inbound request. Immutable once received."""
    model_config = {"frozen": True}

    intent: str
    # Fractional durations are accepted; preprocessing rounds and clamps
    days: Optional[float] = None
    ui_locale: str = "en"
    # Skip clarify/angles stops (user already picked an angle or rewrite)
    force_proceed: bool = False

    @field_validator("ui_locale", mode="before")
    @classmethod
    def _default_locale(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "en"
        return v.strip() if isinstance(v, str) else v


class PreprocessedInput(BaseModel):
    """Derived view of the input. Never persisted standalone."""
    intent_raw: str
    normalized_intent: str
    intent_lang: str
    ui_locale: str
    days: int
    days_bucket: str
    policy_version: str
    schema_version: str
    dominant_script: str = "none"
    script_ratios: Dict[str, float] = Field(default_factory=dict)


class CacheKey(BaseModel):
    unique_key: str
    context_hash: str
    key_parts: Dict[str, Any] = Field(default_factory=dict)


class FingerprintResult(BaseModel):
    fp: str
    algo: str
    tokens: List[str] = Field(default_factory=list)


# =============================================================================
# GATE RESULTS
# =============================================================================

class GateResult(BaseModel):
    """Base class for gate results. Folded into DecisionRecord.gates."""
    gate: DecisionGate
    status: str
    reason_code: str
    confidence: float = Field(ge=0.0, le=1.0)
    rationale: Optional[str] = None


class SafetyGateResult(GateResult):
    """Hard block / audience safety result."""
    gate: DecisionGate = DecisionGate.SAFETY
    status: SafetyStatus
    reason_code: SafetyReason
    level: AudienceLevel = AudienceLevel.ALL_AGES

    @property
    def blocked(self) -> bool:
        return self.status == SafetyStatus.BLOCK


class ToneGateResult(GateResult):
    gate: DecisionGate = DecisionGate.TONE
    status: ToneLabel
    reason_code: ToneReason


class AmbitionGateResult(GateResult):
    """status is 'confirm' when the intent needs an ambition confirmation, else 'pass'."""
    gate: DecisionGate = DecisionGate.AMBITION
    reason_code: AmbitionReason
    requires_confirmation: bool = False
    marker: Optional[str] = None
    lang_hint: Optional[str] = None


class ControllabilityGateResult(GateResult):
    gate: DecisionGate = DecisionGate.CONTROLLABILITY
    status: ControllabilityLevel
    reason_code: ControllabilityReason
    matched: Optional[str] = None


class CategoryGateResult(GateResult):
    """status: resolved | ambiguous | defaulted. source: deterministic | judge | default."""
    gate: DecisionGate = DecisionGate.CATEGORY
    category: Optional[Category] = None
    source: str = "deterministic"


class Angle(BaseModel):
    """One alternative framing of the intent."""
    label: str
    next_intent: str
    days: int = 14

    @model_validator(mode="before")
    @classmethod
    def _accept_next_days(cls, data):
        # Judges sometimes answer with "next_days"
        if isinstance(data, dict) and "days" not in data and "next_days" in data:
            data = {**data, "days": data["next_days"]}
        return data


class RealismGateResult(GateResult):
    gate: DecisionGate = DecisionGate.REALISM
    status: RealismLevel
    why_short: Optional[str] = None
    adjustments: List[Angle] = Field(default_factory=list)


# =============================================================================
# PAYLOADS (one per outcome)
# =============================================================================

class PayloadProceed(BaseModel):
    rewritten_intent: str
    reformulation_includes_days: bool = False
    guide_title: str
    objectives: List[str] = Field(default_factory=list)
    days: int
    category: Optional[Category] = None
    realism_acknowledged: bool = False


class PayloadAngles(BaseModel):
    primary: str
    secondary: str
    angles: List[Angle] = Field(default_factory=list, max_length=4)
    original_intent: str
    rewritten_intent: Optional[str] = None
    reformulation_includes_days: bool = False


class PayloadClarify(BaseModel):
    clarify_question: str
    suggested_rewrites: List[str] = Field(default_factory=list)


class PayloadConfirmAmbition(BaseModel):
    intent: str
    days: int
    marker: Optional[str] = None


class CategorySuggestion(BaseModel):
    category: Category
    label_key: str


class PayloadChooseCategory(BaseModel):
    suggestions: List[CategorySuggestion] = Field(default_factory=list)


class PayloadRealismAdjust(BaseModel):
    why_short: Optional[str] = None
    adjustments: List[Angle] = Field(default_factory=list)
    intention_to_send: str
    days: int
    category: Optional[Category] = None


class PayloadBlocked(BaseModel):
    reason_code: str
    message_key: str = "safety_blocked"


class PayloadPlayfulOrNonsense(BaseModel):
    message_key: str = "humor_response"
    tone: ToneLabel
    reason_code: str


PAYLOAD_MODELS: Dict[DecisionOutcome, Type[BaseModel]] = {
    DecisionOutcome.PROCEED_TO_GENERATE: PayloadProceed,
    DecisionOutcome.SHOW_ANGLES: PayloadAngles,
    DecisionOutcome.ASK_CLARIFICATION: PayloadClarify,
    DecisionOutcome.CONFIRM_AMBITION: PayloadConfirmAmbition,
    DecisionOutcome.ASK_USER_CHOOSE_CATEGORY: PayloadChooseCategory,
    DecisionOutcome.REALISM_ADJUST: PayloadRealismAdjust,
    DecisionOutcome.BLOCKED_SAFETY: PayloadBlocked,
    DecisionOutcome.PLAYFUL_OR_NONSENSE: PayloadPlayfulOrNonsense,
}


_NEEDS_CLARIFY_OUTCOMES = {
    DecisionOutcome.ASK_CLARIFICATION,
    DecisionOutcome.ASK_USER_CHOOSE_CATEGORY,
    DecisionOutcome.CONFIRM_AMBITION,
    DecisionOutcome.PLAYFUL_OR_NONSENSE,
}


def verdict_for_outcome(outcome: DecisionOutcome) -> DecisionVerdict:
    """Map an outcome tag onto the coarse persisted verdict."""
    if outcome == DecisionOutcome.BLOCKED_SAFETY:
        return DecisionVerdict.BLOCKED
    if outcome in _NEEDS_CLARIFY_OUTCOMES:
        return DecisionVerdict.NEEDS_CLARIFY
    return DecisionVerdict.ACTIONABLE


# =============================================================================
# ENGINE OUTPUT
# =============================================================================

class PromptTraceEntry(BaseModel):
    """One judge call, recorded only when prompt tracing is requested."""
    judge: str
    system: str
    user: str
    raw_response: Optional[str] = None
    parsed: bool = False
    timed_out: bool = False
    duration_ms: float = 0.0


class DecisionDebug(BaseModel):
    branch: str
    category: Optional[Category] = None
    gate_status: Dict[str, str] = Field(default_factory=dict)
    policy_version: str
    from_cache: bool = False
    similarity_hit: bool = False
    similarity_score: Optional[float] = None
    equivalence_used: bool = False
    matched_record_id: Optional[str] = None
    fingerprint: Optional[str] = None
    reason_code: Optional[str] = None
    tone: Optional[ToneLabel] = None
    judges_called: List[str] = Field(default_factory=list)


class EngineOutput(BaseModel):
    """
    Contract returned to callers. Embedded verbatim into the persisted
    DecisionRecord (outcome + payload) for replay.
    """
    outcome: DecisionOutcome
    payload: Dict[str, Any] = Field(default_factory=dict)
    debug: DecisionDebug
    prompt_trace: Optional[List[PromptTraceEntry]] = None

    @property
    def verdict(self) -> DecisionVerdict:
        return verdict_for_outcome(self.outcome)

    def typed_payload(self) -> BaseModel:
        """Rebuild the payload model for this outcome."""
        return PAYLOAD_MODELS[self.outcome].model_validate(self.payload)


class GateCheckOutput(BaseModel):
    """One gate run on its own, cached under that gate's key and window."""
    gate: DecisionGate
    verdict: DecisionVerdict
    result: Dict[str, Any] = Field(default_factory=dict)
    from_cache: bool = False
    record_id: Optional[str] = None
    judges_called: List[str] = Field(default_factory=list)


# =============================================================================
# PERSISTED RECORD
# =============================================================================

class DecisionRecord(BaseModel):
    """The only durable state the engine owns. Upserted, never duplicated."""
    id: str
    unique_key: str
    context_hash: str
    intent_raw: str
    normalized_intent: str
    intent_lang: str
    ui_locale: str
    days: int
    days_bucket: str
    category: Optional[Category] = None
    gates: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    verdict: DecisionVerdict
    reason_code: Optional[str] = None
    # None for records written by a standalone gate check
    engine_outcome: Optional[DecisionOutcome] = None
    engine_payload: Dict[str, Any] = Field(default_factory=dict)
    intent_fingerprint: str = ""
    intent_fingerprint_algo: str = ""
    policy_version: str
    gate: DecisionGate = DecisionGate.DECISION_ENGINE
    schema_version: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DecisionSearch(BaseModel):
    """Filters for DecisionStore.search. Unset fields do not filter."""
    intent_substring: Optional[str] = None
    category: Optional[Category] = None
    intent_lang: Optional[str] = None
    gate: Optional[DecisionGate] = None
    intent_fingerprint: Optional[str] = None
    days_bucket: Optional[str] = None
    policy_version: Optional[str] = None
    verdict: Optional[DecisionVerdict] = None
    limit: int = Field(default=50, ge=1, le=500)


# =============================================================================
# JUDGE OUTPUTS
# =============================================================================

def _clip_confidence(v: Any) -> Any:
    if isinstance(v, (int, float)):
        return max(0.0, min(1.0, float(v)))
    return v


class SafetyJudgeOutput(BaseModel):
    verdict: SafetyStatus
    reason_code: str = "unspecified"
    rationale: Optional[str] = None


class CategoryRouterOutput(BaseModel):
    category: Category
    subcategory: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    rationale: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _upper_category(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def _clip(cls, v):
        return _clip_confidence(v)


class CategoryAnalysisOutput(BaseModel):
    actionable: bool = False
    needs_clarification: bool = False
    clarify_question: Optional[str] = None
    angles: List[Angle] = Field(default_factory=list)
    suggested_rewrites: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("angles", mode="before")
    @classmethod
    def _cap_angles(cls, v):
        return v[:4] if isinstance(v, list) else v

    @property
    def intent_clear(self) -> bool:
        return self.actionable and not self.needs_clarification


class EquivalenceOutput(BaseModel):
    same_request: bool
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clip(cls, v):
        return _clip_confidence(v)


class RealismOutput(BaseModel):
    realism: RealismLevel
    why_short: Optional[str] = None
    adjustments: List[Angle] = Field(default_factory=list)

    @field_validator("adjustments", mode="before")
    @classmethod
    def _cap_adjustments(cls, v):
        return v[:4] if isinstance(v, list) else v


class ReformulationOutput(BaseModel):
    reformulated_intent: str = Field(min_length=1)


class ObjectivesOutput(BaseModel):
    objectives: List[str] = Field(default_factory=list)

    @field_validator("objectives", mode="before")
    @classmethod
    def _cap_objectives(cls, v):
        if isinstance(v, list):
            return [str(o).strip() for o in v if str(o).strip()][:3]
        return v
