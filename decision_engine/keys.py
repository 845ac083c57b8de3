# FILE: decision_engine/keys.py
"""
Deterministic cache keys for decision records.

unique_key   = sha256 of the newline-joined key fields (+ context_hash)
context_hash = sha256 of canonical JSON {days_bucket, gate, policy_version, schema_version}
record id    = "decision:v1:" + sha256(unique_key)[:32]
"""
from __future__ import annotations

import hashlib
import json
from typing import Optional, Union

from .schemas import CacheKey, Category, DecisionGate, PreprocessedInput

RECORD_ID_PREFIX = "decision:v1:"


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _enum_value(value) -> str:
    if value is None:
        return ""
    return value.value if hasattr(value, "value") else str(value)


def build_decision_key(
    pre: PreprocessedInput,
    gate: Union[DecisionGate, str] = DecisionGate.DECISION_ENGINE,
    category: Optional[Union[Category, str]] = None,
) -> CacheKey:
    """Two inputs with identical derived fields always produce the same key."""
    gate_value = _enum_value(gate)
    category_value = _enum_value(category)

    context = {
        "days_bucket": pre.days_bucket,
        "gate": gate_value,
        "policy_version": pre.policy_version,
        "schema_version": pre.schema_version,
    }
    context_hash = _sha256(json.dumps(context, sort_keys=True, separators=(",", ":")))

    parts = [
        pre.normalized_intent,
        pre.intent_lang,
        category_value,
        pre.days_bucket,
        gate_value,
        pre.policy_version,
        pre.schema_version,
        context_hash,
    ]
    unique_key = _sha256("\n".join(parts))

    return CacheKey(
        unique_key=unique_key,
        context_hash=context_hash,
        key_parts={
            "normalized_intent": pre.normalized_intent,
            "intent_lang": pre.intent_lang,
            "category": category_value or None,
            **context,
        },
    )


def decision_id_from_unique_key(unique_key: str) -> str:
    return RECORD_ID_PREFIX + _sha256(unique_key)[:32]
