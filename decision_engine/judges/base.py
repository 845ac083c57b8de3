# FILE: decision_engine/judges/base.py
"""
Shared judge-calling scaffolding.

Every judge goes through JudgeRunner.run():
- asyncio.wait_for bounds the call (6s default, 5s equivalence)
- timeout, transport error, empty output, no JSON object and schema
  mismatch all return None ("no signal"), never raise
- asyncio.CancelledError is never caught: cancelling the request
  cancels the outstanding judge call
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config.engine_config import JudgeConfig, get_engine_config
from ..schemas import PromptTraceEntry
from .clients import JudgeLLMClient

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def parse_judge_output(raw: Optional[str], model_cls: Type[T]) -> Optional[T]:
    """Extract the outermost JSON object and validate it. None on any failure."""
    if not raw:
        return None
    match = _JSON_OBJECT_RE.search(raw)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        logger.debug(f"[judge] schema mismatch for {model_cls.__name__}: {e.error_count()} errors")
        return None


class JudgeRunner:
    """
    Per-request judge runner. Records which judges were called and,
    optionally, a prompt trace.

    Usage:
        runner = JudgeRunner(client, collect_trace=True)
        result = await runner.run("safety", system, user, SafetyJudgeOutput)
    """

    def __init__(
        self,
        client: JudgeLLMClient,
        config: Optional[JudgeConfig] = None,
        collect_trace: bool = False,
    ):
        self.client = client
        self.config = config or get_engine_config().judges
        self.calls: List[str] = []
        self.trace: Optional[List[PromptTraceEntry]] = [] if collect_trace else None

    async def run(
        self,
        judge: str,
        system: str,
        user: str,
        model_cls: Type[T],
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[T]:
        timeout = timeout if timeout is not None else self.config.timeout_s
        max_tokens = max_tokens or self.config.max_tokens
        self.calls.append(judge)

        started = time.monotonic()
        raw: Optional[str] = None
        timed_out = False
        try:
            raw = await asyncio.wait_for(
                self.client.complete(judge, system, user, max_tokens=max_tokens),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(f"[judge:{judge}] timed out after {timeout}s, no signal")
        except Exception as e:
            logger.warning(f"[judge:{judge}] call failed, no signal: {e}")

        result = parse_judge_output(raw, model_cls)
        if raw and result is None:
            logger.warning(f"[judge:{judge}] unparseable output, no signal")

        if self.trace is not None:
            self.trace.append(PromptTraceEntry(
                judge=judge,
                system=system,
                user=user,
                raw_response=raw,
                parsed=result is not None,
                timed_out=timed_out,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            ))
        return result


def build_user_prompt(instruction: str, record: dict) -> str:
    """Small prompt-templated input record, serialized as JSON."""
    return f"{instruction}\n\nINPUT:\n{json.dumps(record, ensure_ascii=False)}\n\nRespond with JSON only."
